# src/polywallet/services/base.py
import logging
from typing import NoReturn, Optional, Type

from ..exceptions import ServiceError, NotInitializedError

logger = logging.getLogger(__name__)


class BaseService:
    """Common lifecycle and error handling for wallet services"""

    def __init__(self):
        self.is_initialized = False

    async def initialize(self) -> None:
        raise NotImplementedError

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def validate_initialized(self) -> None:
        if not self.is_initialized:
            raise NotInitializedError(self.name)

    def get_initialization_status(self) -> bool:
        return self.is_initialized

    def handle_error(
        self,
        error: Exception,
        context: str,
        wrap: Optional[Type[ServiceError]] = None,
        message: Optional[str] = None
    ) -> NoReturn:
        """Log a failure and re-raise it as a ServiceError.

        Errors that already belong to the taxonomy pass through unchanged;
        anything else is wrapped in ``wrap`` with ``message`` (or the context)
        and chained to the original.
        """
        logger.error(f"{self.name} - {context}: {error}")
        if isinstance(error, ServiceError):
            raise error
        if wrap is None:
            raise ServiceError(message or f"{context} failed", service=self.name) from error
        raise wrap(message or f"{context} failed") from error
