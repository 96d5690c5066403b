# src/polywallet/wallet/send.py
import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from ..exceptions import InvalidInput, ServiceError
from ..utils.config import Config
from .models import PendingSend

if TYPE_CHECKING:
    from .manager import WalletManager

logger = logging.getLogger(__name__)


class DebouncedGasEstimator:
    """Coalesces rapid send-form edits into a single gas estimate.

    Each ``schedule`` call cancels the estimate still waiting out the delay
    and starts a new one, so only the latest recipient/amount pair reaches
    the gateway.
    """

    def __init__(self, manager: 'WalletManager', delay: float = Config.GAS_ESTIMATE_DEBOUNCE):
        self.manager = manager
        self.delay = delay
        self._task: Optional[asyncio.Task] = None
        self.pending: Optional[PendingSend] = None

    def schedule(self, recipient: str, amount: str) -> asyncio.Task:
        self.cancel()
        self.pending = PendingSend(recipient=recipient, amount=amount)
        self._task = asyncio.ensure_future(self._estimate(self.pending))
        return self._task

    async def _estimate(self, pending: PendingSend) -> Optional[PendingSend]:
        await asyncio.sleep(self.delay)
        try:
            pending.estimated_gas = await self.manager.estimate_gas(pending.recipient, pending.amount)
        except InvalidInput:
            # Half-typed input; nothing to estimate yet
            return None
        except ServiceError as e:
            logger.warning(f"Gas estimation failed: {e.user_message}")
            return None
        return pending

    def cancel(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    def clear(self) -> None:
        """Drop the form state after a submission, whatever its outcome"""
        self.cancel()
        self.pending = None
