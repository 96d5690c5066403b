# File: src/polywallet/utils/logger.py
import logging
from typing import Iterable, Optional

MASK = "***"


class SecretFilter(logging.Filter):
    """Masks known secrets (RPC API keys) in formatted log messages"""

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets = [secret for secret in secrets if secret]

    def filter(self, record: logging.LogRecord) -> bool:
        if self.secrets:
            message = record.getMessage()
            for secret in self.secrets:
                message = message.replace(secret, MASK)
            record.msg = message
            record.args = None
        return True


def get_logger(name: str, level: Optional[int] = None, secrets: Iterable[str] = ()) -> logging.Logger:
    """Create a console logger whose output never carries the given secrets"""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        handler.addFilter(SecretFilter(secrets))
        logger.addHandler(handler)

    if level is not None:
        logger.setLevel(level)
    elif not logger.level:
        logger.setLevel(logging.INFO)

    return logger
