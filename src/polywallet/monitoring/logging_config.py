# File: src/polywallet/monitoring/logging_config.py

import logging
import logging.handlers
import os
from datetime import datetime
from typing import Iterable, Union

from ..utils.logger import SecretFilter


class LogConfig:
    def __init__(
        self,
        log_dir: str = "logs",
        level: Union[int, str] = logging.INFO,
        max_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        secrets: Iterable[str] = ()
    ):
        self.log_dir = log_dir
        self.level = logging.getLevelName(level.upper()) if isinstance(level, str) else level
        self.max_size = max_size
        self.backup_count = backup_count
        self.secrets = list(secrets)

        os.makedirs(log_dir, exist_ok=True)

    @property
    def log_file(self) -> str:
        return os.path.join(
            self.log_dir,
            f'polywallet_{datetime.now().strftime("%Y%m%d")}.log'
        )

    def setup_logging(self) -> logging.Logger:
        """Attach a rotating file handler and a console handler to the root logger"""
        secret_filter = SecretFilter(self.secrets)

        file_handler = logging.handlers.RotatingFileHandler(
            self.log_file,
            maxBytes=self.max_size,
            backupCount=self.backup_count
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        file_handler.setLevel(logging.DEBUG)
        file_handler.addFilter(secret_filter)

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))
        console_handler.setLevel(self.level)
        console_handler.addFilter(secret_filter)

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)

        # web3 logs every request at DEBUG
        logging.getLogger("web3").setLevel(logging.WARNING)
        return root_logger
