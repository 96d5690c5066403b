# src/polywallet/utils/__init__.py
from .logger import SecretFilter, get_logger
from .config import Config

__all__ = ["SecretFilter", "get_logger", "Config"]
