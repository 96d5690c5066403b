# src/polywallet/exceptions.py
from typing import Optional


class ServiceError(Exception):
    """Base exception class for wallet service errors"""

    default_message = "Something went wrong"

    def __init__(self, message: str, code: str = "SERVICE_ERROR", service: str = "WalletManager"):
        super().__init__(message)
        self.message = message
        self.code = code
        self.service = service

    @property
    def user_message(self) -> str:
        """Short human-readable message for display"""
        return self.message or self.default_message

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "service": self.service,
            "message": self.user_message,
        }


class NotInitializedError(ServiceError):
    """Raised when a service is used before initialize()"""

    def __init__(self, service: str):
        super().__init__(f"{service} is not initialized", "NOT_INITIALIZED", service)


class AuthenticationError(ServiceError):
    """Raised when the user-presence gate declines or is unavailable"""

    default_message = "Authentication failed"

    def __init__(self, message: str, code: str = "AUTH_ERROR"):
        super().__init__(message, code, "AuthenticationService")


class AuthenticationRequired(AuthenticationError):
    """Raised when a sensitive operation runs without a loaded or authenticated wallet"""

    def __init__(self, message: str = "No wallet loaded"):
        super().__init__(message, "NO_WALLET")


class AuthenticationFailed(AuthenticationError):
    """Raised when the gate challenge is declined or cancelled"""

    def __init__(self, message: str = "Authentication failed or was cancelled"):
        super().__init__(message, "AUTH_FAILED")


class StorageError(ServiceError):
    """Raised when secure storage reads or writes fail"""

    default_message = "Secure storage error"

    def __init__(self, message: str, code: str = "STORAGE_ERROR"):
        super().__init__(message, code, "StorageService")


class StorageUnavailable(StorageError):
    """Raised when the secure store itself cannot be reached"""

    def __init__(self, message: str = "Secure storage is unavailable"):
        super().__init__(message, "STORAGE_UNAVAILABLE")


class BlockchainError(ServiceError):
    """Raised when the chain gateway is unreachable, malformed or rejects a request"""

    default_message = "Network request failed"

    def __init__(self, message: str, code: str = "BLOCKCHAIN_ERROR"):
        super().__init__(message, code, "BlockchainService")


class InvalidInput(ServiceError):
    """Raised for malformed input, before any collaborator is contacted"""

    default_message = "Invalid input"

    def __init__(self, message: str, code: str = "INVALID_INPUT", field: Optional[str] = None):
        super().__init__(message, code, "WalletManager")
        self.field = field


class InvalidKeyFormat(InvalidInput):
    """Raised when a private key does not match the expected hex format"""

    def __init__(self, message: str = "Invalid private key format"):
        super().__init__(message, "INVALID_KEY", "private_key")


class InvalidMnemonic(InvalidInput):
    """Raised when a mnemonic phrase cannot be used for derivation"""

    def __init__(self, message: str = "Invalid mnemonic phrase"):
        super().__init__(message, "INVALID_MNEMONIC", "mnemonic")


class InvalidAddress(InvalidInput):
    """Raised when a recipient address is malformed"""

    def __init__(self, message: str = "Please enter a valid address"):
        super().__init__(message, "INVALID_ADDRESS", "to")


class InvalidAmount(InvalidInput):
    """Raised when an amount is not a positive decimal"""

    def __init__(self, message: str = "Please enter a valid amount"):
        super().__init__(message, "INVALID_AMOUNT", "amount")


class InsufficientBalance(InvalidInput):
    """Raised when an amount exceeds the last known balance"""

    def __init__(self, message: str = "Insufficient balance"):
        super().__init__(message, "INSUFFICIENT_BALANCE", "amount")
