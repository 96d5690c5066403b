# src/polywallet/wallet/keys.py
import re
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from eth_account import Account
from eth_account.signers.local import LocalAccount

from ..exceptions import InvalidKeyFormat, InvalidMnemonic, ServiceError
from ..utils.config import Config
from .models import NetworkConfig

PRIVATE_KEY_RE = re.compile(Config.PRIVATE_KEY_PATTERN)

Account.enable_unaudited_hdwallet_features()


def is_valid_private_key(private_key: str) -> bool:
    return isinstance(private_key, str) and PRIVATE_KEY_RE.fullmatch(private_key) is not None


def key_to_hex(account: LocalAccount) -> str:
    return "0x" + bytes(account.key).hex()


class WalletHandle:
    """The resident key material plus its gateway binding and cached balance"""

    def __init__(self, account: LocalAccount):
        self._account = account
        self.balance: Optional[Decimal] = None
        self.network: Optional[NetworkConfig] = None

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def private_key(self) -> str:
        return key_to_hex(self._account)

    @property
    def is_connected(self) -> bool:
        return self.network is not None

    def connect(self, network: Optional[NetworkConfig]) -> 'WalletHandle':
        self.network = network
        return self

    def sign_transaction(self, transaction: Dict[str, Any]) -> bytes:
        signed = self._account.sign_transaction(transaction)
        return bytes(signed.raw_transaction)

    def __str__(self) -> str:
        return f"WalletHandle(address={self.address})"

    __repr__ = __str__


class KeyMaterialProvider:
    """Key generation and derivation backed by eth-account"""

    @staticmethod
    def generate(entropy: Optional[str] = None) -> WalletHandle:
        """Generate new wallet with random private key"""
        try:
            account = Account.create(entropy or "")
        except Exception as e:
            raise ServiceError("Failed to generate random wallet", "GENERATION_ERROR") from e
        return WalletHandle(account)

    @staticmethod
    def generate_with_mnemonic(num_words: int = 12) -> Tuple[WalletHandle, str]:
        try:
            account, mnemonic = Account.create_with_mnemonic(num_words=num_words)
        except Exception as e:
            raise ServiceError("Failed to generate random wallet", "GENERATION_ERROR") from e
        return WalletHandle(account), mnemonic

    @staticmethod
    def from_private_key(private_key: str) -> WalletHandle:
        if not is_valid_private_key(private_key):
            raise InvalidKeyFormat()
        try:
            account = Account.from_key(private_key)
        except Exception as e:
            # Matches the pattern but lies outside the curve order
            raise InvalidKeyFormat("Invalid private key") from e
        return WalletHandle(account)

    @staticmethod
    def from_mnemonic(mnemonic: str, passphrase: str = "") -> WalletHandle:
        phrase = " ".join(mnemonic.split()) if isinstance(mnemonic, str) else ""
        if not phrase:
            raise InvalidMnemonic()
        try:
            account = Account.from_mnemonic(phrase, passphrase=passphrase)
        except Exception as e:
            raise InvalidMnemonic() from e
        return WalletHandle(account)

    @staticmethod
    def address_of(private_key: str) -> str:
        return KeyMaterialProvider.from_private_key(private_key).address
