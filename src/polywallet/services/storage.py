# src/polywallet/services/storage.py
import json
import logging
import os
from typing import Dict, Optional

from cryptography.fernet import Fernet

from .base import BaseService
from .authentication import AuthenticationService
from ..exceptions import StorageError, StorageUnavailable
from ..utils.config import Config

logger = logging.getLogger(__name__)


class SecureStoreBackend:
    """Key/value store for secrets, namespaced by keychain service"""

    async def is_available(self) -> bool:
        raise NotImplementedError

    async def set_item(self, key: str, value: str, keychain_service: str) -> None:
        raise NotImplementedError

    async def get_item(self, key: str, keychain_service: str) -> Optional[str]:
        raise NotImplementedError

    async def delete_item(self, key: str, keychain_service: str) -> None:
        raise NotImplementedError


class FernetFileStore(SecureStoreBackend):
    """Secrets encrypted with a local Fernet key, one JSON file per keychain service"""

    KEY_FILE = "wallet.key"

    def __init__(self, storage_path: str = Config.STORAGE_PATH):
        self.storage_path = storage_path
        self._fernet: Optional[Fernet] = None

    @property
    def fernet(self) -> Fernet:
        if self._fernet is None:
            self._fernet = Fernet(self._load_or_create_key())
        return self._fernet

    def _load_or_create_key(self) -> bytes:
        os.makedirs(self.storage_path, exist_ok=True)
        key_path = os.path.join(self.storage_path, self.KEY_FILE)
        if os.path.exists(key_path):
            with open(key_path, "rb") as f:
                return f.read()
        key = Fernet.generate_key()
        with open(key_path, "wb") as f:
            f.write(key)
        os.chmod(key_path, 0o600)
        return key

    def _service_path(self, keychain_service: str) -> str:
        return os.path.join(self.storage_path, f"{keychain_service}.json")

    def _read_service(self, keychain_service: str) -> Dict[str, str]:
        path = self._service_path(keychain_service)
        if not os.path.exists(path):
            return {}
        with open(path, "r") as f:
            items = json.load(f)
        if not isinstance(items, dict) or not all(isinstance(v, str) for v in items.values()):
            raise ValueError(f"Malformed keychain file: {path}")
        return items

    def _write_service(self, keychain_service: str, items: Dict[str, str]) -> None:
        path = self._service_path(keychain_service)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w") as f:
            json.dump(items, f)
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, path)

    async def is_available(self) -> bool:
        try:
            os.makedirs(self.storage_path, exist_ok=True)
        except OSError:
            return False
        return os.access(self.storage_path, os.W_OK | os.R_OK)

    async def set_item(self, key: str, value: str, keychain_service: str) -> None:
        items = self._read_service(keychain_service)
        items[key] = self.fernet.encrypt(value.encode()).decode()
        self._write_service(keychain_service, items)

    async def get_item(self, key: str, keychain_service: str) -> Optional[str]:
        token = self._read_service(keychain_service).get(key)
        if token is None:
            return None
        return self.fernet.decrypt(token.encode()).decode()

    async def delete_item(self, key: str, keychain_service: str) -> None:
        items = self._read_service(keychain_service)
        if items.pop(key, None) is not None:
            self._write_service(keychain_service, items)


class StorageService(BaseService):
    def __init__(
        self,
        auth: AuthenticationService,
        backend: Optional[SecureStoreBackend] = None,
        keychain_service: str = Config.DEFAULT_KEYCHAIN_SERVICE
    ):
        super().__init__()
        self.auth = auth
        self.backend = backend or FernetFileStore()
        self.keychain_service = keychain_service

    async def initialize(self) -> None:
        # AuthenticationService is initialized first by the wallet manager
        try:
            available = await self.backend.is_available()
        except Exception as e:
            self.handle_error(e, "Storage service initialization", StorageUnavailable)
        if not available:
            raise StorageUnavailable()
        self.is_initialized = True

    async def _gate(self, require_authentication: bool, prompt: str) -> None:
        if not require_authentication:
            return
        # Hosts that cannot prompt pass, unless biometrics are mandatory
        if self.auth.is_biometrics_available() or self.auth.require_biometrics:
            await self.auth.require_authentication(prompt)

    async def set_secure_item(
        self,
        key: str,
        value: str,
        require_authentication: bool = False,
        authentication_prompt: str = "Authenticate to save secure data",
        keychain_service: Optional[str] = None
    ) -> None:
        self.validate_initialized()
        await self._gate(require_authentication, authentication_prompt)

        try:
            await self.backend.set_item(key, value, keychain_service or self.keychain_service)
        except Exception as e:
            self.handle_error(e, "Setting secure item", StorageError, f"Failed to store item with key: {key}")

    async def get_secure_item(
        self,
        key: str,
        require_authentication: bool = False,
        authentication_prompt: str = "Authenticate to access secure data",
        keychain_service: Optional[str] = None
    ) -> Optional[str]:
        self.validate_initialized()
        await self._gate(require_authentication, authentication_prompt)

        try:
            return await self.backend.get_item(key, keychain_service or self.keychain_service)
        except Exception as e:
            self.handle_error(e, "Getting secure item", StorageError, f"Failed to retrieve item with key: {key}")

    async def delete_secure_item(self, key: str, keychain_service: Optional[str] = None) -> None:
        self.validate_initialized()

        try:
            await self.backend.delete_item(key, keychain_service or self.keychain_service)
        except Exception as e:
            self.handle_error(e, "Deleting secure item", StorageError, f"Failed to delete item with key: {key}")

    async def item_exists(self, key: str, keychain_service: Optional[str] = None) -> bool:
        self.validate_initialized()

        try:
            item = await self.backend.get_item(key, keychain_service or self.keychain_service)
        except Exception as e:
            logger.warning(f"Could not check secure item {key}: {e}")
            return False
        return item is not None

    # Helpers for the wallet secret
    async def store_private_key(self, private_key: str) -> None:
        await self.set_secure_item(
            Config.KEYCHAIN_KEY,
            private_key,
            require_authentication=True,
            authentication_prompt=Config.PROMPT_SAVE_WALLET
        )

    async def get_private_key(self) -> Optional[str]:
        return await self.get_secure_item(
            Config.KEYCHAIN_KEY,
            require_authentication=True,
            authentication_prompt=Config.PROMPT_ACCESS_WALLET
        )

    async def delete_private_key(self) -> None:
        await self.delete_secure_item(Config.KEYCHAIN_KEY)
