# src/polywallet/wallet/manager.py
import asyncio
import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from web3 import Web3

from ..config.settings import WalletSettings
from ..exceptions import (
    AuthenticationError,
    AuthenticationFailed,
    AuthenticationRequired,
    BlockchainError,
    InsufficientBalance,
    InvalidKeyFormat,
    ServiceError,
    StorageError,
)
from ..services.authentication import AuthenticationService, BiometricGate
from ..services.base import BaseService
from ..services.blockchain import BlockchainService, parse_ether
from ..services.storage import FernetFileStore, SecureStoreBackend, StorageService
from ..utils.config import Config
from .history import reconcile_history
from .keys import KeyMaterialProvider, WalletHandle, is_valid_private_key
from .models import TransactionDetails, TransactionHistory, WalletData
from .send import DebouncedGasEstimator
from .validation import parse_amount, validate_address

logger = logging.getLogger(__name__)


class WalletState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    NO_WALLET = "no_wallet"
    WALLET_LOADED = "wallet_loaded"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    AUTH_FAILED = "auth_failed"


class WalletManager(BaseService):
    """Owns the active wallet and sequences auth, storage and chain calls.

    At most one ``WalletHandle`` is resident. Creating or restoring a wallet
    overwrites the stored secret and replaces the handle with no undo, so
    callers must confirm with the user first. Overlapping calls are not
    serialized here; callers keep one operation in flight at a time.
    """

    def __init__(
        self,
        auth: AuthenticationService,
        storage: StorageService,
        blockchain: BlockchainService,
        keys: Optional[KeyMaterialProvider] = None,
        history_page_size: int = Config.HISTORY_PAGE_SIZE,
        gas_debounce: float = Config.GAS_ESTIMATE_DEBOUNCE
    ):
        super().__init__()
        self.auth = auth
        self.storage = storage
        self.blockchain = blockchain
        self.keys = keys or KeyMaterialProvider()
        self.history_page_size = history_page_size
        self.gas_debounce = gas_debounce
        self.wallet: Optional[WalletHandle] = None
        self.state = WalletState.UNINITIALIZED
        self.session_authenticated = False

    @classmethod
    def from_settings(
        cls,
        settings: WalletSettings,
        gate: Optional[BiometricGate] = None,
        backend: Optional[SecureStoreBackend] = None
    ) -> 'WalletManager':
        auth = AuthenticationService(gate, require_biometrics=settings.get("wallet.require_biometrics", False))
        storage = StorageService(
            auth,
            backend or FernetFileStore(settings.get("storage.path", Config.STORAGE_PATH)),
            keychain_service=settings.get("storage.keychain_service", Config.DEFAULT_KEYCHAIN_SERVICE)
        )
        blockchain = BlockchainService(
            settings.networks(),
            history_url=settings.history_endpoint(),
            default_network=settings.get("network.default", Config.DEFAULT_NETWORK),
            polling_interval=settings.get("network.polling_interval", Config.POLLING_INTERVAL),
            request_timeout=settings.get("network.request_timeout", Config.REQUEST_TIMEOUT)
        )
        return cls(
            auth,
            storage,
            blockchain,
            history_page_size=settings.get("wallet.history_page_size", Config.HISTORY_PAGE_SIZE),
            gas_debounce=settings.get("wallet.gas_debounce", Config.GAS_ESTIMATE_DEBOUNCE)
        )

    async def initialize(self) -> None:
        """Bring up collaborators in order and load the stored wallet, if any.

        No stored secret is a normal outcome (state NO_WALLET); the caller
        decides whether to create one. An unreachable store raises
        ``StorageUnavailable``.
        """
        self.state = WalletState.INITIALIZING
        try:
            # Dependency order: auth, storage, chain
            if not self.auth.get_initialization_status():
                await self.auth.initialize()
            if not self.storage.get_initialization_status():
                await self.storage.initialize()
            if not self.blockchain.get_initialization_status():
                await self.blockchain.initialize()
        except Exception as e:
            self.state = WalletState.UNINITIALIZED
            self.handle_error(e, "Wallet manager initialization")

        self.is_initialized = True
        try:
            await self._load_existing_wallet()
        except StorageError:
            if self.state == WalletState.INITIALIZING:
                # The store could not be read; initialize() has to be retried
                self.is_initialized = False
                self.state = WalletState.UNINITIALIZED
            raise
        if self.wallet:
            await self.refresh_balance()

    async def _load_existing_wallet(self) -> Optional[WalletHandle]:
        try:
            stored_private_key = await self.storage.get_private_key()
        except AuthenticationFailed:
            self.state = WalletState.AUTH_FAILED
            raise
        except Exception as e:
            self.handle_error(e, "Loading stored wallet", StorageError, "Failed to read stored wallet")

        if not stored_private_key:
            logger.info("No existing wallet found")
            self.state = WalletState.NO_WALLET
            return None

        try:
            handle = self.keys.from_private_key(stored_private_key)
        except InvalidKeyFormat as e:
            self.state = WalletState.NO_WALLET
            raise StorageError("Stored wallet secret is corrupted") from e

        self.wallet = handle.connect(self.blockchain.get_current_network())
        self.state = WalletState.WALLET_LOADED
        # The stored secret was read through the gate, so the session is authenticated
        self._mark_authenticated()
        logger.info(f"Loaded wallet {handle.address}")
        return handle

    def _mark_authenticated(self) -> None:
        self.session_authenticated = True
        self.state = WalletState.AUTHENTICATED

    def _require_wallet(self) -> WalletHandle:
        if not self.wallet:
            raise AuthenticationRequired()
        return self.wallet

    def _require_connected(self) -> WalletHandle:
        wallet = self._require_wallet()
        if not wallet.is_connected:
            raise BlockchainError("Wallet is not connected to a network")
        return wallet

    async def create_wallet(
        self,
        private_key: Optional[str] = None,
        mnemonic: Optional[str] = None,
        entropy: Optional[str] = None
    ) -> WalletData:
        """Create a wallet from a private key, a mnemonic, or fresh randomness.

        Replaces the resident wallet and overwrites the stored secret.
        """
        if private_key is not None and not is_valid_private_key(private_key):
            raise InvalidKeyFormat()
        self.validate_initialized()

        if private_key is not None:
            handle = self.keys.from_private_key(private_key)
        elif mnemonic is not None:
            handle = self.keys.from_mnemonic(mnemonic)
        else:
            handle = self.keys.generate(entropy)

        try:
            await self.storage.store_private_key(handle.private_key)
        except Exception as e:
            self.handle_error(e, "Wallet creation", StorageError, "Failed to save wallet")

        previous = self.wallet
        self.wallet = handle.connect(self.blockchain.get_current_network())
        self._mark_authenticated()
        if previous and previous.address != handle.address:
            logger.warning(f"Replaced wallet {previous.address} with {handle.address}")
        else:
            logger.info(f"Wallet {handle.address} ready")

        return await self.get_wallet_data()

    async def restore_wallet(self, private_key: str) -> WalletData:
        return await self.create_wallet(private_key=private_key)

    async def export_private_key(self) -> str:
        """Return the private key after a fresh gate challenge; never cached"""
        self.validate_initialized()
        wallet = self._require_wallet()

        try:
            await self.auth.require_authentication(Config.PROMPT_EXPORT_KEY)
        except Exception as e:
            self.handle_error(e, "Private key export", AuthenticationError)

        return wallet.private_key

    async def authenticate(self) -> Optional[WalletData]:
        """Challenge the user and load the stored wallet; None when declined"""
        self.validate_initialized()
        self.state = WalletState.AUTHENTICATING

        try:
            success = await self.auth.authenticate(prompt_message=Config.PROMPT_ACCESS_WALLET)
        except Exception as e:
            self.state = WalletState.AUTH_FAILED
            self.handle_error(e, "Wallet authentication", AuthenticationError)

        if not success:
            self.state = WalletState.AUTH_FAILED
            return None

        if not self.wallet:
            try:
                await self._load_existing_wallet()
            except ServiceError:
                self.state = WalletState.AUTH_FAILED
                raise
        if not self.wallet:
            self.state = WalletState.NO_WALLET
            return None
        self._mark_authenticated()
        return await self.get_wallet_data()

    async def send_transaction(
        self,
        to: str,
        amount: str,
        gas_limit: Optional[str] = None,
        gas_price: Optional[str] = None
    ) -> str:
        """Sign and broadcast a transfer; returns the transaction hash.

        Every precondition is checked before the gateway is contacted. The
        balance check is advisory; the ledger has the final say.
        """
        self.validate_initialized()
        wallet = self._require_wallet()
        if not self.session_authenticated:
            raise AuthenticationRequired("Wallet not authenticated")

        recipient = validate_address(to)
        value = parse_amount(amount)
        if wallet.balance is not None and value > wallet.balance:
            raise InsufficientBalance()
        wallet = self._require_connected()

        try:
            nonce = await self.blockchain.get_transaction_count(wallet.address)
            if gas_limit is None:
                gas_limit = await self.blockchain.estimate_gas(
                    recipient, str(value), from_address=wallet.address
                )
            if gas_price is None:
                gas_price = await self.blockchain.get_gas_price()

            transaction: Dict[str, Any] = {
                "to": recipient,
                "value": parse_ether(value),
                "gas": int(gas_limit),
                "gasPrice": int(gas_price),
                "nonce": nonce,
                "chainId": wallet.network.chain_id,
            }
            signed = wallet.sign_transaction(transaction)
            tx_hash = await self.blockchain.broadcast(signed)
        except Exception as e:
            self.handle_error(e, "Transaction sending", BlockchainError, "Transaction failed")

        logger.info(f"Sent {value} from {wallet.address} to {recipient}: {tx_hash}")

        # Already broadcast; a failed refresh must not fail the send
        await self.refresh_balance()
        return tx_hash

    async def estimate_gas(self, to: str, amount: str) -> str:
        self.validate_initialized()
        recipient = validate_address(to)
        value = parse_amount(amount)
        from_address = self.wallet.address if self.wallet else None
        return await self.blockchain.estimate_gas(recipient, str(value), from_address=from_address)

    def gas_estimator(self) -> DebouncedGasEstimator:
        """Estimator for a send form, debounced by the configured delay"""
        return DebouncedGasEstimator(self, self.gas_debounce)

    async def get_balance(self) -> str:
        self.validate_initialized()
        wallet = self._require_connected()

        try:
            balance = await self.blockchain.get_balance(wallet.address)
        except Exception as e:
            self.handle_error(e, "Balance retrieval", BlockchainError)

        # A restore may have swapped the handle while the request was in flight
        if self.wallet is wallet:
            wallet.balance = Decimal(balance)
        return balance

    async def refresh_balance(self) -> Optional[str]:
        """Best-effort balance update; keeps the cached value on failure"""
        try:
            return await self.get_balance()
        except ServiceError as e:
            logger.warning(f"Failed to refresh balance: {e.user_message}")
            return self.cached_balance()

    def cached_balance(self) -> Optional[str]:
        if not self.wallet or self.wallet.balance is None:
            return None
        return format(self.wallet.balance, 'f')

    async def get_wallet_data(self) -> WalletData:
        self.validate_initialized()
        wallet = self._require_wallet()
        balance = await self.refresh_balance()
        return WalletData(address=wallet.address, balance=balance)

    async def get_transaction_history(
        self,
        address: Optional[str] = None,
        page_size: Optional[int] = None,
        page_token: Optional[str] = None
    ) -> TransactionHistory:
        """One page of history with each record marked sent or received"""
        self.validate_initialized()
        if address is None:
            address = self._require_wallet().address
        address = validate_address(address)

        try:
            page = await self.blockchain.get_transaction_history(
                address,
                page_size=page_size or self.history_page_size,
                page_token=page_token
            )
            return reconcile_history(page["transactions"], address, page.get("nextPageToken"))
        except Exception as e:
            self.handle_error(e, "Getting transaction history", BlockchainError)

    async def get_transaction_details(self, tx_hash: str) -> TransactionDetails:
        self.validate_initialized()

        try:
            tx, receipt, current_block = await asyncio.gather(
                self.blockchain.get_transaction(tx_hash),
                self.blockchain.get_transaction_receipt(tx_hash),
                self.blockchain.get_block_number()
            )
            if not tx or not receipt:
                raise BlockchainError("Transaction not found")
            block = await self.blockchain.get_block(receipt["blockNumber"])
        except Exception as e:
            self.handle_error(e, "Getting transaction details", BlockchainError)

        network = self.blockchain.get_current_network()
        tx_hash_hex = Web3.to_hex(tx["hash"])
        return TransactionDetails(
            hash=tx_hash_hex,
            block_number=receipt["blockNumber"],
            block_hash=Web3.to_hex(receipt["blockHash"]) if receipt.get("blockHash") else None,
            transaction_index=receipt.get("transactionIndex"),
            from_address=tx["from"],
            to_address=tx.get("to") or "",
            value=Decimal(Web3.from_wei(tx.get("value", 0), 'ether')),
            gas_limit=str(tx.get("gas", 0)),
            gas_used=str(receipt.get("gasUsed", 0)),
            gas_price=str(tx.get("gasPrice") or 0),
            effective_gas_price=_optional_str(receipt.get("effectiveGasPrice")),
            nonce=tx.get("nonce", 0),
            data=Web3.to_hex(tx["input"]) if tx.get("input") else "0x",
            type=_as_int(tx.get("type", 0)),
            status="success" if receipt.get("status") == 1 else "failed",
            timestamp=(block.get("timestamp", 0) if block else 0) * 1000,
            confirmations=max(current_block - receipt["blockNumber"] + 1, 0),
            max_fee_per_gas=_optional_str(tx.get("maxFeePerGas")),
            max_priority_fee_per_gas=_optional_str(tx.get("maxPriorityFeePerGas")),
            explorer_url=network.explorer_tx_url(tx_hash_hex) if network else None,
        )

    async def switch_network(self, network_key: str) -> None:
        self.validate_initialized()
        await self.blockchain.switch_network(network_key)
        if self.wallet:
            self.wallet.connect(self.blockchain.get_current_network())
            self.wallet.balance = None
            await self.refresh_balance()

    async def delete_wallet(self) -> None:
        """Remove the stored secret and drop the resident wallet"""
        self.validate_initialized()
        try:
            await self.storage.delete_private_key()
        except Exception as e:
            self.handle_error(e, "Wallet deletion", StorageError, "Failed to delete wallet")

        self.wallet = None
        self.session_authenticated = False
        self.state = WalletState.NO_WALLET

    def is_wallet_loaded(self) -> bool:
        return self.wallet is not None

    def get_address(self) -> str:
        return self._require_wallet().address


def _optional_str(value: Optional[int]) -> Optional[str]:
    return None if value is None else str(value)


def _as_int(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)
