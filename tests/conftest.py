# tests/conftest.py
import asyncio
from typing import List
from unittest.mock import AsyncMock, MagicMock, create_autospec

import pytest

from polywallet.services.authentication import AuthenticationService, BiometricGate
from polywallet.services.blockchain import BlockchainService
from polywallet.services.storage import FernetFileStore, StorageService
from polywallet.wallet.manager import WalletManager
from polywallet.wallet.models import NetworkConfig

# Example key from the web3.py documentation
PRIVATE_KEY_1 = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
ADDRESS_1 = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"

PRIVATE_KEY_2 = "0x" + "11" * 32

# Hardhat default mnemonic, account 0
TEST_MNEMONIC = "test test test test test test test test test test test junk"
MNEMONIC_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

RECIPIENT = "0x" + "1" * 40

POLYGON = NetworkConfig(
    name="Polygon",
    chain_id=137,
    rpc_url="https://rpc.example/polygon",
    symbol="POL",
    explorer="https://polygonscan.com",
    history_blockchain="polygon",
)


class FakeGate(BiometricGate):
    """Gate that records every challenge and answers with a fixed result"""

    def __init__(self, answer: bool = True, hardware: bool = True):
        self.answer = answer
        self.hardware = hardware
        self.prompts: List[str] = []

    @property
    def challenges(self) -> int:
        return len(self.prompts)

    async def has_hardware(self) -> bool:
        return self.hardware

    async def is_enrolled(self) -> bool:
        return self.hardware

    async def supported_types(self) -> List[str]:
        return ["fingerprint"] if self.hardware else []

    async def challenge(self, prompt, fallback_label="Use Passcode", disable_device_fallback=False) -> bool:
        self.prompts.append(prompt)
        return self.answer


class FakeEth:
    """Stand-in for AsyncWeb3.eth; awaitable properties resolve immediately"""

    def __init__(self, block_number=100, gas_price=30_000_000_000):
        self._block_number = block_number
        self._gas_price = gas_price
        self.get_balance = AsyncMock(return_value=0)
        self.estimate_gas = AsyncMock(return_value=21000)
        self.get_transaction_count = AsyncMock(return_value=0)
        self.send_raw_transaction = AsyncMock(return_value=b"\xab" * 32)
        self.get_transaction = AsyncMock(return_value=None)
        self.get_transaction_receipt = AsyncMock(return_value=None)
        self.get_block = AsyncMock(return_value=None)
        self.wait_for_transaction_receipt = AsyncMock()

    async def _resolve(self, value):
        if isinstance(value, Exception):
            raise value
        return value

    @property
    def block_number(self):
        return self._resolve(self._block_number)

    @property
    def gas_price(self):
        return self._resolve(self._gas_price)


class FakeWeb3:
    def __init__(self, url: str = ""):
        self.url = url
        self.eth = FakeEth()
        self.provider = MagicMock()
        self.provider.make_request = AsyncMock(
            return_value={"jsonrpc": "2.0", "id": 1, "result": {"transactions": []}}
        )


@pytest.fixture
def gate():
    return FakeGate()


@pytest.fixture
def auth(gate):
    return AuthenticationService(gate)


@pytest.fixture
def secure_store(tmp_path):
    return FernetFileStore(str(tmp_path / "wallet_data"))


@pytest.fixture
def storage(auth, secure_store):
    return StorageService(auth, secure_store)


@pytest.fixture
def gateway():
    """Chain gateway double; every async method is an AsyncMock"""
    mock = create_autospec(BlockchainService, instance=True)
    mock.get_initialization_status.return_value = True
    mock.get_current_network.return_value = POLYGON
    mock.get_balance.return_value = "0"
    mock.estimate_gas.return_value = "21000"
    mock.get_gas_price.return_value = "30000000000"
    mock.get_transaction_count.return_value = 0
    mock.broadcast.return_value = "0x" + "ab" * 32
    mock.get_transaction_history.return_value = {"transactions": [], "nextPageToken": None}
    return mock


@pytest.fixture
def manager(auth, storage, gateway):
    return WalletManager(auth, storage, gateway)


@pytest.fixture
def fresh_manager_factory(gate, secure_store, gateway):
    """Build a new manager over the same store, as after an app restart"""
    def factory():
        auth = AuthenticationService(gate)
        return WalletManager(auth, StorageService(auth, secure_store), gateway)
    return factory
