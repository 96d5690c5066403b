# tests/test_blockchain.py
import pytest

from polywallet.exceptions import BlockchainError, NotInitializedError
from polywallet.services.blockchain import BlockchainService, format_ether, parse_ether
from tests.conftest import ADDRESS_1, POLYGON, FakeWeb3

HISTORY_URL = "https://rpc.example/multichain"
POLYGON_RECIPIENT = "0x1111111111111111111111111111111111111111"


@pytest.fixture
def web3_instances():
    return {}


@pytest.fixture
def service(web3_instances):
    def factory(url):
        web3 = FakeWeb3(url)
        web3_instances[url] = web3
        return web3

    return BlockchainService({"polygon": POLYGON}, history_url=HISTORY_URL, web3_factory=factory)


class TestEtherConversion:
    @pytest.mark.parametrize("wei,expected", [
        (0, "0"),
        (10 ** 18, "1"),
        (15 * 10 ** 17, "1.5"),
        (1, "0.000000000000000001"),
        (10 ** 19, "10"),
    ])
    def test_format_ether(self, wei, expected):
        assert format_ether(wei) == expected

    def test_parse_ether(self):
        assert parse_ether("1.5") == 15 * 10 ** 17

    def test_parse_ether_rejects_garbage(self):
        with pytest.raises(BlockchainError):
            parse_ether("abc")


class TestBlockchainService:
    @pytest.mark.asyncio
    async def test_requires_initialize(self, service):
        with pytest.raises(NotInitializedError):
            await service.get_balance(ADDRESS_1)

    @pytest.mark.asyncio
    async def test_initialize_connects(self, service, web3_instances):
        await service.initialize()
        assert service.get_current_network() == POLYGON
        assert set(web3_instances) == {POLYGON.rpc_url, HISTORY_URL}
        assert service.get_provider() is web3_instances[POLYGON.rpc_url]

    @pytest.mark.asyncio
    async def test_unknown_network(self, service):
        with pytest.raises(BlockchainError, match="not supported"):
            await service.initialize("solana")

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def factory(url):
            web3 = FakeWeb3(url)
            web3.eth._block_number = ConnectionError("refused")
            return web3

        service = BlockchainService({"polygon": POLYGON}, web3_factory=factory)
        with pytest.raises(BlockchainError, match="Failed to connect to Polygon network"):
            await service.initialize()
        assert not service.get_initialization_status()

    @pytest.mark.asyncio
    async def test_get_balance(self, service, web3_instances):
        await service.initialize()
        web3_instances[POLYGON.rpc_url].eth.get_balance.return_value = 2 * 10 ** 18
        assert await service.get_balance(ADDRESS_1) == "2"

    @pytest.mark.asyncio
    async def test_get_balance_failure_is_wrapped(self, service, web3_instances):
        await service.initialize()
        web3_instances[POLYGON.rpc_url].eth.get_balance.side_effect = TimeoutError()
        with pytest.raises(BlockchainError, match="Failed to get balance"):
            await service.get_balance(ADDRESS_1)

    @pytest.mark.asyncio
    async def test_estimate_gas_and_price(self, service, web3_instances):
        await service.initialize()
        eth = web3_instances[POLYGON.rpc_url].eth

        assert await service.estimate_gas(ADDRESS_1, "0.5", from_address=ADDRESS_1) == "21000"
        params = eth.estimate_gas.call_args[0][0]
        assert params == {"to": ADDRESS_1, "value": 5 * 10 ** 17, "from": ADDRESS_1}
        assert await service.get_gas_price() == "30000000000"

    @pytest.mark.asyncio
    async def test_broadcast(self, service, web3_instances):
        await service.initialize()
        eth = web3_instances[POLYGON.rpc_url].eth

        assert await service.broadcast(b"\x01\x02") == "0x" + "ab" * 32
        eth.send_raw_transaction.assert_awaited_once_with(b"\x01\x02")

    @pytest.mark.asyncio
    async def test_broadcast_rejection(self, service, web3_instances):
        await service.initialize()
        web3_instances[POLYGON.rpc_url].eth.send_raw_transaction.side_effect = ValueError("nonce too low")
        with pytest.raises(BlockchainError, match="nonce too low"):
            await service.broadcast(b"\x01")

    @pytest.mark.asyncio
    async def test_transaction_history_request(self, service, web3_instances):
        await service.initialize()
        history = web3_instances[HISTORY_URL]
        history.provider.make_request.return_value = {
            "result": {"transactions": [{"hash": "0x01"}], "nextPageToken": "next"}
        }

        page = await service.get_transaction_history(ADDRESS_1, page_size=5, page_token="tok")

        assert page == {"transactions": [{"hash": "0x01"}], "nextPageToken": "next"}
        method, params = history.provider.make_request.call_args[0]
        assert method == "ankr_getTransactionsByAddress"
        assert params == {
            "blockchain": ["polygon"],
            "address": [ADDRESS_1],
            "pageSize": 5,
            "descOrder": True,
            "pageToken": "tok",
        }

    @pytest.mark.asyncio
    async def test_transaction_history_empty_token_normalized(self, service, web3_instances):
        await service.initialize()
        web3_instances[HISTORY_URL].provider.make_request.return_value = {
            "result": {"transactions": [], "nextPageToken": ""}
        }
        page = await service.get_transaction_history(ADDRESS_1)
        assert page == {"transactions": [], "nextPageToken": None}

    @pytest.mark.asyncio
    async def test_transaction_history_rpc_error(self, service, web3_instances):
        await service.initialize()
        web3_instances[HISTORY_URL].provider.make_request.return_value = {
            "error": {"code": -32000, "message": "rate limited"}
        }
        with pytest.raises(BlockchainError, match="rate limited"):
            await service.get_transaction_history(ADDRESS_1)

    @pytest.mark.asyncio
    async def test_transaction_history_malformed(self, service, web3_instances):
        await service.initialize()
        web3_instances[HISTORY_URL].provider.make_request.return_value = {"result": "nope"}
        with pytest.raises(BlockchainError, match="Malformed"):
            await service.get_transaction_history(ADDRESS_1)

    @pytest.mark.asyncio
    async def test_transaction_history_needs_endpoint(self):
        service = BlockchainService({"polygon": POLYGON}, web3_factory=FakeWeb3)
        await service.initialize()
        with pytest.raises(BlockchainError, match="not configured"):
            await service.get_transaction_history(ADDRESS_1)

    @pytest.mark.asyncio
    async def test_wait_for_transaction(self, service, web3_instances):
        await service.initialize()
        eth = web3_instances[POLYGON.rpc_url].eth
        eth.wait_for_transaction_receipt.return_value = {
            "transactionHash": b"\xab" * 32,
            "from": ADDRESS_1,
            "to": POLYGON_RECIPIENT,
            "gasUsed": 21000,
            "blockNumber": 100,
            "status": 1,
        }
        eth.get_transaction.return_value = {"value": 10 ** 18}

        result = await service.wait_for_transaction("0x" + "ab" * 32)

        assert result.hash == "0x" + "ab" * 32
        assert result.block_number == 100
        assert result.status == "success"
        assert result.value == str(10 ** 18)

    def test_address_validation(self):
        assert BlockchainService.is_valid_address(ADDRESS_1)
        assert BlockchainService.is_valid_address(ADDRESS_1.lower())
        assert not BlockchainService.is_valid_address(ADDRESS_1[2:])
        assert not BlockchainService.is_valid_address(ADDRESS_1 + "0")
        assert not BlockchainService.is_valid_address("0x" + "z" * 40)
        assert not BlockchainService.is_valid_address(None)

