# src/polywallet/services/blockchain.py
import asyncio
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional, Union

from web3 import AsyncWeb3, AsyncHTTPProvider
from web3.exceptions import TransactionNotFound, BlockNotFound

from .base import BaseService
from ..exceptions import BlockchainError
from ..utils.config import Config
from ..wallet.models import NetworkConfig, TransactionResult

logger = logging.getLogger(__name__)

ADDRESS_RE = re.compile(Config.ADDRESS_PATTERN)

Web3Factory = Callable[[str], AsyncWeb3]


def format_ether(wei: int) -> str:
    """Wei amount as a plain decimal string in ether"""
    value = AsyncWeb3.from_wei(wei, 'ether')
    return format(Decimal(value).normalize(), 'f') if value else "0"


def parse_ether(amount: Union[str, Decimal]) -> int:
    try:
        return int(AsyncWeb3.to_wei(Decimal(str(amount)), 'ether'))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise BlockchainError(f"Invalid amount: {amount}") from e


class BlockchainService(BaseService):
    def __init__(
        self,
        networks: Dict[str, NetworkConfig],
        history_url: Optional[str] = None,
        default_network: str = Config.DEFAULT_NETWORK,
        polling_interval: float = Config.POLLING_INTERVAL,
        request_timeout: float = Config.REQUEST_TIMEOUT,
        web3_factory: Optional[Web3Factory] = None
    ):
        super().__init__()
        self.networks = dict(networks)
        self.history_url = history_url
        self.default_network = default_network
        self.polling_interval = polling_interval
        self.request_timeout = request_timeout
        self.web3_factory = web3_factory or self._create_web3
        self.web3: Optional[AsyncWeb3] = None
        self.history_web3: Optional[AsyncWeb3] = None
        self.current_network: Optional[NetworkConfig] = None

    def _create_web3(self, url: str) -> AsyncWeb3:
        return AsyncWeb3(AsyncHTTPProvider(url, request_kwargs={"timeout": self.request_timeout}))

    async def initialize(self, network_key: Optional[str] = None) -> None:
        try:
            await self.switch_network(network_key or self.default_network)
            if self.history_url:
                self.history_web3 = self.web3_factory(self.history_url)
            self.is_initialized = True
        except Exception as e:
            self.handle_error(e, "Blockchain service initialization", BlockchainError)

    async def switch_network(self, network_key: str) -> None:
        network = self.networks.get(network_key)
        if not network:
            raise BlockchainError(f"Network {network_key} not supported")

        try:
            web3 = self.web3_factory(network.rpc_url)
            # Test connection
            await web3.eth.block_number
        except Exception as e:
            self.handle_error(e, "Network switching", BlockchainError,
                              f"Failed to connect to {network.name} network")

        self.web3 = web3
        self.current_network = network
        logger.info(f"Connected to {network.name} (chain id {network.chain_id})")

    def _provider(self) -> AsyncWeb3:
        self.validate_initialized()
        if not self.web3:
            raise BlockchainError("Provider not initialized")
        return self.web3

    async def get_balance(self, address: str) -> str:
        web3 = self._provider()
        try:
            balance = await web3.eth.get_balance(address)
        except Exception as e:
            self.handle_error(e, "Getting balance", BlockchainError,
                              f"Failed to get balance for address: {address}")
        return format_ether(balance)

    async def estimate_gas(self, to: str, value: str, from_address: Optional[str] = None) -> str:
        web3 = self._provider()
        params: Dict[str, Any] = {"to": to, "value": parse_ether(value)}
        if from_address:
            params["from"] = from_address
        try:
            gas = await web3.eth.estimate_gas(params)
        except Exception as e:
            self.handle_error(e, "Gas estimation", BlockchainError, "Failed to estimate gas")
        return str(gas)

    async def get_gas_price(self) -> str:
        web3 = self._provider()
        try:
            gas_price = await web3.eth.gas_price
        except Exception as e:
            self.handle_error(e, "Getting gas price", BlockchainError, "Failed to get gas price")
        return str(gas_price or 0)

    async def get_transaction_count(self, address: str) -> int:
        web3 = self._provider()
        try:
            return await web3.eth.get_transaction_count(address, 'pending')
        except Exception as e:
            self.handle_error(e, "Getting nonce", BlockchainError,
                              f"Failed to get transaction count for address: {address}")

    async def broadcast(self, signed_transaction: bytes) -> str:
        """Submit a signed raw transaction; returns its hash"""
        web3 = self._provider()
        try:
            tx_hash = await web3.eth.send_raw_transaction(signed_transaction)
        except Exception as e:
            self.handle_error(e, "Broadcasting transaction", BlockchainError,
                              f"Transaction rejected: {e}")
        return AsyncWeb3.to_hex(tx_hash)

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        web3 = self._provider()
        try:
            return await web3.eth.get_transaction(tx_hash)
        except TransactionNotFound:
            return None
        except Exception as e:
            self.handle_error(e, "Getting transaction", BlockchainError,
                              f"Failed to get transaction: {tx_hash}")

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        web3 = self._provider()
        try:
            return await web3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except Exception as e:
            self.handle_error(e, "Getting transaction receipt", BlockchainError,
                              f"Failed to get transaction receipt: {tx_hash}")

    async def get_block(self, block_identifier: Union[int, str]) -> Optional[Dict[str, Any]]:
        web3 = self._provider()
        try:
            return await web3.eth.get_block(block_identifier)
        except BlockNotFound:
            return None
        except Exception as e:
            self.handle_error(e, "Getting block", BlockchainError,
                              f"Failed to get block: {block_identifier}")

    async def get_block_number(self) -> int:
        web3 = self._provider()
        try:
            return await web3.eth.block_number
        except Exception as e:
            self.handle_error(e, "Getting block number", BlockchainError, "Failed to get block number")

    async def wait_for_transaction(
        self,
        tx_hash: str,
        confirmations: int = 1,
        timeout: float = Config.RECEIPT_TIMEOUT
    ) -> TransactionResult:
        web3 = self._provider()
        try:
            receipt = await web3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=timeout, poll_latency=self.polling_interval
            )
            while confirmations > 1:
                current = await web3.eth.block_number
                if current - receipt["blockNumber"] + 1 >= confirmations:
                    break
                await asyncio.sleep(self.polling_interval)
            tx = await web3.eth.get_transaction(tx_hash)
        except Exception as e:
            self.handle_error(e, "Waiting for transaction", BlockchainError,
                              f"Failed to wait for transaction: {tx_hash}")

        return TransactionResult(
            hash=AsyncWeb3.to_hex(receipt["transactionHash"]),
            from_address=receipt["from"],
            to_address=receipt.get("to") or "",
            value=str(tx.get("value", 0)),
            gas_used=str(receipt["gasUsed"]),
            block_number=receipt["blockNumber"],
            status="success" if receipt.get("status") == 1 else "failed"
        )

    async def get_transaction_history(
        self,
        address: str,
        page_size: int = Config.HISTORY_PAGE_SIZE,
        page_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """Indexed history for an address, most recent first.

        Returns the gateway payload untouched: ``transactions`` holds raw
        records with hex-encoded numeric fields, ``nextPageToken`` is set
        when more pages exist.
        """
        self.validate_initialized()
        if not self.history_web3:
            raise BlockchainError("Transaction history endpoint not configured")

        params: Dict[str, Any] = {
            "blockchain": [self.current_network.history_blockchain],
            "address": [address],
            "pageSize": page_size,
            "descOrder": True,
        }
        if page_token:
            params["pageToken"] = page_token

        try:
            response = await self.history_web3.provider.make_request(Config.HISTORY_METHOD, params)
        except Exception as e:
            self.handle_error(e, "Getting transaction history", BlockchainError,
                              f"Failed to get transaction history for address: {address}")

        if response.get("error"):
            error = response["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise BlockchainError(f"Transaction history query failed: {message}")

        result = response.get("result")
        if not isinstance(result, dict) or not isinstance(result.get("transactions", []), list):
            raise BlockchainError("Malformed transaction history response")

        return {
            "transactions": result.get("transactions", []),
            "nextPageToken": result.get("nextPageToken") or None,
        }

    def get_current_network(self) -> Optional[NetworkConfig]:
        return self.current_network

    def get_provider(self) -> Optional[AsyncWeb3]:
        self.validate_initialized()
        return self.web3

    @staticmethod
    def is_valid_address(address: str) -> bool:
        return isinstance(address, str) and ADDRESS_RE.fullmatch(address) is not None
