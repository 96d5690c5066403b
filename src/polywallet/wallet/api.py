# File: src/polywallet/wallet/api.py
from typing import Optional

from fastapi import HTTPException
from pydantic import BaseModel

from ..exceptions import (
    AuthenticationError,
    BlockchainError,
    InvalidInput,
    NotInitializedError,
    ServiceError,
    StorageError,
)
from .manager import WalletManager
from .models import TransactionDetails, TransactionHistory, WalletData


class CreateWalletRequest(BaseModel):
    private_key: Optional[str] = None
    mnemonic: Optional[str] = None
    entropy: Optional[str] = None
    confirm_replace: bool = False


class RestoreWalletRequest(BaseModel):
    private_key: str
    confirm_replace: bool = False


class SendRequest(BaseModel):
    to: str
    amount: str
    gas_limit: Optional[str] = None
    gas_price: Optional[str] = None


class EstimateGasRequest(BaseModel):
    to: str
    amount: str


class TransactionSent(BaseModel):
    hash: str
    explorer_url: Optional[str] = None


class ExportedKey(BaseModel):
    private_key: str


class BalanceResponse(BaseModel):
    address: str
    balance: Optional[str] = None
    symbol: Optional[str] = None


class GasEstimate(BaseModel):
    estimated_gas: str


def to_http_error(error: ServiceError) -> HTTPException:
    if isinstance(error, InvalidInput):
        status = 400
    elif isinstance(error, AuthenticationError):
        status = 401
    elif isinstance(error, NotInitializedError):
        status = 409
    elif isinstance(error, StorageError):
        status = 503
    elif isinstance(error, BlockchainError):
        status = 502
    else:
        status = 500
    return HTTPException(status_code=status, detail=error.to_dict())


class WalletAPI:
    """HTTP-facing wrapper mapping wallet errors to status codes"""

    def __init__(self, manager: WalletManager):
        self.manager = manager

    def _check_replace(self, confirm_replace: bool) -> None:
        # Replacing a wallet cannot be undone; the client has to say so explicitly
        if self.manager.is_wallet_loaded() and not confirm_replace:
            raise HTTPException(
                status_code=409,
                detail="A wallet is already loaded; set confirm_replace to replace it"
            )

    async def create_wallet(self, request: CreateWalletRequest) -> WalletData:
        self._check_replace(request.confirm_replace)
        try:
            return await self.manager.create_wallet(
                private_key=request.private_key,
                mnemonic=request.mnemonic,
                entropy=request.entropy
            )
        except ServiceError as e:
            raise to_http_error(e)

    async def restore_wallet(self, request: RestoreWalletRequest) -> WalletData:
        self._check_replace(request.confirm_replace)
        try:
            return await self.manager.restore_wallet(request.private_key)
        except ServiceError as e:
            raise to_http_error(e)

    async def get_wallet(self) -> WalletData:
        try:
            return await self.manager.get_wallet_data()
        except ServiceError as e:
            raise to_http_error(e)

    async def get_balance(self, refresh: bool = False) -> BalanceResponse:
        try:
            address = self.manager.get_address()
            if refresh:
                balance = await self.manager.get_balance()
            else:
                balance = self.manager.cached_balance()
                if balance is None:
                    balance = await self.manager.get_balance()
        except ServiceError as e:
            raise to_http_error(e)
        network = self.manager.blockchain.get_current_network()
        return BalanceResponse(
            address=address,
            balance=balance,
            symbol=network.symbol if network else None
        )

    async def get_history(
        self,
        address: Optional[str] = None,
        page_size: Optional[int] = None,
        page_token: Optional[str] = None
    ) -> TransactionHistory:
        try:
            return await self.manager.get_transaction_history(address, page_size, page_token)
        except ServiceError as e:
            raise to_http_error(e)

    async def estimate_gas(self, request: EstimateGasRequest) -> GasEstimate:
        try:
            return GasEstimate(estimated_gas=await self.manager.estimate_gas(request.to, request.amount))
        except ServiceError as e:
            raise to_http_error(e)

    async def send(self, request: SendRequest) -> TransactionSent:
        try:
            tx_hash = await self.manager.send_transaction(
                request.to, request.amount, request.gas_limit, request.gas_price
            )
        except ServiceError as e:
            raise to_http_error(e)
        network = self.manager.blockchain.get_current_network()
        return TransactionSent(
            hash=tx_hash,
            explorer_url=network.explorer_tx_url(tx_hash) if network else None
        )

    async def export_private_key(self) -> ExportedKey:
        try:
            return ExportedKey(private_key=await self.manager.export_private_key())
        except ServiceError as e:
            raise to_http_error(e)

    async def get_transaction(self, tx_hash: str) -> TransactionDetails:
        try:
            return await self.manager.get_transaction_details(tx_hash)
        except ServiceError as e:
            raise to_http_error(e)
