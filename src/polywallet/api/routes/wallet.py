# File: src/polywallet/api/routes/wallet.py
from typing import Optional

from fastapi import APIRouter, Depends, Request

from polywallet.wallet.api import (
    BalanceResponse,
    CreateWalletRequest,
    EstimateGasRequest,
    ExportedKey,
    GasEstimate,
    RestoreWalletRequest,
    SendRequest,
    TransactionSent,
    WalletAPI,
)
from polywallet.wallet.models import TransactionDetails, TransactionHistory, WalletData

router = APIRouter(prefix="/api/v1/wallet")


def get_wallet_api(request: Request) -> WalletAPI:
    return request.app.state.wallet_api


@router.post("/create", response_model=WalletData)
async def create_wallet(body: CreateWalletRequest, api: WalletAPI = Depends(get_wallet_api)):
    return await api.create_wallet(body)


@router.post("/restore", response_model=WalletData)
async def restore_wallet(body: RestoreWalletRequest, api: WalletAPI = Depends(get_wallet_api)):
    return await api.restore_wallet(body)


@router.get("", response_model=WalletData)
async def get_wallet(api: WalletAPI = Depends(get_wallet_api)):
    return await api.get_wallet()


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(api: WalletAPI = Depends(get_wallet_api)):
    return await api.get_balance()


@router.post("/balance/refresh", response_model=BalanceResponse)
async def refresh_balance(api: WalletAPI = Depends(get_wallet_api)):
    return await api.get_balance(refresh=True)


@router.get("/history", response_model=TransactionHistory)
async def get_history(
    address: Optional[str] = None,
    page_size: Optional[int] = None,
    page_token: Optional[str] = None,
    api: WalletAPI = Depends(get_wallet_api)
):
    return await api.get_history(address, page_size, page_token)


@router.post("/estimate-gas", response_model=GasEstimate)
async def estimate_gas(body: EstimateGasRequest, api: WalletAPI = Depends(get_wallet_api)):
    return await api.estimate_gas(body)


@router.post("/send", response_model=TransactionSent)
async def send(body: SendRequest, api: WalletAPI = Depends(get_wallet_api)):
    return await api.send(body)


@router.post("/export", response_model=ExportedKey)
async def export_private_key(api: WalletAPI = Depends(get_wallet_api)):
    return await api.export_private_key()


@router.get("/transactions/{tx_hash}", response_model=TransactionDetails)
async def get_transaction(tx_hash: str, api: WalletAPI = Depends(get_wallet_api)):
    return await api.get_transaction(tx_hash)
