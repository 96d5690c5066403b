# File: src/polywallet/wallet/models.py
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

TransactionStatus = Literal["success", "failed"]
TransactionDirection = Literal["sent", "received"]


class NetworkConfig(BaseModel):
    name: str
    chain_id: int
    rpc_url: str
    symbol: str
    explorer: Optional[str] = None
    history_blockchain: Optional[str] = None

    def explorer_tx_url(self, tx_hash: str) -> Optional[str]:
        if not self.explorer:
            return None
        return f"{self.explorer.rstrip('/')}/tx/{tx_hash}"


class BiometricInfo(BaseModel):
    is_available: bool
    is_enrolled: bool
    supported_types: List[str] = Field(default_factory=list)


class WalletData(BaseModel):
    address: str
    balance: Optional[str] = None  # None until the gateway has answered once


class TransactionRecord(BaseModel):
    """A ledger transaction as seen from one wallet address"""
    hash: str
    from_address: str
    to_address: str
    value: Decimal
    timestamp: datetime
    timestamp_ms: int
    block_number: int
    status: TransactionStatus
    direction: TransactionDirection


class TransactionHistory(BaseModel):
    transactions: List[TransactionRecord] = Field(default_factory=list)
    next_page_token: Optional[str] = None


class TransactionResult(BaseModel):
    hash: str
    from_address: str
    to_address: str
    value: str
    gas_used: Optional[str] = None
    block_number: Optional[int] = None
    status: Optional[TransactionStatus] = None


class TransactionDetails(BaseModel):
    hash: str
    block_number: Optional[int] = None
    block_hash: Optional[str] = None
    transaction_index: Optional[int] = None
    from_address: str
    to_address: str
    value: Decimal
    gas_limit: str
    gas_used: str
    gas_price: str
    effective_gas_price: Optional[str] = None
    nonce: int
    data: str = "0x"
    type: int = 0
    status: TransactionStatus
    timestamp: int  # milliseconds
    confirmations: int = 0
    max_fee_per_gas: Optional[str] = None
    max_priority_fee_per_gas: Optional[str] = None
    explorer_url: Optional[str] = None


class PendingSend(BaseModel):
    """Send form state; lives only until submission"""
    recipient: str
    amount: str
    estimated_gas: Optional[str] = None
