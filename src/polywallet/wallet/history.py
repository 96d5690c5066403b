# src/polywallet/wallet/history.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Union

from web3 import Web3

from ..exceptions import BlockchainError
from .models import TransactionHistory, TransactionRecord

HexOrInt = Union[str, int, None]


def hex_to_int(value: HexOrInt, default: int = 0) -> int:
    """Decode a gateway numeric field ('0x1a', '26' or 26)"""
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        if text.lower().startswith("0x"):
            return int(text, 16) if len(text) > 2 else default
        return int(text)
    except ValueError as e:
        raise BlockchainError(f"Malformed numeric field in transaction record: {value}") from e


def wei_to_ether(value: HexOrInt) -> Decimal:
    return Decimal(Web3.from_wei(hex_to_int(value), 'ether'))


def derive_direction(to_address: Optional[str], wallet_address: str) -> str:
    """'received' iff the record pays the wallet address, compared case-insensitively"""
    if to_address and to_address.lower() == wallet_address.lower():
        return "received"
    return "sent"


def derive_status(raw_status: HexOrInt) -> str:
    # Pre-Byzantium records carry no status; they were mined, so count them as success
    if raw_status is None or raw_status == "":
        return "success"
    return "success" if hex_to_int(raw_status) == 1 else "failed"


def reconcile_record(raw: Dict[str, Any], wallet_address: str) -> TransactionRecord:
    """Turn one raw gateway record into the wallet-facing view"""
    try:
        tx_hash = raw["hash"]
        from_address = raw["from"]
    except (KeyError, TypeError) as e:
        raise BlockchainError("Malformed transaction record") from e

    to_address = raw.get("to") or ""
    seconds = hex_to_int(raw.get("timestamp"))

    return TransactionRecord(
        hash=tx_hash,
        from_address=from_address,
        to_address=to_address,
        value=wei_to_ether(raw.get("value")),
        timestamp=datetime.fromtimestamp(seconds, tz=timezone.utc),
        timestamp_ms=seconds * 1000,
        block_number=hex_to_int(raw.get("blockNumber")),
        status=derive_status(raw.get("status")),
        direction=derive_direction(to_address, wallet_address),
    )


def reconcile_history(
    records: Iterable[Dict[str, Any]],
    wallet_address: str,
    next_page_token: Optional[str] = None
) -> TransactionHistory:
    # Gateway order (most recent first) is kept as-is
    transactions: List[TransactionRecord] = [
        reconcile_record(raw, wallet_address) for raw in records
    ]
    return TransactionHistory(transactions=transactions, next_page_token=next_page_token)
