# src/polywallet/wallet/validation.py
from decimal import Decimal, InvalidOperation
from typing import Union

from web3 import Web3

from ..exceptions import InvalidAddress, InvalidAmount
from ..services.blockchain import BlockchainService

MAX_DECIMALS = 18  # wei precision


def validate_address(address: str) -> str:
    """Return the checksummed form of a 0x-prefixed 40-hex-digit address"""
    if not isinstance(address, str) or not BlockchainService.is_valid_address(address.strip()):
        raise InvalidAddress()
    return Web3.to_checksum_address(address.strip().lower())


def parse_amount(amount: Union[str, Decimal, int, float]) -> Decimal:
    """Parse a user-entered amount into a positive Decimal in base units"""
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount() from None

    if not value.is_finite() or value <= 0:
        raise InvalidAmount()
    if -value.as_tuple().exponent > MAX_DECIMALS:
        raise InvalidAmount(f"Amount supports at most {MAX_DECIMALS} decimal places")
    return value
