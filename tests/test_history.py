# tests/test_history.py
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from polywallet.exceptions import BlockchainError
from polywallet.wallet.history import (
    derive_direction,
    derive_status,
    hex_to_int,
    reconcile_history,
    reconcile_record,
)

WALLET = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"
OTHER = "0x1111111111111111111111111111111111111111"


def raw_record(**overrides):
    record = {
        "blockchain": "polygon",
        "hash": "0x" + "aa" * 32,
        "from": OTHER,
        "to": WALLET.lower(),
        "value": hex(15 * 10 ** 17),  # 1.5 ether
        "timestamp": hex(1_700_000_000),
        "blockNumber": hex(50_000_000),
        "status": "0x1",
        "gas": "0x5208",
    }
    record.update(overrides)
    return record


class TestHexDecoding:
    @pytest.mark.parametrize("value,expected", [
        ("0x1a", 26),
        ("0X1A", 26),
        ("26", 26),
        (26, 26),
        ("0x", 0),
        (None, 0),
        ("", 0),
    ])
    def test_hex_to_int(self, value, expected):
        assert hex_to_int(value) == expected

    def test_malformed_numeric_field(self):
        with pytest.raises(BlockchainError):
            hex_to_int("0xzz")


class TestDirection:
    def test_received_when_to_matches_case_insensitively(self):
        assert derive_direction(WALLET.lower(), WALLET) == "received"
        assert derive_direction(WALLET.upper().replace("0X", "0x"), WALLET) == "received"

    def test_sent_when_to_differs(self):
        assert derive_direction(OTHER, WALLET) == "sent"

    def test_contract_creation_counts_as_sent(self):
        assert derive_direction(None, WALLET) == "sent"
        assert derive_direction("", WALLET) == "sent"


class TestStatus:
    def test_status_values(self):
        assert derive_status("0x1") == "success"
        assert derive_status("0x0") == "failed"
        assert derive_status(1) == "success"
        assert derive_status(None) == "success"


class TestReconcile:
    def test_record_conversion(self):
        record = reconcile_record(raw_record(), WALLET)

        assert record.hash == "0x" + "aa" * 32
        assert record.from_address == OTHER
        assert record.value == Decimal("1.5")
        assert record.timestamp_ms == 1_700_000_000_000
        assert record.timestamp == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
        assert record.block_number == 50_000_000
        assert record.status == "success"
        assert record.direction == "received"

    def test_outgoing_failed_record(self):
        record = reconcile_record(raw_record(**{"from": WALLET, "to": OTHER, "status": "0x0"}), WALLET)
        assert record.direction == "sent"
        assert record.status == "failed"

    def test_missing_hash_is_malformed(self):
        raw = raw_record()
        del raw["hash"]
        with pytest.raises(BlockchainError):
            reconcile_record(raw, WALLET)

    def test_history_keeps_gateway_order_and_duplicates(self):
        records = [
            raw_record(hash="0x03", timestamp=hex(300)),
            raw_record(hash="0x01", timestamp=hex(100), to=OTHER),
            raw_record(hash="0x01", timestamp=hex(100), to=OTHER),
        ]
        history = reconcile_history(records, WALLET, next_page_token="page-2")

        assert [tx.hash for tx in history.transactions] == ["0x03", "0x01", "0x01"]
        assert [tx.direction for tx in history.transactions] == ["received", "sent", "sent"]
        assert history.next_page_token == "page-2"

    def test_empty_history(self):
        history = reconcile_history([], WALLET)
        assert history.transactions == []
        assert history.next_page_token is None
