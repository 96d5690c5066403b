# tests/test_config.py
import logging

import pytest
import yaml

from polywallet.config.settings import ANKR_API_KEY_ENV, WalletSettings
from polywallet.monitoring.logging_config import LogConfig
from polywallet.utils.config import Config
from polywallet.utils.logger import SecretFilter, get_logger


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / "config" / "wallet.yaml")


@pytest.fixture(autouse=True)
def no_env_key(monkeypatch):
    monkeypatch.delenv(ANKR_API_KEY_ENV, raising=False)


class TestWalletSettings:
    def test_default_file_is_created(self, config_path):
        settings = WalletSettings(config_path)

        with open(config_path) as f:
            on_disk = yaml.safe_load(f)
        assert on_disk["network"]["default"] == Config.DEFAULT_NETWORK
        assert settings.get("wallet.history_page_size") == Config.HISTORY_PAGE_SIZE
        assert settings.get("storage.keychain_service") == Config.DEFAULT_KEYCHAIN_SERVICE

    def test_missing_key_returns_default(self, config_path):
        settings = WalletSettings(config_path)
        assert settings.get("network.nope", 42) == 42
        assert settings.get("api.port.deeper") is None

    def test_update_persists(self, config_path):
        WalletSettings(config_path).update("api.port", 9000)
        assert WalletSettings(config_path).get("api.port") == 9000

    def test_partial_file_is_merged_with_defaults(self, config_path, tmp_path):
        (tmp_path / "config").mkdir()
        with open(config_path, "w") as f:
            yaml.safe_dump({"network": {"ankr_api_key": "file-key"}}, f)

        settings = WalletSettings(config_path)
        assert settings.ankr_api_key == "file-key"
        assert settings.get("network.default") == Config.DEFAULT_NETWORK
        assert settings.get("monitoring.log_level") == "INFO"

    def test_environment_key_wins(self, config_path, monkeypatch):
        settings = WalletSettings(config_path)
        settings.update("network.ankr_api_key", "file-key")
        monkeypatch.setenv(ANKR_API_KEY_ENV, "env-key")

        assert settings.ankr_api_key == "env-key"
        assert settings.history_endpoint() == "https://rpc.ankr.com/multichain/env-key"

    def test_networks_resolve_endpoints(self, config_path, monkeypatch):
        monkeypatch.setenv(ANKR_API_KEY_ENV, "k")
        networks = WalletSettings(config_path).networks()

        polygon = networks["polygon"]
        assert polygon.chain_id == 137
        assert polygon.symbol == "POL"
        assert polygon.rpc_url == "https://rpc.ankr.com/polygon/k"
        assert polygon.history_blockchain == "polygon"

    def test_explicit_rpc_url(self, config_path):
        settings = WalletSettings(config_path)
        settings.update("network.networks.amoy", {
            "name": "Amoy",
            "chain_id": 80002,
            "rpc_url": "http://localhost:8545",
            "symbol": "POL",
        })

        amoy = settings.networks()["amoy"]
        assert amoy.rpc_url == "http://localhost:8545"
        assert amoy.history_blockchain == "amoy"
        assert amoy.explorer_tx_url("0x01") is None


class TestLogging:
    def test_secret_filter_masks_messages(self):
        record = logging.LogRecord(
            "web3", logging.DEBUG, __file__, 1,
            "POST https://rpc.ankr.com/polygon/%s", ("abc123",), None
        )
        assert SecretFilter(["abc123", ""]).filter(record)
        assert record.getMessage() == "POST https://rpc.ankr.com/polygon/***"

    def test_secret_filter_without_secrets_leaves_record(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "value %d", (5,), None)
        SecretFilter().filter(record)
        assert record.args == (5,)

    def test_get_logger_reuses_handler(self):
        logger = get_logger("polywallet.tests.logger", secrets=["s"])
        again = get_logger("polywallet.tests.logger", level=logging.DEBUG)

        assert logger is again
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG

    def test_setup_logging_writes_masked_file(self, tmp_path):
        log_config = LogConfig(log_dir=str(tmp_path / "logs"), level="warning", secrets=["topsecret"])
        root = logging.getLogger()
        previous = list(root.handlers)
        previous_level = root.level
        try:
            log_config.setup_logging()
            logging.getLogger("polywallet.tests").info("key=topsecret")
            for handler in root.handlers:
                handler.flush()
        finally:
            for handler in root.handlers[:]:
                if handler not in previous:
                    root.removeHandler(handler)
                    handler.close()
            root.setLevel(previous_level)

        assert log_config.level == logging.WARNING
        with open(log_config.log_file) as f:
            contents = f.read()
        assert "key=***" in contents
        assert "topsecret" not in contents
