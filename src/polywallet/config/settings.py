# File: src/polywallet/config/settings.py

import copy
import os
from typing import Dict, Any, Optional

import yaml

from ..utils.config import Config
from ..wallet.models import NetworkConfig

ANKR_API_KEY_ENV = "ANKR_API_KEY"


class WalletSettings:
    def __init__(self, config_path: str = "config/wallet.yaml"):
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        if not os.path.exists(self.config_path):
            return self._create_default_config()

        with open(self.config_path, 'r') as f:
            loaded = yaml.safe_load(f) or {}

        # Fill in sections added since the file was written
        config = self._default_config()
        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values
        return config

    @staticmethod
    def _default_config() -> Dict[str, Any]:
        return {
            "network": {
                "default": Config.DEFAULT_NETWORK,
                "ankr_api_key": "",
                "polling_interval": Config.POLLING_INTERVAL,
                "request_timeout": Config.REQUEST_TIMEOUT,
                "networks": copy.deepcopy(Config.NETWORKS),
            },
            "storage": {
                "path": Config.STORAGE_PATH,
                "keychain_service": Config.DEFAULT_KEYCHAIN_SERVICE,
            },
            "wallet": {
                "history_page_size": Config.HISTORY_PAGE_SIZE,
                "gas_debounce": Config.GAS_ESTIMATE_DEBOUNCE,
                "require_biometrics": False,
            },
            "monitoring": {
                "log_dir": "logs",
                "log_level": "INFO",
            },
            "api": {
                "host": "127.0.0.1",
                "port": 8000,
            },
        }

    def _create_default_config(self) -> Dict[str, Any]:
        config = self._default_config()

        directory = os.path.dirname(self.config_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.config_path, 'w') as f:
            yaml.safe_dump(config, f, sort_keys=False)

        return config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        try:
            keys = key.split('.')
            value = self.config
            for k in keys:
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def update(self, key: str, value: Any):
        """Update configuration value."""
        keys = key.split('.')
        config = self.config
        for k in keys[:-1]:
            config = config.setdefault(k, {})
        config[keys[-1]] = value

        with open(self.config_path, 'w') as f:
            yaml.safe_dump(self.config, f, sort_keys=False)

    @property
    def ankr_api_key(self) -> str:
        """Ankr API key, the environment taking precedence over the file"""
        return os.environ.get(ANKR_API_KEY_ENV) or self.get("network.ankr_api_key", "") or ""

    def rpc_endpoints(self) -> Dict[str, str]:
        api_key = self.ankr_api_key
        return {
            name: template.format(api_key=api_key)
            for name, template in Config.RPC_ENDPOINTS.items()
        }

    def history_endpoint(self) -> str:
        return self.rpc_endpoints()['ANKR_MULTICHAIN']

    def networks(self) -> Dict[str, NetworkConfig]:
        """Network table with endpoint names resolved to URLs"""
        endpoints = self.rpc_endpoints()
        networks = {}
        for key, network in self.get("network.networks", {}).items():
            rpc_url: Optional[str] = network.get("rpc_url")
            if not rpc_url:
                rpc_url = endpoints[network["rpc_endpoint"]]
            networks[key] = NetworkConfig(
                name=network["name"],
                chain_id=network["chain_id"],
                rpc_url=rpc_url,
                symbol=network["symbol"],
                explorer=network.get("explorer"),
                history_blockchain=network.get("history_blockchain", key),
            )
        return networks
