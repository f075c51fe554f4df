# File: src/walletsim/config/settings.py

import yaml
import os
from typing import Dict, Any

from ..utils.config import Config

class Settings:
    """YAML-backed runtime settings, written with defaults on first use"""

    def __init__(self, config_path: str = "config/walletsim.yaml"):
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        if not os.path.exists(self.config_path):
            return self._create_default_config()

        with open(self.config_path, 'r') as f:
            loaded = yaml.safe_load(f)
        return loaded if isinstance(loaded, dict) else self._create_default_config()

    @staticmethod
    def default_config() -> Dict[str, Any]:
        return {
            "storage": {
                "db_path": Config.DB_PATH
            },
            "market": {
                "price_api_url": Config.PRICE_API_URL,
                "fiat_rate_url": Config.FIAT_RATE_API_URL,
                "fiat_currency": Config.FIAT_CURRENCY,
                "request_timeout": Config.REQUEST_TIMEOUT
            },
            "sync": {
                "price_cooldown": Config.PRICE_COOLDOWN,
                "fiat_rate_interval": Config.FIAT_RATE_INTERVAL,
                "tick_interval": Config.REFRESH_TICK,
                "forced_min_delay": Config.FORCED_REFRESH_MIN_DELAY
            },
            "monitoring": {
                "metrics_port": None,
                "log_dir": "logs",
                "log_level": "INFO"
            }
        }

    def _create_default_config(self) -> Dict[str, Any]:
        config = self.default_config()

        directory = os.path.dirname(self.config_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.config_path, 'w') as f:
            yaml.safe_dump(config, f)

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
            yaml.safe_dump(self.config, f)
