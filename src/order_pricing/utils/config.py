"""
Configuration utilities for the order pricing tool.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv


class Config:
    """Configuration manager for order pricing."""

    def __init__(self, env_file: Optional[str] = None) -> None:
        """Initialize configuration.

        If an env_file path is provided, load environment variables from it.
        Otherwise, do not auto-load a .env file to keep defaults predictable.
        """
        self.env_file = env_file
        self._load_environment()
        self._config = self._load_config()

    def _load_environment(self) -> None:
        """Load environment variables from explicit .env file if provided."""
        if not self.env_file:
            return
        env_path = Path(self.env_file)
        if env_path.exists():
            load_dotenv(env_path)

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        return {
            # Core settings
            "log_level": self._get_str("LOG_LEVEL", default="INFO"),
            # Checkout context
            "service_charge_percent": self._get_float("SERVICE_CHARGE_PERCENT", default=0.0),
            "default_order_type": self._get_str("DEFAULT_ORDER_TYPE", default="dine_in"),
            # MongoDB settings for the tax rule source
            "mongo_url": self._get_str("DB_CONNECTION_URL", default=""),
            "mongo_db": self._get_str("DB_NAME", default="POS_MASTER_DATA"),
            "tax_rule_collection": self._get_str("TAX_RULE_COLLECTION", default="TAX_RULES"),
        }

    def _get_str(self, key: str, default: str = "") -> str:
        """Get string configuration value."""
        if self.env_file is None:
            return default
        return os.getenv(key, default)

    def _get_float(self, key: str, default: float = 0.0) -> float:
        """Get float configuration value."""
        if self.env_file is None:
            return default
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Get configuration value using bracket notation."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if configuration key exists."""
        return key in self._config
