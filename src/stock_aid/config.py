"""
Configuration for stock-aid.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

PLUGIN_NAME = "datasette-stock-aid"

DATA_DIR = Path(__file__).parent / "data"
DEFAULT_ZIP_CODES_PATH = DATA_DIR / "zip_codes.tsv"
DEFAULT_ITEM_TOKENS_PATH = DATA_DIR / "item_tokens.txt"


@dataclass
class TransactionConfig:
    """Retry behaviour for per-item units of work."""

    max_attempts: int = 5
    busy_timeout_seconds: float = 5.0
    retry_backoff_seconds: float = 0.05


@dataclass
class PlacesConfig:
    """Google Places API configuration used to vet new stores."""

    api_base: str = "https://maps.googleapis.com/maps/api/place"
    api_key: str | None = None
    api_key_env: str | None = "MAPS_CLIENT_API_KEY"
    timeout_seconds: float = 10.0

    def get_api_key(self) -> str | None:
        """Get API key from config or environment."""
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        return None


@dataclass
class StockAidConfig:
    """Complete stock-aid configuration."""

    db_path: Path = field(default_factory=lambda: Path("stock_aid.db"))
    zip_codes_path: Path = DEFAULT_ZIP_CODES_PATH
    item_tokens_path: Path = DEFAULT_ITEM_TOKENS_PATH
    query_stores_limit: int = 10  # Maximum number of stores in a store listing

    transaction: TransactionConfig = field(default_factory=TransactionConfig)
    places: PlacesConfig = field(default_factory=PlacesConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StockAidConfig":
        """Create config from a dictionary (e.g., from YAML or plugin config)."""
        config = cls()

        if "db_path" in data:
            config.db_path = Path(data["db_path"])
        if "zip_codes_path" in data:
            config.zip_codes_path = Path(data["zip_codes_path"])
        if "item_tokens_path" in data:
            config.item_tokens_path = Path(data["item_tokens_path"])
        if "query_stores_limit" in data:
            config.query_stores_limit = int(data["query_stores_limit"])

        if "transaction" in data:
            tx = data["transaction"] or {}
            config.transaction = TransactionConfig(
                max_attempts=tx.get("max_attempts", 5),
                busy_timeout_seconds=tx.get("busy_timeout_seconds", 5.0),
                retry_backoff_seconds=tx.get("retry_backoff_seconds", 0.05),
            )

        if "places" in data:
            places = data["places"] or {}
            config.places = PlacesConfig(
                api_base=places.get("api_base", config.places.api_base),
                api_key=places.get("api_key"),
                api_key_env=places.get("api_key_env", "MAPS_CLIENT_API_KEY"),
                timeout_seconds=places.get("timeout_seconds", 10.0),
            )

        return config

    @classmethod
    def from_yaml(cls, path: Path) -> "StockAidConfig":
        """Load config from a YAML file (datasette.yaml format)."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        # Look for config under plugins.datasette-stock-aid
        plugin_config = (data.get("plugins") or {}).get(PLUGIN_NAME) or {}
        return cls.from_dict(plugin_config)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for JSON serialization."""
        return {
            "db_path": str(self.db_path),
            "zip_codes_path": str(self.zip_codes_path),
            "item_tokens_path": str(self.item_tokens_path),
            "query_stores_limit": self.query_stores_limit,
            "transaction": {
                "max_attempts": self.transaction.max_attempts,
                "busy_timeout_seconds": self.transaction.busy_timeout_seconds,
                "retry_backoff_seconds": self.transaction.retry_backoff_seconds,
            },
            "places": {
                "api_base": self.places.api_base,
                "api_key_env": self.places.api_key_env,
                "timeout_seconds": self.places.timeout_seconds,
            },
        }
