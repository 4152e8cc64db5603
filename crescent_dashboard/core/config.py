"""
Configuration management for crescent-dashboard.

Settings are resolved in priority order:
1) environment variables (a local .env file is loaded first)
2) config/config.yaml
3) built-in defaults

Config holds the resolved process-wide defaults; ExporterSettings is the
effective configuration handed to the service once CLI arguments are applied.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


# Load config.yaml
def _load_config_yaml(path: str = "config/config.yaml") -> dict:
    """Load configuration from config.yaml."""
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml_config = _load_config_yaml()


def _setting(name: str, default: Any) -> Any:
    """Look a setting up in the environment, then config.yaml, then fall back to default."""
    value = os.getenv(name)
    if value is not None:
        return value
    return _yaml_config.get(name, default)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item).strip() for item in value if str(item).strip()]


class Config:
    """Configuration defaults for crescent-dashboard."""

    # Node REST gateway (host:port or full URL)
    NODE_ADDRESS: str = str(_setting("NODE_ADDRESS", ""))
    # Plain HTTP instead of TLS when NODE_ADDRESS carries no scheme
    NODE_INSECURE: bool = _as_bool(_setting("NODE_INSECURE", "false"))

    # Price feed
    PRICE_API_BASE_URL: str = str(_setting("PRICE_API_BASE_URL", ""))

    # Per-request deadline for node and price feed calls (seconds)
    REQUEST_TIMEOUT: float = float(_setting("REQUEST_TIMEOUT", "5.0"))

    # Metrics endpoint
    LISTEN_PORT: int = int(_setting("LISTEN_PORT", "2112"))

    # Addresses whose balances are exported
    TRACKED_ADDRESSES: List[str] = _as_list(_setting("TRACKED_ADDRESSES", ""))

    # Refresh periods (seconds)
    PAIRS_INTERVAL: float = float(_setting("PAIRS_INTERVAL", "60"))
    POOLS_INTERVAL: float = float(_setting("POOLS_INTERVAL", "2"))
    PRICES_INTERVAL: float = float(_setting("PRICES_INTERVAL", "2"))
    LIQUID_STAKING_INTERVAL: float = float(_setting("LIQUID_STAKING_INTERVAL", "2"))
    BALANCES_INTERVAL: float = float(_setting("BALANCES_INTERVAL", "2"))

    # Logging
    LOG_LEVEL: str = str(_setting("LOG_LEVEL", "INFO"))
    LOG_FILE: str = str(_setting("LOG_FILE", "data/crescent-dashboard.log"))


@dataclass
class RefreshIntervals:
    """Refresh period per domain, in seconds."""

    pairs: float = 60.0
    pools: float = 2.0
    prices: float = 2.0
    liquid_staking: float = 2.0
    balances: float = 2.0

    def as_dict(self) -> Dict[str, float]:
        return {
            "pairs": self.pairs,
            "pools": self.pools,
            "prices": self.prices,
            "liquid_staking": self.liquid_staking,
            "balances": self.balances,
        }


@dataclass
class ExporterSettings:
    """
    Effective service settings.

    Attributes:
        node_address: Node REST gateway address
        price_api_base_url: Price feed base URL
        insecure: Use plain HTTP for the node when no scheme is given
        listen_port: Port for the /metrics endpoint
        tracked_addresses: Addresses whose balances are exported
        request_timeout: Per-call deadline in seconds
        intervals: Refresh period per domain
    """

    node_address: str
    price_api_base_url: str
    insecure: bool = False
    listen_port: int = 2112
    tracked_addresses: List[str] = field(default_factory=list)
    request_timeout: float = 5.0
    intervals: RefreshIntervals = field(default_factory=RefreshIntervals)

    @classmethod
    def from_config(cls, **overrides: Any) -> "ExporterSettings":
        """
        Build settings from Config, applying non-None overrides (e.g. CLI arguments).

        Args:
            **overrides: Field values taking priority over Config

        Returns:
            ExporterSettings instance
        """
        settings = cls(
            node_address=Config.NODE_ADDRESS,
            price_api_base_url=Config.PRICE_API_BASE_URL,
            insecure=Config.NODE_INSECURE,
            listen_port=Config.LISTEN_PORT,
            tracked_addresses=list(Config.TRACKED_ADDRESSES),
            request_timeout=Config.REQUEST_TIMEOUT,
            intervals=RefreshIntervals(
                pairs=Config.PAIRS_INTERVAL,
                pools=Config.POOLS_INTERVAL,
                prices=Config.PRICES_INTERVAL,
                liquid_staking=Config.LIQUID_STAKING_INTERVAL,
                balances=Config.BALANCES_INTERVAL,
            ),
        )
        for name, value in overrides.items():
            if value is None:
                continue
            if not hasattr(settings, name):
                raise TypeError(f"Unknown setting: {name}")
            setattr(settings, name, value)
        return settings

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExporterSettings":
        """
        Create settings from a dictionary (e.g. a parsed YAML document).

        Args:
            data: Settings dictionary

        Returns:
            ExporterSettings instance
        """
        intervals = RefreshIntervals(**(data.get("intervals") or {}))
        return cls(
            node_address=data.get("node_address", ""),
            price_api_base_url=data.get("price_api_base_url", ""),
            insecure=_as_bool(data.get("insecure", False)),
            listen_port=int(data.get("listen_port", 2112)),
            tracked_addresses=_as_list(data.get("tracked_addresses")),
            request_timeout=float(data.get("request_timeout", 5.0)),
            intervals=intervals,
        )

    @classmethod
    def load(cls, config_path: Path) -> "ExporterSettings":
        """
        Load settings from a YAML file.

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    def validate(self) -> List[str]:
        """
        Validate settings.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.node_address:
            errors.append("node_address is required")

        if not self.price_api_base_url:
            errors.append("price_api_base_url is required")

        if not (0 < self.listen_port < 65536):
            errors.append("listen_port must be between 1 and 65535")

        if self.request_timeout <= 0:
            errors.append("request_timeout must be positive")

        for name, interval in self.intervals.as_dict().items():
            if interval <= 0:
                errors.append(f"intervals.{name} must be positive")

        if any(not address.strip() for address in self.tracked_addresses):
            errors.append("tracked_addresses must not contain empty addresses")

        if len(set(self.tracked_addresses)) != len(self.tracked_addresses):
            errors.append("tracked_addresses must not contain duplicates")

        return errors

    def describe(self) -> str:
        intervals = ", ".join(f"{name}={value:g}s" for name, value in self.intervals.as_dict().items())
        return (
            f"node={self.node_address} (insecure={self.insecure}), "
            f"prices={self.price_api_base_url}, port={self.listen_port}, "
            f"tracked_addresses={len(self.tracked_addresses)}, {intervals}"
        )
