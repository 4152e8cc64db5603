"""Core modules for crescent-dashboard."""

from crescent_dashboard.core.config import Config, ExporterSettings, RefreshIntervals
from crescent_dashboard.core.errors import DashboardError, FetchError, InconsistentStateError, MissingPriceError
from crescent_dashboard.core.models import *
from crescent_dashboard.core.scheduler import PeriodicTask, Scheduler
from crescent_dashboard.core.store import DomainSlot, ReadWriteLock, SnapshotStore
from crescent_dashboard.core.valuation import UNIT_SCALE, coin_value, scale_amount, spot_price, total_value

__all__ = [
    # Config
    "Config",
    "ExporterSettings",
    "RefreshIntervals",

    # Errors
    "DashboardError",
    "FetchError",
    "InconsistentStateError",
    "MissingPriceError",

    # Models
    "Coin",
    "PairRecord",
    "PoolRecord",
    "LiquidStakingStateRecord",
    "Pair",
    "Pool",
    "LiquidStakingState",
    "BalanceEntry",

    # Scheduler
    "PeriodicTask",
    "Scheduler",

    # Store
    "DomainSlot",
    "ReadWriteLock",
    "SnapshotStore",

    # Valuation
    "UNIT_SCALE",
    "coin_value",
    "scale_amount",
    "spot_price",
    "total_value",
]
