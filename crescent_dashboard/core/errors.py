"""
Error taxonomy for the refresh pipeline.

All errors raised while refreshing a domain derive from DashboardError so the
refresh-task boundary can recover them in one place:
- FetchError: a collaborator call failed (network, timeout, bad status, bad payload)
- InconsistentStateError: two collaborator responses disagree (e.g. unknown pair id)
- MissingPriceError: a denom has no entry in the current price table
"""
from typing import Optional


class DashboardError(Exception):
    """Base class for recoverable refresh errors."""


class FetchError(DashboardError):
    """A node or price-feed call failed."""

    def __init__(self, message: str, endpoint: Optional[str] = None):
        self.endpoint = endpoint
        if endpoint:
            message = f"{endpoint}: {message}"
        super().__init__(message)


class InconsistentStateError(DashboardError):
    """A cross-reference that must resolve is absent."""


class MissingPriceError(DashboardError):
    """A required denom is absent from the price table."""

    def __init__(self, denom: str, where: Optional[str] = None):
        self.denom = denom
        self.where = where
        message = f"price not found: {denom}"
        if where:
            message = f"{message} ({where})"
        super().__init__(message)
