"""Prometheus exporter for Crescent chain liquidity, liquid staking and balance state."""

__version__ = "0.1.0"
