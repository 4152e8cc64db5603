"""
Collector layer for crescent-dashboard.

This module refreshes the snapshot store and exports it to Prometheus.
"""
from crescent_dashboard.collector.exporter import Observation, SnapshotExporter, serve_metrics
from crescent_dashboard.collector.refresh import RefreshOutcome, Refresher, RefreshTask, build_refresh_tasks

__all__ = [
    "Observation",
    "SnapshotExporter",
    "serve_metrics",
    "RefreshOutcome",
    "Refresher",
    "RefreshTask",
    "build_refresh_tasks",
]
