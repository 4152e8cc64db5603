"""
Prometheus exporter for the snapshot store.

SnapshotExporter is a custom prometheus_client collector: on every scrape it
reads each domain once (a shared lock per domain, released immediately) and
turns the snapshot into gauge samples. It never writes to the store and never
raises for missing data; an empty domain simply contributes no samples.

Example:
    registry = CollectorRegistry()
    registry.register(SnapshotExporter(store))
    start_http_server(2112, registry=registry)
"""
from dataclasses import dataclass
from typing import Dict, Iterator, List, Tuple

from loguru import logger
from prometheus_client import REGISTRY, CollectorRegistry, start_http_server
from prometheus_client.core import GaugeMetricFamily

from crescent_dashboard.core.store import SnapshotStore

logger = logger.bind(context="exporter")

METRIC_PREFIX = "crescent"

# name -> (help, label names)
METRICS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "num_orders": ("Cumulative number of orders of a pair", ("pair_id",)),
    "last_price": ("Last traded price of a pair", ("pair_id",)),
    "current_batch_id": ("Current batch id of a pair", ("pair_id",)),
    "num_deposit_requests": ("Cumulative number of deposit requests of a pool", ("pool_id",)),
    "num_withdraw_requests": ("Cumulative number of withdraw requests of a pool", ("pool_id",)),
    "pool_price": ("Spot price of a pool (quote per base)", ("pool_id",)),
    "pool_value": ("Total value of a pool's reserves", ("pool_id",)),
    "price": ("Live oracle price of a denom", ("denom",)),
    "mint_rate": ("bToken mint rate", ()),
    "btoken_supply": ("bToken total supply", ()),
    "balance": ("Balance held by a tracked address", ("address", "denom")),
    "balance_value": ("Value of a balance held by a tracked address", ("address", "denom")),
}


@dataclass(frozen=True)
class Observation:
    """One labeled gauge sample."""

    name: str
    value: float
    labels: Tuple[Tuple[str, str], ...] = ()

    @property
    def metric_name(self) -> str:
        return f"{METRIC_PREFIX}_{self.name}"

    def label_dict(self) -> Dict[str, str]:
        return dict(self.labels)


class SnapshotExporter:
    """Read-only prometheus collector over a SnapshotStore."""

    def __init__(self, store: SnapshotStore):
        self.store = store

    def observations(self) -> List[Observation]:
        """
        Produce the current samples, one per published member.

        Returns:
            Observations ordered by domain, then by id/denom/address
        """
        observations: List[Observation] = []

        pairs = self.store.pairs.read()
        for pair_id in sorted(pairs):
            pair = pairs[pair_id]
            labels = (("pair_id", str(pair_id)),)
            observations.append(Observation("num_orders", float(pair.num_orders), labels))
            if pair.last_price is not None:
                observations.append(Observation("last_price", float(pair.last_price), labels))
            observations.append(Observation("current_batch_id", float(pair.current_batch_id), labels))

        pools = self.store.pools.read()
        for pool_id in sorted(pools):
            pool = pools[pool_id]
            labels = (("pool_id", str(pool_id)),)
            observations.append(Observation("num_deposit_requests", float(pool.num_deposit_requests), labels))
            observations.append(Observation("num_withdraw_requests", float(pool.num_withdraw_requests), labels))
            observations.append(Observation("pool_price", float(pool.price), labels))
            observations.append(Observation("pool_value", float(pool.value), labels))

        prices = self.store.prices.read()
        for denom in sorted(prices):
            observations.append(Observation("price", float(prices[denom]), (("denom", denom),)))

        state = self.store.liquid_staking.read()
        if state is not None:
            observations.append(Observation("mint_rate", float(state.mint_rate)))
            observations.append(Observation("btoken_supply", float(state.btoken_supply)))

        balances = self.store.balances.read()
        for address in sorted(balances):
            for entry in balances[address]:
                labels = (("address", address), ("denom", entry.denom))
                observations.append(Observation("balance", float(entry.amount), labels))
                observations.append(Observation("balance_value", float(entry.value), labels))

        return observations

    @staticmethod
    def _family(name: str) -> GaugeMetricFamily:
        documentation, labelnames = METRICS[name]
        return GaugeMetricFamily(f"{METRIC_PREFIX}_{name}", documentation, labels=list(labelnames))

    def describe(self) -> Iterator[GaugeMetricFamily]:
        for name in METRICS:
            yield self._family(name)

    def collect(self) -> Iterator[GaugeMetricFamily]:
        families: Dict[str, GaugeMetricFamily] = {}
        for observation in self.observations():
            family = families.get(observation.name)
            if family is None:
                family = families[observation.name] = self._family(observation.name)
            family.add_metric([value for _, value in observation.labels], observation.value)

        yield from families.values()


def serve_metrics(store: SnapshotStore, port: int, registry: CollectorRegistry = REGISTRY) -> SnapshotExporter:
    """
    Register an exporter for store and serve /metrics on port.

    The HTTP server runs on prometheus_client's own daemon thread.
    """
    exporter = SnapshotExporter(store)
    registry.register(exporter)
    start_http_server(port, registry=registry)
    logger.info(f"Serving metrics on :{port}/metrics")
    return exporter
