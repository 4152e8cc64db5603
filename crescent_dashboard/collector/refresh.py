"""
Refresh tasks, one per data domain.

Each refresh fetches from a collaborator, derives the domain's new collection
and publishes it with a single store replace(). Nothing is published when a
refresh fails, so the previous value stays visible.

Dependency rules:
- pools need both pairs and prices; before both exist a pools refresh is a no-op
- balances need prices; before they exist a balances refresh is a no-op

Partial-failure policy:
- pools: a pool whose reserves include an unpriced denom (or whose base
  reserve is empty) is left out, the rest of the batch is published;
  a pool referencing an unknown pair aborts the whole cycle
- balances: any address query failure or unpriced denom aborts the whole cycle
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Mapping, Optional, Sequence

from loguru import logger

from crescent_dashboard.connectors.node_client import NodeQueryClient
from crescent_dashboard.connectors.price_feed import PriceFeed
from crescent_dashboard.core.config import RefreshIntervals
from crescent_dashboard.core.errors import DashboardError, InconsistentStateError, MissingPriceError
from crescent_dashboard.core.models import (
    BalanceEntry,
    LiquidStakingState,
    Pair,
    Pool,
    PoolRecord,
)
from crescent_dashboard.core.store import SnapshotStore
from crescent_dashboard.core.valuation import coin_value, scale_amount, spot_price, total_value

logger = logger.bind(context="refresh")


class RefreshOutcome(str, Enum):
    """Result of one refresh invocation."""
    PUBLISHED = "published"  # new value replaced the domain
    SKIPPED = "skipped"      # dependency not populated yet
    FAILED = "failed"        # error recovered, prior value kept


class Refresher:
    """
    Computes and publishes every domain into a SnapshotStore.

    Methods raise DashboardError subclasses on failure; RefreshTask.run_once
    is the boundary that recovers them.
    """

    def __init__(
        self,
        store: SnapshotStore,
        node: NodeQueryClient,
        price_feed: PriceFeed,
        tracked_addresses: Sequence[str] = (),
    ):
        """
        Initialize refresher.

        Args:
            store: Shared snapshot store
            node: Node query collaborator
            price_feed: Price feed collaborator
            tracked_addresses: Fixed list of addresses whose balances are tracked
        """
        self.store = store
        self.node = node
        self.price_feed = price_feed
        self.tracked_addresses = tuple(tracked_addresses)

    def refresh_pairs(self) -> RefreshOutcome:
        records = self.node.query_pairs()
        pairs = {record.id: Pair.from_record(record) for record in records}

        generation = self.store.pairs.replace(pairs)
        logger.debug(f"Published {len(pairs)} pairs (generation {generation})")
        return RefreshOutcome.PUBLISHED

    def refresh_prices(self) -> RefreshOutcome:
        prices = self.price_feed.query_live_prices()

        generation = self.store.prices.replace(prices)
        logger.debug(f"Published {len(prices)} prices (generation {generation})")
        return RefreshOutcome.PUBLISHED

    def refresh_pools(self) -> RefreshOutcome:
        """
        Derive pool price and value from the current pairs and prices.

        Returns:
            SKIPPED until pairs and prices have both been published

        Raises:
            FetchError: If the pools query fails
            InconsistentStateError: If a pool references an unknown pair
        """
        if not self.store.pairs.read() or not self.store.prices.read():
            logger.debug("Pools refresh skipped: pairs or prices not available yet")
            return RefreshOutcome.SKIPPED

        records = self.node.query_pools()

        # Snapshots are immutable; no lock is held past these reads
        pairs, pairs_generation = self.store.pairs.read_with_generation()
        prices, prices_generation = self.store.prices.read_with_generation()
        if not pairs or not prices:
            logger.debug("Pools refresh skipped: pairs or prices emptied during query")
            return RefreshOutcome.SKIPPED

        pools = {}
        for record in records:
            pair = pairs.get(record.pair_id)
            if pair is None:
                raise InconsistentStateError(f"pair not found: {record.pair_id} (pool {record.id})")

            pool = self._derive_pool(record, pair, prices)
            if pool is not None:
                pools[pool.id] = pool

        generation = self.store.pools.replace(pools)
        logger.debug(
            f"Published {len(pools)}/{len(records)} pools (generation {generation}, "
            f"pairs gen {pairs_generation}, prices gen {prices_generation})"
        )
        return RefreshOutcome.PUBLISHED

    @staticmethod
    def _derive_pool(record: PoolRecord, pair: Pair, prices: Mapping) -> Optional[Pool]:
        price = spot_price(record.amount_of(pair.quote_coin_denom), record.amount_of(pair.base_coin_denom))
        if price is None:
            logger.warning(f"Skipping pool {record.id}: no {pair.base_coin_denom} reserve")
            return None

        try:
            value = total_value(record.balances, prices)
        except MissingPriceError as e:
            logger.warning(f"Skipping pool {record.id}: {e}")
            return None

        return Pool(
            id=record.id,
            pair_id=record.pair_id,
            num_deposit_requests=record.last_deposit_request_id,
            num_withdraw_requests=record.last_withdraw_request_id,
            price=price,
            value=value,
        )

    def refresh_liquid_staking_state(self) -> RefreshOutcome:
        record = self.node.query_liquid_staking_state()
        state = LiquidStakingState(
            mint_rate=record.net_amount_state.mint_rate,
            btoken_supply=scale_amount(record.net_amount_state.btoken_total_supply),
        )

        self.store.liquid_staking.replace(state)
        logger.debug(f"Published liquid staking state (mint rate {state.mint_rate})")
        return RefreshOutcome.PUBLISHED

    def refresh_balances(self) -> RefreshOutcome:
        """
        Value every tracked address's balances against the current prices.

        Returns:
            SKIPPED until prices have been published

        Raises:
            FetchError: If any address's query fails
            MissingPriceError: If any held denom has no price
        """
        if not self.store.prices.read():
            logger.debug("Balances refresh skipped: prices not available yet")
            return RefreshOutcome.SKIPPED

        holdings = {address: self.node.query_balances(address) for address in self.tracked_addresses}
        prices = self.store.prices.read()
        if not prices:
            logger.debug("Balances refresh skipped: prices emptied during query")
            return RefreshOutcome.SKIPPED

        balances = {}
        for address, coins in holdings.items():
            entries: List[BalanceEntry] = []
            for coin in coins:
                price = prices.get(coin.denom)
                if price is None:
                    raise MissingPriceError(coin.denom, where=f"address {address}")
                entries.append(
                    BalanceEntry(
                        denom=coin.denom,
                        amount=scale_amount(coin.amount),
                        value=coin_value(coin.amount, price),
                    )
                )
            balances[address] = entries

        generation = self.store.balances.replace(balances)
        logger.debug(f"Published balances of {len(balances)} addresses (generation {generation})")
        return RefreshOutcome.PUBLISHED


@dataclass
class RefreshTask:
    """A named refresh bound to its period."""

    name: str
    interval: float
    refresh: Callable[[], RefreshOutcome]

    def run_once(self) -> RefreshOutcome:
        """
        Run one refresh cycle.

        Refresh errors are logged and recovered here; the store keeps its
        previous value and the next tick tries again.
        """
        try:
            return self.refresh()
        except DashboardError as e:
            logger.error(f"failed to update {self.name}: {e}")
            return RefreshOutcome.FAILED


def build_refresh_tasks(refresher: Refresher, intervals: RefreshIntervals) -> List[RefreshTask]:
    """Bind each domain's refresh to its configured period."""
    return [
        RefreshTask("pairs", intervals.pairs, refresher.refresh_pairs),
        RefreshTask("pools", intervals.pools, refresher.refresh_pools),
        RefreshTask("prices", intervals.prices, refresher.refresh_prices),
        RefreshTask("liquid_staking", intervals.liquid_staking, refresher.refresh_liquid_staking_state),
        RefreshTask("balances", intervals.balances, refresher.refresh_balances),
    ]
