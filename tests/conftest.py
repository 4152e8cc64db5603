"""
Shared fixtures: in-memory collaborators standing in for the node and the price feed.
"""
from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from crescent_dashboard.core.errors import FetchError
from crescent_dashboard.core.models import (
    Coin,
    LiquidStakingStateRecord,
    NetAmountStateRecord,
    PairRecord,
    PoolRecord,
)
from crescent_dashboard.core.store import SnapshotStore


class FakeNode:
    """NodeQueryClient backed by plain attributes; set `fail` to make a query raise."""

    def __init__(self):
        self.pairs: List[PairRecord] = []
        self.pools: List[PoolRecord] = []
        self.state = LiquidStakingStateRecord(
            net_amount_state=NetAmountStateRecord(mint_rate=Decimal("0.98"), btoken_total_supply=3_000_000)
        )
        self.balances: Dict[str, List[Coin]] = {}
        self.fail: Dict[str, str] = {}
        self.calls: Dict[str, int] = {}

    def _call(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        if name in self.fail:
            raise FetchError(self.fail[name], endpoint=name)

    def query_pairs(self) -> List[PairRecord]:
        self._call("pairs")
        return list(self.pairs)

    def query_pools(self) -> List[PoolRecord]:
        self._call("pools")
        return list(self.pools)

    def query_liquid_staking_state(self) -> LiquidStakingStateRecord:
        self._call("liquid_staking")
        return self.state

    def query_balances(self, address: str) -> List[Coin]:
        self._call("balances")
        if address in self.fail:
            raise FetchError(self.fail[address], endpoint=address)
        return list(self.balances.get(address, []))


class FakePriceFeed:
    """PriceFeed returning a fixed table, or raising FetchError when `error` is set."""

    def __init__(self, prices: Optional[Dict[str, Decimal]] = None):
        self.prices = dict(prices or {})
        self.error: Optional[str] = None
        self.calls = 0

    def query_live_prices(self) -> Dict[str, Decimal]:
        self.calls += 1
        if self.error:
            raise FetchError(self.error, endpoint="/asset/live")
        return dict(self.prices)


def make_pair(pair_id: int, base: str = "ucre", quote: str = "ubcre", **kwargs) -> PairRecord:
    return PairRecord(id=pair_id, base_coin_denom=base, quote_coin_denom=quote, **kwargs)


def make_pool(pool_id: int, pair_id: int, reserves: Dict[str, int], **kwargs) -> PoolRecord:
    balances = [Coin(denom=denom, amount=amount) for denom, amount in reserves.items()]
    return PoolRecord(id=pool_id, pair_id=pair_id, balances=balances, **kwargs)


@pytest.fixture
def store():
    return SnapshotStore()


@pytest.fixture
def node():
    return FakeNode()


@pytest.fixture
def price_feed():
    return FakePriceFeed({"ucre": Decimal("2.5"), "ubcre": Decimal("2.4")})


@pytest.fixture
def pair_record():
    """Factory for PairRecord."""
    return make_pair


@pytest.fixture
def pool_record():
    """Factory for PoolRecord."""
    return make_pool
