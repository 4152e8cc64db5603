"""
Snapshot store for the latest published value of each data domain.

This module provides:
- ReadWriteLock: many concurrent readers, one exclusive writer
- DomainSlot: one independently locked domain with read()/replace()
- SnapshotStore: the five domains shared by refresh tasks and the exporter

Published values are frozen on replace(), so a view returned by read() stays
valid and unchanged after later replacements.

Example:
    store = SnapshotStore()
    store.prices.replace({"ucre": Decimal("1.5")})
    prices = store.prices.read()  # read-only mapping
"""
import threading
from contextlib import contextmanager
from decimal import Decimal
from types import MappingProxyType
from typing import Callable, Generic, Iterable, Iterator, Mapping, Optional, Tuple, TypeVar

from crescent_dashboard.core.models import BalanceEntry, LiquidStakingState, Pair, Pool

T = TypeVar("T")

EMPTY_MAPPING: Mapping = MappingProxyType({})


class ReadWriteLock:
    """
    Reader/writer lock with writer preference.

    Readers share the lock; a writer holds it alone. Once a writer is waiting,
    new readers queue behind it.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @property
    def readers(self) -> int:
        """Number of readers currently holding the lock."""
        return self._readers

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class DomainSlot(Generic[T]):
    """
    A single data domain guarded by its own ReadWriteLock.

    Args:
        name: Domain name (for logging)
        empty: Value before the first successful replace
        freeze: Converts a caller-owned collection into an immutable one
    """

    def __init__(self, name: str, empty: T, freeze: Callable[[T], T]):
        self.name = name
        self.lock = ReadWriteLock()
        self._freeze = freeze
        self._value = empty
        self._generation = 0

    @property
    def generation(self) -> int:
        """Number of successful replaces so far."""
        with self.lock.read_locked():
            return self._generation

    def read(self) -> T:
        """Return the current immutable value."""
        with self.lock.read_locked():
            return self._value

    def read_with_generation(self) -> Tuple[T, int]:
        with self.lock.read_locked():
            return self._value, self._generation

    def replace(self, new_value: T) -> int:
        """
        Atomically swap the whole domain.

        Args:
            new_value: Complete new collection (copied, caller keeps ownership)

        Returns:
            The new generation number
        """
        frozen = self._freeze(new_value)
        with self.lock.write_locked():
            self._value = frozen
            self._generation += 1
            return self._generation


def _freeze_mapping(value: Mapping) -> Mapping:
    return MappingProxyType(dict(value))


def _freeze_balances(value: Mapping[str, Iterable[BalanceEntry]]) -> Mapping[str, Tuple[BalanceEntry, ...]]:
    return MappingProxyType({address: tuple(entries) for address, entries in value.items()})


def _freeze_state(value: Optional[LiquidStakingState]) -> Optional[LiquidStakingState]:
    # entities are frozen pydantic models
    return value


class SnapshotStore:
    """
    Latest known value for each of the five domains.

    Domains are locked independently; there is no store-wide lock.
    """

    def __init__(self):
        self.pairs: DomainSlot[Mapping[int, Pair]] = DomainSlot("pairs", EMPTY_MAPPING, _freeze_mapping)
        self.pools: DomainSlot[Mapping[int, Pool]] = DomainSlot("pools", EMPTY_MAPPING, _freeze_mapping)
        self.prices: DomainSlot[Mapping[str, Decimal]] = DomainSlot("prices", EMPTY_MAPPING, _freeze_mapping)
        self.liquid_staking: DomainSlot[Optional[LiquidStakingState]] = DomainSlot(
            "liquid_staking", None, _freeze_state
        )
        self.balances: DomainSlot[Mapping[str, Tuple[BalanceEntry, ...]]] = DomainSlot(
            "balances", EMPTY_MAPPING, _freeze_balances
        )

    def slots(self) -> Tuple[DomainSlot, ...]:
        return (self.pairs, self.pools, self.prices, self.liquid_staking, self.balances)
