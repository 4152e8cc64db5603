"""
Valuation helpers for pools and balances.

This module provides:
- Unit scaling of raw on-chain amounts (fixed 10^6 factor)
- Pool spot price (quote reserve per base reserve)
- Value of a coin set against a price table

All arithmetic stays in Decimal; callers convert to float only when emitting.

Example:
    value = coin_value(5_000_000, Decimal("2.5"))  # Decimal("12.5")
"""
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from crescent_dashboard.core.errors import MissingPriceError
from crescent_dashboard.core.models import Coin

UNIT_SCALE = Decimal(1_000_000)


def scale_amount(raw_amount: int) -> Decimal:
    """Convert a raw integer amount into display units."""
    return Decimal(raw_amount) / UNIT_SCALE


def coin_value(raw_amount: int, price: Decimal) -> Decimal:
    """
    Value of a raw amount at a unit price.

    Args:
        raw_amount: Raw integer amount
        price: Unit price of the denom

    Returns:
        (raw_amount / 10^6) * price
    """
    return scale_amount(raw_amount) * price


def spot_price(quote_raw: int, base_raw: int) -> Optional[Decimal]:
    """
    Spot price as a ratio of raw reserves (unit scaling cancels).

    Returns None when the base reserve is empty.
    """
    if base_raw == 0:
        return None
    return Decimal(quote_raw) / Decimal(base_raw)


def total_value(coins: Iterable[Coin], prices: Mapping[str, Decimal]) -> Decimal:
    """
    Sum the value of every coin against the price table.

    Args:
        coins: Coins to value
        prices: denom -> unit price

    Returns:
        Total value

    Raises:
        MissingPriceError: If any denom has no price
    """
    value = Decimal(0)
    for coin in coins:
        price = prices.get(coin.denom)
        if price is None:
            raise MissingPriceError(coin.denom)
        value += coin_value(coin.amount, price)
    return value
