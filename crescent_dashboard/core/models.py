"""
Core data models for crescent-dashboard.

Two families of models live here:
- Records: typed contracts for collaborator responses, validated at the
  connector boundary so the refresh logic never touches raw payloads.
- Entities: immutable values published into the snapshot store.

All models use Pydantic for validation.
"""
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Coin(BaseModel):
    """A (denom, raw amount) pair as reported by the node."""

    denom: str = Field(..., min_length=1, description="Asset denomination")
    amount: int = Field(..., description="Raw integer amount (unscaled)")

    @field_validator("amount")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Ensure amount is non-negative."""
        if v < 0:
            raise ValueError("Coin amount must be non-negative")
        return v


class PairRecord(BaseModel):
    """Pair as returned by the liquidity module."""

    id: int = Field(..., description="Pair id")
    base_coin_denom: str = Field(..., description="Base coin denom")
    quote_coin_denom: str = Field(..., description="Quote coin denom")
    last_order_id: int = Field(0, description="Id of the latest order (cumulative order count)")
    last_price: Optional[Decimal] = Field(None, description="Last trade price, if any trade happened")
    current_batch_id: int = Field(0, description="Current batch id")


class PoolRecord(BaseModel):
    """Pool as returned by the liquidity module."""

    id: int = Field(..., description="Pool id")
    pair_id: int = Field(..., description="Owning pair id")
    balances: List[Coin] = Field(default_factory=list, description="Reserve balances")
    last_deposit_request_id: int = Field(0, description="Id of the latest deposit request")
    last_withdraw_request_id: int = Field(0, description="Id of the latest withdraw request")

    @field_validator("balances", mode="before")
    @classmethod
    def normalize_balances(cls, v: Any) -> Any:
        """Accept both a coin list and the {base_coin, quote_coin} object form."""
        if isinstance(v, dict):
            return [coin for coin in (v.get("base_coin"), v.get("quote_coin")) if coin]
        return v

    def amount_of(self, denom: str) -> int:
        """Raw reserve amount of denom (0 if the pool holds none)."""
        return sum(coin.amount for coin in self.balances if coin.denom == denom)


class NetAmountStateRecord(BaseModel):
    mint_rate: Decimal = Field(..., description="bToken mint rate")
    btoken_total_supply: int = Field(..., description="Raw bToken total supply")


class LiquidStakingStateRecord(BaseModel):
    """Liquid staking module states."""

    net_amount_state: NetAmountStateRecord


class LivePrice(BaseModel):
    """One entry of the price feed's live asset list."""

    denom: str = Field(..., min_length=1)
    price: Decimal = Field(..., alias="priceOracle", description="Oracle price in the feed's reference unit")


class LivePricesResponse(BaseModel):
    data: List[LivePrice] = Field(default_factory=list)


class Pair(BaseModel):
    """Published pair entity."""

    model_config = ConfigDict(frozen=True)

    id: int
    base_coin_denom: str
    quote_coin_denom: str
    num_orders: int = Field(..., description="Cumulative order count")
    last_price: Optional[Decimal] = None
    current_batch_id: int = 0

    @classmethod
    def from_record(cls, record: PairRecord) -> "Pair":
        return cls(
            id=record.id,
            base_coin_denom=record.base_coin_denom,
            quote_coin_denom=record.quote_coin_denom,
            num_orders=record.last_order_id,
            last_price=record.last_price,
            current_batch_id=record.current_batch_id,
        )


class Pool(BaseModel):
    """Published pool entity with derived price and value."""

    model_config = ConfigDict(frozen=True)

    id: int
    pair_id: int
    num_deposit_requests: int = 0
    num_withdraw_requests: int = 0
    price: Decimal = Field(..., description="Spot price, quote per base")
    value: Decimal = Field(..., description="Total reserve value in the price feed's unit")


class LiquidStakingState(BaseModel):
    """Published liquid staking state (singleton)."""

    model_config = ConfigDict(frozen=True)

    mint_rate: Decimal
    btoken_supply: Decimal = Field(..., description="bToken total supply, unit-scaled")


class BalanceEntry(BaseModel):
    """One denom held by a tracked address."""

    model_config = ConfigDict(frozen=True)

    denom: str
    amount: Decimal = Field(..., description="Unit-scaled amount")
    value: Decimal = Field(..., description="amount * price[denom]")
