"""
Unit tests for record and entity models.
"""
import pytest
from decimal import Decimal
from pydantic import ValidationError

from crescent_dashboard.core.models import (
    BalanceEntry,
    Coin,
    LiquidStakingStateRecord,
    LivePricesResponse,
    Pair,
    PairRecord,
    Pool,
    PoolRecord,
)


class TestCoin:
    """Test suite for Coin."""

    def test_amount_decoded_from_string(self):
        """Test that the node's string amounts are decoded to int."""
        coin = Coin.model_validate({"denom": "ucre", "amount": "5000000"})

        assert coin.amount == 5_000_000

    def test_negative_amount_rejected(self):
        """Test that negative amounts fail validation."""
        with pytest.raises(ValidationError, match="non-negative"):
            Coin(denom="ucre", amount=-1)

    def test_empty_denom_rejected(self):
        """Test that an empty denom fails validation."""
        with pytest.raises(ValidationError):
            Coin(denom="", amount=1)


class TestPairRecord:
    """Test suite for PairRecord decoding."""

    def test_decode_node_payload(self):
        """Test decoding a pair as returned by the node."""
        record = PairRecord.model_validate({
            "id": "3",
            "base_coin_denom": "ucre",
            "quote_coin_denom": "ubcre",
            "last_order_id": "42",
            "last_price": "1.0325",
            "current_batch_id": "77",
        })

        assert record.id == 3
        assert record.last_order_id == 42
        assert record.last_price == Decimal("1.0325")
        assert record.current_batch_id == 77

    def test_last_price_optional(self):
        """Test that a pair without trades has no last price."""
        record = PairRecord.model_validate({
            "id": "1",
            "base_coin_denom": "ucre",
            "quote_coin_denom": "ubcre",
            "last_price": None,
        })

        assert record.last_price is None
        assert record.last_order_id == 0


class TestPoolRecord:
    """Test suite for PoolRecord."""

    def test_balances_object_form(self):
        """Test that {base_coin, quote_coin} balances are normalized to a list."""
        record = PoolRecord.model_validate({
            "id": "1",
            "pair_id": "1",
            "balances": {
                "base_coin": {"denom": "ucre", "amount": "100"},
                "quote_coin": {"denom": "ubcre", "amount": "200"},
            },
        })

        assert [coin.denom for coin in record.balances] == ["ucre", "ubcre"]

    def test_amount_of(self):
        """Test reserve lookup by denom."""
        record = PoolRecord(
            id=1,
            pair_id=1,
            balances=[Coin(denom="ucre", amount=100), Coin(denom="ubcre", amount=200)],
        )

        assert record.amount_of("ubcre") == 200
        assert record.amount_of("uatom") == 0


class TestLiquidStakingStateRecord:
    """Test suite for LiquidStakingStateRecord."""

    def test_decode_net_amount_state(self):
        """Test decoding the nested net amount state."""
        record = LiquidStakingStateRecord.model_validate({
            "net_amount_state": {"mint_rate": "0.987654", "btoken_total_supply": "12000000"},
        })

        assert record.net_amount_state.mint_rate == Decimal("0.987654")
        assert record.net_amount_state.btoken_total_supply == 12_000_000

    def test_missing_state_rejected(self):
        """Test that a payload without net_amount_state fails validation."""
        with pytest.raises(ValidationError):
            LiquidStakingStateRecord.model_validate({})


class TestLivePricesResponse:
    """Test suite for the price feed body."""

    def test_price_oracle_alias(self):
        """Test that priceOracle maps to price."""
        body = LivePricesResponse.model_validate({
            "data": [{"denom": "ucre", "priceOracle": Decimal("2.5")}],
        })

        assert body.data[0].price == Decimal("2.5")


class TestEntities:
    """Test suite for published entities."""

    def test_pair_from_record(self):
        """Test that the order count comes from last_order_id."""
        record = PairRecord(id=1, base_coin_denom="ucre", quote_coin_denom="ubcre", last_order_id=9)

        pair = Pair.from_record(record)

        assert pair.num_orders == 9
        assert pair.last_price is None

    def test_entities_are_frozen(self):
        """Test that published entities cannot be mutated."""
        pool = Pool(id=1, pair_id=1, price=Decimal("2"), value=Decimal("10"))
        entry = BalanceEntry(denom="ucre", amount=Decimal("5"), value=Decimal("12.5"))

        with pytest.raises(ValidationError):
            pool.price = Decimal("3")
        with pytest.raises(ValidationError):
            entry.value = Decimal("0")
