"""
Unit tests for the node REST client.

NOTE: All HTTP traffic is MOCKED - no real node calls in tests.
"""
import pytest
import requests
from decimal import Decimal
from unittest.mock import Mock

from crescent_dashboard.connectors.node_client import (
    BALANCES_PATH,
    PAIRS_PATH,
    NodeClient,
    resolve_node_url,
)
from crescent_dashboard.core.errors import FetchError


def json_response(body, status=200):
    response = Mock()
    response.status_code = status
    response.json.return_value = body
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} Server Error")
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def client(session):
    return NodeClient("localhost:1317", insecure=True, timeout=5.0, session=session)


class TestResolveNodeUrl:
    """Test suite for node address resolution."""

    def test_tls_by_default(self):
        assert resolve_node_url("node.example.com:1317") == "https://node.example.com:1317"

    def test_insecure_uses_plain_http(self):
        assert resolve_node_url("localhost:1317", insecure=True) == "http://localhost:1317"

    def test_explicit_scheme_kept(self):
        assert resolve_node_url("https://lcd.example.com/", insecure=True) == "https://lcd.example.com"

    def test_invalid_address(self):
        with pytest.raises(ValueError, match="Invalid node address"):
            resolve_node_url("grpc://localhost:9090")


class TestNodeClientInitialization:
    """Test suite for NodeClient initialization."""

    def test_initialization(self, client):
        assert client.base_url == "http://localhost:1317"
        assert client.timeout == 5.0

    def test_per_thread_sessions_without_injection(self):
        """Test that a client without an injected session creates one lazily."""
        client = NodeClient("localhost:1317")

        first = client.session
        assert client.session is first

        client.close()


class TestQueryPairs:
    """Test suite for pairs queries."""

    def test_single_page(self, client, session):
        """Test decoding one page of pairs."""
        session.get.return_value = json_response({
            "pairs": [
                {"id": "1", "base_coin_denom": "ucre", "quote_coin_denom": "ubcre",
                 "last_order_id": "12", "last_price": "1.01", "current_batch_id": "5"},
            ],
            "pagination": {"next_key": None, "total": "1"},
        })

        pairs = client.query_pairs()

        assert len(pairs) == 1
        assert pairs[0].last_price == Decimal("1.01")
        url = session.get.call_args.args[0]
        assert url == f"http://localhost:1317{PAIRS_PATH}"
        assert session.get.call_args.kwargs["timeout"] == 5.0

    def test_follows_next_key(self, client, session):
        """Test that pagination is followed until next_key is empty."""
        pair = {"base_coin_denom": "ucre", "quote_coin_denom": "ubcre"}
        session.get.side_effect = [
            json_response({"pairs": [dict(pair, id="1")], "pagination": {"next_key": "AAE="}}),
            json_response({"pairs": [dict(pair, id="2")], "pagination": {"next_key": None}}),
        ]

        pairs = client.query_pairs()

        assert [p.id for p in pairs] == [1, 2]
        second_params = session.get.call_args_list[1].kwargs["params"]
        assert second_params["pagination.key"] == "AAE="

    def test_repeated_next_key_raises(self, client, session):
        """Test that a node returning the same key forever is reported, not looped on."""
        page = {"pairs": [], "pagination": {"next_key": "AAE="}}
        session.get.side_effect = [json_response(page), json_response(page)]

        with pytest.raises(FetchError, match="pagination loop"):
            client.query_pairs()


class TestQueryErrors:
    """Test suite for error translation."""

    def test_timeout_becomes_fetch_error(self, client, session):
        session.get.side_effect = requests.Timeout("read timed out")

        with pytest.raises(FetchError, match="read timed out"):
            client.query_pools()

    def test_bad_status_becomes_fetch_error(self, client, session):
        session.get.return_value = json_response({}, status=503)

        with pytest.raises(FetchError, match="503"):
            client.query_pairs()

    def test_undecodable_body(self, client, session):
        response = json_response(None)
        response.json.side_effect = ValueError("Expecting value")
        session.get.return_value = response

        with pytest.raises(FetchError, match="decode body"):
            client.query_pairs()

    def test_missing_list_field(self, client, session):
        session.get.return_value = json_response({"pagination": {}})

        with pytest.raises(FetchError, match="missing 'pools'"):
            client.query_pools()

    def test_invalid_record(self, client, session):
        """Test that a record failing validation is a FetchError."""
        session.get.return_value = json_response({"pools": [{"id": "x"}], "pagination": {}})

        with pytest.raises(FetchError, match="invalid PoolRecord"):
            client.query_pools()


class TestQueryPools:
    """Test suite for pools queries."""

    def test_pool_balances(self, client, session):
        session.get.return_value = json_response({
            "pools": [{
                "id": "3",
                "pair_id": "1",
                "balances": [{"denom": "ucre", "amount": "100"}, {"denom": "ubcre", "amount": "200"}],
                "last_deposit_request_id": "8",
                "last_withdraw_request_id": "2",
            }],
            "pagination": {},
        })

        pools = client.query_pools()

        assert pools[0].amount_of("ubcre") == 200
        assert pools[0].last_deposit_request_id == 8


class TestQueryLiquidStakingState:
    """Test suite for the liquid staking query."""

    def test_decodes_state(self, client, session):
        session.get.return_value = json_response({
            "net_amount_state": {"mint_rate": "0.99", "btoken_total_supply": "5000000"},
        })

        record = client.query_liquid_staking_state()

        assert record.net_amount_state.mint_rate == Decimal("0.99")


class TestQueryBalances:
    """Test suite for bank balance queries."""

    def test_balances_path(self, client, session):
        session.get.return_value = json_response({
            "balances": [{"denom": "ucre", "amount": "5000000"}],
            "pagination": {"next_key": None},
        })

        coins = client.query_balances("cre1alice")

        assert coins[0].amount == 5_000_000
        url = session.get.call_args.args[0]
        assert url.endswith(BALANCES_PATH.format(address="cre1alice"))

    def test_empty_address_rejected(self, client):
        with pytest.raises(ValueError, match="address is required"):
            client.query_balances("")


class TestCheckConnection:
    """Test suite for the startup probe."""

    def test_reachable(self, client, session):
        session.get.return_value = json_response({"default_node_info": {"network": "crescent-1"}})

        info = client.check_connection()

        assert info["default_node_info"]["network"] == "crescent-1"

    def test_unreachable(self, client, session):
        session.get.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(FetchError, match="connection refused"):
            client.check_connection()
