"""
Node client for the chain's REST gateway.

This module provides typed, read-only queries against the node:
- Liquidity pairs and pools
- Liquid staking state
- Bank balances of an address

Every response is validated into a record model at this boundary. Transport
errors, timeouts, bad statuses and malformed payloads all surface as FetchError.
"""
import threading
from typing import Any, Dict, List, Optional, Protocol, Type, TypeVar
from urllib.parse import quote, urlparse

import requests
from loguru import logger
from pydantic import BaseModel, ValidationError

from crescent_dashboard.core.errors import FetchError
from crescent_dashboard.core.models import Coin, LiquidStakingStateRecord, PairRecord, PoolRecord

logger = logger.bind(context="node_client")

PAIRS_PATH = "/crescent/liquidity/v1beta1/pairs"
POOLS_PATH = "/crescent/liquidity/v1beta1/pools"
LIQUID_STAKING_STATES_PATH = "/crescent/liquidstaking/v1beta1/states"
BALANCES_PATH = "/cosmos/bank/v1beta1/balances/{address}"
NODE_INFO_PATH = "/cosmos/base/tendermint/v1beta1/node_info"

DEFAULT_PAGE_LIMIT = 200

M = TypeVar("M", bound=BaseModel)


class NodeQueryClient(Protocol):
    """Capabilities the refresh tasks need from the node."""

    def query_pairs(self) -> List[PairRecord]: ...

    def query_pools(self) -> List[PoolRecord]: ...

    def query_liquid_staking_state(self) -> LiquidStakingStateRecord: ...

    def query_balances(self, address: str) -> List[Coin]: ...


def resolve_node_url(address: str, insecure: bool = False) -> str:
    """
    Turn a node address into a base URL.

    A bare host:port gets https://, or http:// when insecure is set.
    An address that already carries a scheme is used as is.

    Raises:
        ValueError: If the address cannot be used as an HTTP(S) URL
    """
    if "://" in address:
        url = address
    else:
        scheme = "http" if insecure else "https"
        url = f"{scheme}://{address}"

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid node address: {address}")

    return url.rstrip("/")


class NodeClient:
    """
    Synchronous client for the node's REST gateway.

    Each call carries a request deadline (timeout). Refresh threads share one
    client; each thread gets its own requests.Session unless a session is
    injected.
    """

    def __init__(
        self,
        address: str,
        insecure: bool = False,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
        page_limit: int = DEFAULT_PAGE_LIMIT,
    ):
        """
        Initialize node client.

        Args:
            address: Node REST address (host:port or URL)
            insecure: Use plain HTTP when address has no scheme
            timeout: Per-request deadline in seconds
            session: Optional pre-configured requests session
            page_limit: Page size for paginated list queries

        Raises:
            ValueError: If address is invalid
        """
        self.base_url = resolve_node_url(address, insecure)
        self.timeout = timeout
        self.page_limit = page_limit
        self._shared_session = session
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def session(self) -> requests.Session:
        """Session for the calling thread."""
        if self._shared_session is not None:
            return self._shared_session

        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def close(self) -> None:
        if self._shared_session is not None:
            self._shared_session.close()
        with self._sessions_lock:
            for session in self._sessions:
                session.close()
            self._sessions.clear()

    def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Make GET request to the node and return the decoded JSON object."""
        url = f"{self.base_url}{path}"

        try:
            logger.debug(f"Node request: {url}")
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise FetchError(str(e), endpoint=path) from e
        except ValueError as e:
            raise FetchError(f"decode body: {e}", endpoint=path) from e

        if not isinstance(body, dict):
            raise FetchError(f"unexpected response type: {type(body).__name__}", endpoint=path)

        return body

    def _get_all(self, path: str, field: str) -> List[Any]:
        """
        Collect a paginated list, following pagination.next_key until exhausted.

        Args:
            path: Endpoint path
            field: Name of the list field in each page

        Returns:
            All items across pages
        """
        items: List[Any] = []
        seen_keys = set()
        params = {"pagination.limit": str(self.page_limit)}

        while True:
            body = self._get(path, params)
            page = body.get(field)
            if not isinstance(page, list):
                raise FetchError(f"missing '{field}' list in response", endpoint=path)
            items.extend(page)

            next_key = (body.get("pagination") or {}).get("next_key")
            if not next_key:
                return items
            if next_key in seen_keys:
                raise FetchError(f"pagination loop on key {next_key}", endpoint=path)
            seen_keys.add(next_key)
            params = {"pagination.limit": str(self.page_limit), "pagination.key": next_key}

    @staticmethod
    def _parse(model: Type[M], payload: Any, path: str) -> M:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise FetchError(f"invalid {model.__name__}: {e}", endpoint=path) from e

    def check_connection(self) -> Dict[str, Any]:
        """
        Probe the node once.

        Returns:
            Node info payload

        Raises:
            FetchError: If the node cannot be reached within the deadline
        """
        info = self._get(NODE_INFO_PATH)
        network = (info.get("default_node_info") or {}).get("network", "unknown")
        logger.info(f"Connected to node {self.base_url} (network: {network})")
        return info

    def query_pairs(self) -> List[PairRecord]:
        """Get every pair from the liquidity module."""
        raw = self._get_all(PAIRS_PATH, "pairs")
        return [self._parse(PairRecord, item, PAIRS_PATH) for item in raw]

    def query_pools(self) -> List[PoolRecord]:
        """Get every pool with its reserve balances."""
        raw = self._get_all(POOLS_PATH, "pools")
        return [self._parse(PoolRecord, item, POOLS_PATH) for item in raw]

    def query_liquid_staking_state(self) -> LiquidStakingStateRecord:
        """Get the liquid staking net amount state."""
        body = self._get(LIQUID_STAKING_STATES_PATH)
        return self._parse(LiquidStakingStateRecord, body, LIQUID_STAKING_STATES_PATH)

    def query_balances(self, address: str) -> List[Coin]:
        """
        Get all balances held by an address.

        Args:
            address: Bech32 account address

        Returns:
            Coins with raw amounts
        """
        if not address:
            raise ValueError("address is required")

        path = BALANCES_PATH.format(address=quote(address, safe=""))
        raw = self._get_all(path, "balances")
        return [self._parse(Coin, item, path) for item in raw]
