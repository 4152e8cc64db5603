"""
Price feed REST client.

Fetches live oracle prices from the API gateway's /asset/live endpoint.
"""
from decimal import Decimal
from typing import Dict, Optional, Protocol
from urllib.parse import urljoin, urlparse

import requests
from loguru import logger
from pydantic import ValidationError

from crescent_dashboard.core.errors import FetchError
from crescent_dashboard.core.models import LivePricesResponse

logger = logger.bind(context="price_feed")

LIVE_PRICES_PATH = "/asset/live"


class PriceFeed(Protocol):
    def query_live_prices(self) -> Dict[str, Decimal]: ...


class PriceFeedClient:
    """Client for the price feed API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        parsed = urlparse(base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid price API base URL: {base_url}")

        self.base_url = base_url
        self.prices_url = urljoin(base_url, LIVE_PRICES_PATH)
        self.timeout = timeout
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def query_live_prices(self) -> Dict[str, Decimal]:
        """
        Get the live price table.

        Returns:
            Mapping denom -> price (Decimal, decoded without float rounding)

        Raises:
            FetchError: On transport error, non-200 status or malformed body
        """
        try:
            logger.debug(f"API Request: {self.prices_url}")
            response = self.session.get(self.prices_url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"http request: {e}", endpoint=LIVE_PRICES_PATH) from e

        if response.status_code != 200:
            raise FetchError(f"bad status code: {response.status_code}", endpoint=LIVE_PRICES_PATH)

        try:
            body = response.json(parse_float=Decimal)
            parsed = LivePricesResponse.model_validate(body)
        except ValidationError as e:
            raise FetchError(f"invalid body: {e}", endpoint=LIVE_PRICES_PATH) from e
        except ValueError as e:
            raise FetchError(f"decode body: {e}", endpoint=LIVE_PRICES_PATH) from e

        prices = {item.denom: item.price for item in parsed.data}
        logger.debug(f"API Response: {len(prices)} prices")
        return prices
