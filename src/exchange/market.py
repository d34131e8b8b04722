"""
Market data endpoints built on the request engine.
"""

from decimal import InvalidOperation
from typing import Any, Dict, List

from .api_client import APIClient
from .models import Price


ALL_PRICES_ENDPOINT = "/api/v1/ticker/allPrices"
TICKER_PRICE_ENDPOINT = "/api/v1/ticker/price"


def _decode_price(data: Any) -> Price:
    try:
        return Price.from_dict(data)
    except InvalidOperation as e:
        raise ValueError(f"Invalid price in {data!r}") from e


def _decode_price_list(data: Any) -> List[Price]:
    if not isinstance(data, list):
        raise TypeError(f"Expected a list of prices, got {type(data).__name__}")
    return [_decode_price(item) for item in data]


class MarketClient:
    """Public market data endpoints."""

    def __init__(self, api: APIClient):
        self.api = api

    def prices(self) -> Dict[str, Price]:
        """
        Get the latest price for all symbols.

        Returns:
            Mapping of symbol to Price (empty if the exchange lists none)

        Raises:
            ExchangeError: If the request fails
        """
        price_list = self.api.request("GET", ALL_PRICES_ENDPOINT, decoder=_decode_price_list)
        return {p.symbol: p for p in price_list}

    def ticker_price(self, symbol: str) -> Price:
        """
        Get the latest price for one symbol.

        Args:
            symbol: Exchange symbol (e.g., "BTCUSDT")
        """
        return self.api.request(
            "GET",
            TICKER_PRICE_ENDPOINT,
            params={"symbol": symbol},
            decoder=_decode_price
        )
