"""
Binance REST and stream client.
"""

from .exceptions import (
    ErrorKind,
    ExchangeError,
    InvalidURLError,
    TransportError,
    ExchangeAPIError,
    DecodeError,
    WebSocketError
)
from .exchange_config import (
    ClientConfig,
    binance_config,
    BINANCE_REST_URL,
    BINANCE_REST_TESTNET_URL,
    BINANCE_STREAM_URL,
    BINANCE_STREAM_TESTNET_URL
)
from .api_client import APIClient
from .websocket_manager import StreamManager, Subscription, StreamHandler
from .market import MarketClient
from .models import Price

__all__ = [
    # Clients
    "APIClient",
    "MarketClient",
    "StreamManager",
    "Subscription",
    "StreamHandler",

    # Exceptions
    "ErrorKind",
    "ExchangeError",
    "InvalidURLError",
    "TransportError",
    "ExchangeAPIError",
    "DecodeError",
    "WebSocketError",

    # Config
    "ClientConfig",
    "binance_config",
    "BINANCE_REST_URL",
    "BINANCE_REST_TESTNET_URL",
    "BINANCE_STREAM_URL",
    "BINANCE_STREAM_TESTNET_URL",

    # Data models
    "Price"
]
