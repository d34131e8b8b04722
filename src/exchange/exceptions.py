"""
Exchange-related exception classes.

Every failure raised by the request engine and the stream manager is an
ExchangeError. Callers can match on the subclass or on the `kind` tag.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Stable error category tag."""
    URL = "url"
    TRANSPORT = "transport"
    EXCHANGE = "exchange"
    DECODE = "decode"


class ExchangeError(Exception):
    """Base exception for all exchange-related errors."""

    kind = ErrorKind.EXCHANGE

    def __init__(
        self,
        message: str,
        code: int = 0,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None
    ):
        self.message = message
        self.code = code
        self.cause = cause
        self.status_code = status_code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, code={self.code}, "
            f"message={self.message!r}, status_code={self.status_code})"
        )


class InvalidURLError(ExchangeError):
    """Exception raised when the configured base URL cannot be used."""
    kind = ErrorKind.URL


class TransportError(ExchangeError):
    """Exception raised when the HTTP exchange itself fails (network, TLS, timeout)."""
    kind = ErrorKind.TRANSPORT


class ExchangeAPIError(ExchangeError):
    """Exception raised when the exchange answers with a non-200 status."""
    kind = ErrorKind.EXCHANGE


class DecodeError(ExchangeError):
    """Exception raised when a 200 response body cannot be decoded."""
    kind = ErrorKind.DECODE


class WebSocketError(ExchangeError):
    """Exception raised for WebSocket-related errors."""
    kind = ErrorKind.TRANSPORT
