"""
Binance REST request engine.

This module issues public and HMAC-signed HTTP requests, decodes JSON
responses, and maps every failure onto the ExchangeError hierarchy.
"""

import json
from typing import Any, Callable, List, Optional, Tuple
from urllib.parse import parse_qsl, urlsplit, urlunsplit

import requests
import structlog

from .exceptions import (
    DecodeError,
    ExchangeAPIError,
    InvalidURLError,
    TransportError
)
from .exchange_config import ClientConfig
from .signing import build_signed_query, canonical_pairs, current_timestamp_ms, encode_query
from ..utils.logger import EventType, get_logger


INVALID_JSON_MESSAGE = "Invalid JSON"


class APIClient:
    """
    Synchronous Binance REST client.

    Safe to share between threads: the configuration is read-only and every
    call owns its own request and response.
    """

    def __init__(
        self,
        config: ClientConfig,
        session: Optional[requests.Session] = None,
        logger: Optional[structlog.BoundLogger] = None,
        clock: Optional[Callable[[], int]] = None
    ):
        """
        Initialize the client.

        Args:
            config: Client configuration
            session: HTTP transport; a private session is created if omitted
            logger: Logger used for request events (defaults to module logger)
            clock: Returns Unix milliseconds, used for signed request timestamps
        """
        self.config = config
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self._logger = logger if logger is not None else get_logger(__name__)
        self._clock = clock or current_timestamp_ms

    def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "APIClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ========================================================================
    # Public API
    # ========================================================================

    def request(
        self,
        method: str,
        endpoint: str,
        params: Any = None,
        decoder: Optional[Callable[[Any], Any]] = None
    ) -> Any:
        """
        Make a public request.

        Params are only sent (as the query string) for GET requests.

        Args:
            method: HTTP method
            endpoint: Path appended to the base URL path
            params: Mapping or dataclass of flat scalar fields
            decoder: Converts the parsed JSON into the expected output type
                (ValueError, TypeError, KeyError, AttributeError and
                ArithmeticError it raises become DecodeError)

        Returns:
            Decoded response body

        Raises:
            InvalidURLError: Base URL is not absolute
            TransportError: HTTP exchange failed
            ExchangeAPIError: Exchange answered with a non-200 status
            DecodeError: 200 body is not valid JSON or does not fit decoder
        """
        method = method.upper()
        parts, base_pairs = self._resolve(endpoint)

        if method == "GET":
            query = encode_query(canonical_pairs(params, base_pairs))
        else:
            query = encode_query(base_pairs)

        return self._send(method, parts, query, decoder, signed=False)

    def signed_request(
        self,
        method: str,
        endpoint: str,
        params: Any = None,
        decoder: Optional[Callable[[Any], Any]] = None
    ) -> Any:
        """
        Make a signed request.

        Params are sent in the query string for every method, followed by
        the request timestamp and the HMAC-SHA256 signature.

        Args:
            method: HTTP method
            endpoint: Path appended to the base URL path
            params: Mapping or dataclass of flat scalar fields
            decoder: Converts the parsed JSON into the expected output type

        Returns:
            Decoded response body, or None for an empty body

        Raises:
            Same as request()
        """
        method = method.upper()
        parts, base_pairs = self._resolve(endpoint)

        query = build_signed_query(
            params,
            self.config.api_secret,
            self._clock(),
            base_pairs=base_pairs
        )

        return self._send(method, parts, query, decoder, signed=True)

    # ========================================================================
    # Internals
    # ========================================================================

    def _resolve(self, endpoint: str) -> Tuple[Any, List[Tuple[str, str]]]:
        """Join endpoint onto the base URL path and return (parts, base query pairs)."""
        try:
            parts = urlsplit(self.config.base_url)
        except ValueError as e:
            raise InvalidURLError(f"Invalid base URL: {e}", cause=e) from e

        if not parts.scheme or not parts.netloc:
            raise InvalidURLError(f"Base URL must be absolute: {self.config.base_url!r}")

        parts = parts._replace(path=parts.path + endpoint, fragment="")
        return parts, parse_qsl(parts.query, keep_blank_values=True)

    def _headers(self) -> dict:
        return {
            "content-type": "application/json",
            "X-MBX-APIKEY": self.config.api_key,
            "UserAgent": self.config.user_agent,
        }

    def _send(
        self,
        method: str,
        parts: Any,
        query: str,
        decoder: Optional[Callable[[Any], Any]],
        signed: bool
    ) -> Any:
        url = urlunsplit(parts._replace(query=query))

        self._logger.debug(
            "Sending request",
            event_type=EventType.API_REQUEST,
            method=method,
            path=parts.path,
            signed=signed
        )

        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(),
                timeout=self.config.timeout
            )
        except requests.RequestException as e:
            self._logger.warning(
                "Request transport failure",
                event_type=EventType.API_ERROR,
                method=method,
                path=parts.path,
                error=str(e)
            )
            raise TransportError(f"Request failed: {e}", cause=e) from e

        try:
            if response.status_code != 200:
                self._raise_exchange_error(response)
            return self._decode(response, decoder, allow_empty=signed)
        finally:
            response.close()

    def _raise_exchange_error(self, response: requests.Response) -> None:
        """Raise ExchangeAPIError for a non-200 response from its {code, msg} body."""
        try:
            body = json.loads(response.content)
            if isinstance(body, dict):
                code = int(body.get("code", 0))
                message = str(body.get("msg", ""))
        except (ValueError, TypeError) as e:
            self._logger.warning(
                "Undecodable error response",
                event_type=EventType.API_ERROR,
                status_code=response.status_code,
                error=str(e)
            )
            raise ExchangeAPIError(str(e), code=0, cause=e, status_code=response.status_code) from e

        if not isinstance(body, dict):
            self._logger.warning(
                "Unexpected error response",
                event_type=EventType.API_ERROR,
                status_code=response.status_code
            )
            raise ExchangeAPIError(f"Unexpected error body: {body!r}", code=0, status_code=response.status_code)

        self._logger.warning(
            "Exchange returned error",
            event_type=EventType.API_ERROR,
            status_code=response.status_code,
            code=code,
            msg=message
        )
        raise ExchangeAPIError(message, code=code, status_code=response.status_code)

    def _decode(
        self,
        response: requests.Response,
        decoder: Optional[Callable[[Any], Any]],
        allow_empty: bool
    ) -> Any:
        if allow_empty and not response.content:
            return None

        try:
            data = json.loads(response.content)
            return decoder(data) if decoder is not None else data
        except (ValueError, TypeError, KeyError, AttributeError, ArithmeticError) as e:
            self._logger.warning(
                "Failed to decode response",
                event_type=EventType.API_ERROR,
                status_code=response.status_code,
                error=str(e)
            )
            raise DecodeError(INVALID_JSON_MESSAGE, cause=e, status_code=response.status_code) from e
