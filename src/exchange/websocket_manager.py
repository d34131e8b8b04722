"""
WebSocket stream manager for Binance market data.

Each subscription owns one WebSocket connection and one background read
task. Every inbound frame is handed to the subscriber's handler on its own
concurrent unit:
- coroutine handlers (and objects with an async __call__) run as asyncio tasks
- plain callables run in the loop's default thread-pool executor

Handlers must therefore be safe to run concurrently with each other and must
not assume delivery order. There is no reconnection: when the connection
ends the subscription completes and the owner decides what to do next.
"""

import asyncio
import inspect
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

import structlog
import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException

from .exceptions import WebSocketError
from .exchange_config import ClientConfig
from ..utils.logger import EventType, get_logger


StreamHandler = Callable[[bytes], Union[None, Awaitable[None]]]


def _is_async_callable(handler: Any) -> bool:
    """True for coroutine functions and objects with an async __call__."""
    return (
        inspect.iscoroutinefunction(handler)
        or inspect.iscoroutinefunction(getattr(handler, "__call__", None))
    )


class Subscription:
    """
    Handle for one live stream.

    Use close() to tear the stream down and wait_closed() to learn when it
    ended on its own and why.
    """

    def __init__(
        self,
        endpoint: str,
        url: str,
        ws: Any,
        handler: StreamHandler,
        logger: structlog.BoundLogger,
        max_pending_handlers: Optional[int] = None
    ):
        self.endpoint = endpoint
        self.url = url
        self._ws = ws
        self._handler = handler
        self._is_async_handler = _is_async_callable(handler)
        self._logger = logger.bind(stream=endpoint)

        # None means unbounded fan-out
        self._slots = asyncio.Semaphore(max_pending_handlers) if max_pending_handlers else None
        self._pending: Set[asyncio.Future] = set()

        self._reader: Optional[asyncio.Task] = None
        self._error: Optional[BaseException] = None

        self._stats = {
            'messages_received': 0,
            'handler_errors': 0,
            'last_message_time': None,
            'connected_at': datetime.now(timezone.utc)
        }

    @property
    def closed(self) -> bool:
        """True once the read loop has stopped."""
        return self._reader is not None and self._reader.done()

    @property
    def error(self) -> Optional[BaseException]:
        """Why the stream ended; None while running, after a clean close, or after close()."""
        return self._error

    @property
    def pending_handlers(self) -> int:
        """Number of handler invocations still in flight."""
        return len(self._pending)

    @property
    def stats(self) -> Dict[str, Any]:
        """Get stream statistics."""
        return self._stats.copy()

    def _start(self) -> asyncio.Task:
        self._reader = asyncio.get_running_loop().create_task(self._read_loop())
        return self._reader

    async def close(self) -> None:
        """Stop reading, close the connection and wait for in-flight handlers."""
        if self._reader is not None and not self._reader.done():
            self._reader.cancel()
        await self.wait_closed()

    async def wait_closed(self) -> Optional[BaseException]:
        """
        Wait until the stream has ended and every dispatched handler finished.

        Returns:
            The terminal error, or None for a clean close
        """
        if self._reader is not None:
            await asyncio.gather(self._reader, return_exceptions=True)

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

        return self._error

    async def _read_loop(self) -> None:
        """Read frames sequentially and fan them out to the handler."""
        try:
            while True:
                message = await self._ws.recv()
                if isinstance(message, str):
                    message = message.encode("utf-8")

                self._stats['messages_received'] += 1
                self._stats['last_message_time'] = datetime.now(timezone.utc)

                await self._dispatch(message)

        except ConnectionClosedOK:
            self._logger.info(
                "Stream closed by server",
                event_type=EventType.WEBSOCKET_DISCONNECTED
            )
        except ConnectionClosed as e:
            self._error = WebSocketError(f"Stream connection lost: {e}", cause=e)
            self._logger.warning(
                "Stream connection lost",
                event_type=EventType.WEBSOCKET_DISCONNECTED,
                error=str(e)
            )
        except asyncio.CancelledError:
            self._logger.info(
                "Stream closed by owner",
                event_type=EventType.WEBSOCKET_DISCONNECTED
            )
            raise
        except (WebSocketException, OSError) as e:
            self._error = WebSocketError(f"Stream read failed: {e}", cause=e)
            self._logger.warning(
                "Stream read failed",
                event_type=EventType.WEBSOCKET_DISCONNECTED,
                error=str(e)
            )
        except Exception as e:
            self._error = WebSocketError(f"Unexpected stream error: {e}", cause=e)
            self._logger.error(
                "Unexpected error in stream read loop",
                event_type=EventType.WEBSOCKET_DISCONNECTED,
                error=str(e),
                exc_info=True
            )
        finally:
            await self._ws.close()

    async def _dispatch(self, message: bytes) -> None:
        if self._slots is not None:
            # Backpressure: stop reading until a handler slot frees up
            await self._slots.acquire()

        if self._is_async_handler:
            future = asyncio.ensure_future(self._handler(message))
        else:
            future = asyncio.get_running_loop().run_in_executor(None, self._handler, message)

        self._pending.add(future)
        future.add_done_callback(self._handler_done)

    def _handler_done(self, future: asyncio.Future) -> None:
        self._pending.discard(future)
        if self._slots is not None:
            self._slots.release()

        if future.cancelled():
            return

        error = future.exception()
        if error is not None:
            self._stats['handler_errors'] += 1
            self._logger.error(
                "Error in stream handler",
                event_type=EventType.HANDLER_ERROR,
                error=str(error),
                exc_info=error
            )


class StreamManager:
    """
    Opens and tracks stream subscriptions.

    One connection and one read task per subscribe() call.
    """

    def __init__(
        self,
        config: ClientConfig,
        logger: Optional[structlog.BoundLogger] = None,
        max_pending_handlers: Optional[int] = None
    ):
        """
        Initialize the stream manager.

        Args:
            config: Client configuration (stream_url is used)
            logger: Logger for stream events (defaults to module logger)
            max_pending_handlers: Bound on in-flight handler invocations per
                subscription; None leaves fan-out unbounded
        """
        if max_pending_handlers is not None and max_pending_handlers < 1:
            raise ValueError("max_pending_handlers must be positive")

        self.config = config
        self.max_pending_handlers = max_pending_handlers
        self._logger = logger if logger is not None else get_logger(__name__)
        self._subscriptions: Set[Subscription] = set()

    @property
    def subscriptions(self) -> List[Subscription]:
        """Live subscriptions."""
        return [s for s in self._subscriptions if not s.closed]

    def _get_stream_url(self, endpoint: str) -> str:
        """
        Get WebSocket URL for a stream.

        Args:
            endpoint: Stream name (e.g., "btcusdt@trade")

        Returns:
            WebSocket URL
        """
        return f"{self.config.stream_url.rstrip('/')}/{endpoint.lstrip('/')}"

    async def subscribe(self, endpoint: str, handler: StreamHandler) -> Subscription:
        """
        Connect to a stream and start delivering its messages to handler.

        Args:
            endpoint: Stream name (e.g., "btcusdt@kline_1m")
            handler: Called once per message with the raw frame bytes

        Returns:
            Subscription handle

        Raises:
            WebSocketError: If the connection cannot be established
        """
        url = self._get_stream_url(endpoint)

        try:
            ws = await websockets.connect(url)
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            self._logger.error(
                "Failed to connect to stream",
                event_type=EventType.WEBSOCKET_DISCONNECTED,
                url=url,
                error=str(e)
            )
            raise WebSocketError(f"Failed to connect to {url}: {e}", cause=e) from e

        subscription = Subscription(
            endpoint,
            url,
            ws,
            handler,
            self._logger,
            max_pending_handlers=self.max_pending_handlers
        )
        self._subscriptions.add(subscription)
        subscription._start().add_done_callback(
            lambda _: self._subscriptions.discard(subscription)
        )

        self._logger.info(
            "Subscribed to stream",
            event_type=EventType.WEBSOCKET_CONNECTED,
            stream=endpoint,
            url=url
        )

        return subscription

    async def close_all(self) -> None:
        """Close every live subscription."""
        subscriptions = list(self._subscriptions)
        await asyncio.gather(*(s.close() for s in subscriptions), return_exceptions=True)
