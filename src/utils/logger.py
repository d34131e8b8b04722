"""
Structured logging utilities using structlog.

Provides JSON-formatted logging for production and
human-readable logging for development.
"""

import logging
import sys
import structlog
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional


def setup_logger(
    log_level: str = "INFO",
    log_dir: Optional[str] = "logs",
    log_format: str = "json",
    service_name: str = "binance-stream-client"
) -> structlog.BoundLogger:
    """
    Configure and return a structured logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files; None logs to stdout
        log_format: "json" for production, "console" for development
        service_name: Name of the service for log context

    Returns:
        Configured structlog logger instance
    """
    if log_dir is not None:
        # Create log directory if it doesn't exist
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        log_filename = f"client_{datetime.now(timezone.utc).strftime('%Y-%m-%d')}.log"
        output = open(log_path / log_filename, "a")
    else:
        output = sys.stdout

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
        timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    else:  # console format for development
        renderer = structlog.dev.ConsoleRenderer(colors=output is sys.stdout)
        timestamper = structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=False,
    )

    return structlog.get_logger(service=service_name)


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Get a logger instance with optional name context.

    Args:
        name: Optional logger name (typically __name__)

    Returns:
        Logger instance
    """
    if name:
        return structlog.get_logger(logger_name=name)
    return structlog.get_logger()


# Event type constants for structured logging
class EventType:
    """Standard event types for client logging."""

    # REST events
    API_REQUEST = "API_REQUEST"
    API_ERROR = "API_ERROR"

    # Stream events
    WEBSOCKET_CONNECTED = "WEBSOCKET_CONNECTED"
    WEBSOCKET_DISCONNECTED = "WEBSOCKET_DISCONNECTED"
    HANDLER_ERROR = "HANDLER_ERROR"
