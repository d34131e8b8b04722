"""
Client configuration and known Binance endpoints.

A ClientConfig is immutable after construction and is shared read-only by
every call an APIClient or StreamManager makes.
"""

from dataclasses import dataclass, replace


# ============================================================================
# BINANCE ENDPOINTS
# ============================================================================

BINANCE_REST_URL = "https://api.binance.com"
BINANCE_REST_TESTNET_URL = "https://testnet.binance.vision"

BINANCE_STREAM_URL = "wss://stream.binance.com:9443/ws"
BINANCE_STREAM_TESTNET_URL = "wss://testnet.binance.vision/ws"

DEFAULT_USER_AGENT = "binance-stream-client/0.1.0"
DEFAULT_TIMEOUT = 10.0  # seconds


@dataclass(frozen=True)
class ClientConfig:
    """
    Connection settings for one exchange account.

    The base URL is not validated here; requests fail with InvalidURLError
    when it is not an absolute URL.
    """
    base_url: str
    api_key: str = ""
    api_secret: str = ""
    user_agent: str = DEFAULT_USER_AGENT
    stream_url: str = BINANCE_STREAM_URL
    timeout: float = DEFAULT_TIMEOUT

    def __repr__(self) -> str:
        # Keep the secret out of logs and tracebacks
        return (
            f"ClientConfig(base_url={self.base_url!r}, api_key={self.api_key[:4]!r}..., "
            f"user_agent={self.user_agent!r}, stream_url={self.stream_url!r}, "
            f"timeout={self.timeout})"
        )

    def with_overrides(self, **changes) -> "ClientConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


def binance_config(
    api_key: str = "",
    api_secret: str = "",
    testnet: bool = False,
    **overrides
) -> ClientConfig:
    """
    Build a ClientConfig for Binance spot.

    Args:
        api_key: Binance API key
        api_secret: Binance API secret
        testnet: Use testnet endpoints if True
        **overrides: Any other ClientConfig field (user_agent, timeout, ...)

    Returns:
        ClientConfig instance
    """
    if testnet:
        base_url, stream_url = BINANCE_REST_TESTNET_URL, BINANCE_STREAM_TESTNET_URL
    else:
        base_url, stream_url = BINANCE_REST_URL, BINANCE_STREAM_URL

    settings = {
        "base_url": base_url,
        "stream_url": stream_url,
        "api_key": api_key,
        "api_secret": api_secret,
    }
    settings.update(overrides)

    return ClientConfig(**settings)
