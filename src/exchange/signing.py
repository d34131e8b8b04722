"""
Query construction and HMAC signing for Binance REST requests.

All functions here are pure apart from current_timestamp_ms(), which reads
the wall clock.
"""

import dataclasses
import hashlib
import hmac
import time
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlencode


def current_timestamp_ms() -> int:
    """Current Unix time in milliseconds."""
    return int(time.time() * 1000)


def render_value(value: Any) -> str:
    """
    Render a scalar parameter value as it should appear in a query string.

    Booleans use their JSON spelling ("true"/"false"); everything else uses
    str().
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple, set)) or dataclasses.is_dataclass(value):
        raise TypeError(f"Nested parameter values are not supported: {value!r}")
    return str(value)


def flatten_params(params: Any) -> Dict[str, str]:
    """
    Flatten a parameter structure into field name -> rendered value.

    Args:
        params: None, a mapping, or a dataclass instance with scalar fields

    Returns:
        Dict of rendered values; fields set to None are omitted

    Raises:
        TypeError: If params is of an unsupported type or holds nested values
    """
    if params is None:
        return {}

    if dataclasses.is_dataclass(params) and not isinstance(params, type):
        fields = {f.name: getattr(params, f.name) for f in dataclasses.fields(params)}
    elif isinstance(params, Mapping):
        fields = dict(params)
    else:
        raise TypeError(f"Unsupported parameter structure: {type(params).__name__}")

    return {
        str(key): render_value(value)
        for key, value in fields.items()
        if value is not None
    }


def encode_query(pairs: List[Tuple[str, str]]) -> str:
    """Form-encode an ordered list of key/value pairs."""
    return urlencode(pairs)


def canonical_pairs(params: Any, base_pairs: Optional[List[Tuple[str, str]]] = None) -> List[Tuple[str, str]]:
    """
    Merge base URL query pairs with flattened params, sorted by key.

    Params override base pairs with the same key.
    """
    merged = dict(base_pairs or [])
    merged.update(flatten_params(params))
    return sorted(merged.items())


def sign(secret: str, payload: str) -> str:
    """Hex-encoded HMAC-SHA256 of payload keyed by secret."""
    return hmac.new(
        secret.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256
    ).hexdigest()


def build_signed_query(
    params: Any,
    secret: str,
    timestamp: int,
    base_pairs: Optional[List[Tuple[str, str]]] = None
) -> str:
    """
    Build the query string of a signed request.

    Layout: sorted parameter fields, then timestamp, then signature. The
    signature covers everything before it and must stay last.

    Args:
        params: Request parameters (mapping or dataclass)
        secret: API secret used as the HMAC key
        timestamp: Request time in Unix milliseconds
        base_pairs: Query pairs already present on the base URL

    Returns:
        Encoded query string ending in "&signature=<hex>"
    """
    pairs = [(k, v) for k, v in canonical_pairs(params, base_pairs) if k not in ("timestamp", "signature")]
    pairs.append(("timestamp", str(timestamp)))

    query = encode_query(pairs)
    signature = sign(secret, query)

    return f"{query}&signature={signature}"
