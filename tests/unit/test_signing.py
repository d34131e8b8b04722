"""
Unit tests for query construction and HMAC signing.
"""

import hashlib
import hmac
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qsl

import pytest

from src.exchange.signing import (
    build_signed_query,
    canonical_pairs,
    encode_query,
    flatten_params,
    render_value,
    sign
)


# Example published in the Binance API documentation
DOC_SECRET = "NhqPtmdSJYdKjVHjA7PZj4Mge3R5YNiP1e3UZjInClVN65XAbvqqM6A7H5fATj0j"
DOC_QUERY = (
    "symbol=LTCBTC&side=BUY&type=LIMIT&timeInForce=GTC&quantity=1"
    "&price=0.1&recvWindow=5000&timestamp=1499827319559"
)
DOC_SIGNATURE = "c8db56825ae71d6d79447849e617115f4a920fa2acdcab2b053c4b2838bd6b71"


@dataclass
class OrderParams:
    symbol: str
    quantity: float
    price: Optional[str] = None
    reduce_only: bool = False


@pytest.mark.unit
def test_sign_matches_documented_example():
    """Test signature against the exchange's documented example."""
    assert sign(DOC_SECRET, DOC_QUERY) == DOC_SIGNATURE


@pytest.mark.unit
def test_render_value():
    """Test default string rendering of scalar values."""
    assert render_value("BTCUSDT") == "BTCUSDT"
    assert render_value(5) == "5"
    assert render_value(0.1) == "0.1"
    assert render_value(True) == "true"
    assert render_value(False) == "false"


@pytest.mark.unit
@pytest.mark.parametrize("value", [{"a": 1}, [1, 2], (1,), OrderParams("X", 1)])
def test_render_value_rejects_nested(value):
    """Test that nested values are rejected."""
    with pytest.raises(TypeError):
        render_value(value)


@pytest.mark.unit
def test_flatten_mapping():
    """Test flattening a mapping, dropping None values."""
    flat = flatten_params({"symbol": "BTCUSDT", "limit": 5, "fromId": None})

    assert flat == {"symbol": "BTCUSDT", "limit": "5"}


@pytest.mark.unit
def test_flatten_dataclass():
    """Test flattening a dataclass instance."""
    flat = flatten_params(OrderParams(symbol="BTCUSDT", quantity=1.5))

    assert flat == {"symbol": "BTCUSDT", "quantity": "1.5", "reduce_only": "false"}


@pytest.mark.unit
def test_flatten_none_and_unsupported():
    """Test empty params and unsupported parameter structures."""
    assert flatten_params(None) == {}

    with pytest.raises(TypeError):
        flatten_params("symbol=BTCUSDT")

    with pytest.raises(TypeError):
        flatten_params(OrderParams)


@pytest.mark.unit
def test_canonical_pairs_sorted_and_merged():
    """Test keys are sorted and params override base URL pairs."""
    pairs = canonical_pairs(
        {"symbol": "ETHUSDT", "limit": 10},
        base_pairs=[("symbol", "BTCUSDT"), ("apiVersion", "3")]
    )

    assert pairs == [("apiVersion", "3"), ("limit", "10"), ("symbol", "ETHUSDT")]


@pytest.mark.unit
def test_encode_query_form_encoding():
    """Test standard URL form-encoding."""
    assert encode_query([("note", "a b&c"), ("symbol", "BTC/USDT")]) == "note=a+b%26c&symbol=BTC%2FUSDT"


@pytest.mark.unit
def test_build_signed_query_layout():
    """Test sorted params, then timestamp, then signature last."""
    query = build_signed_query({"symbol": "BTCUSDT", "limit": 5}, "secret", 1499827319559)

    pairs = parse_qsl(query)
    assert [k for k, _ in pairs] == ["limit", "symbol", "timestamp", "signature"]

    unsigned, signature = query.rsplit("&signature=", 1)
    assert unsigned == "limit=5&symbol=BTCUSDT&timestamp=1499827319559"

    expected = hmac.new(b"secret", unsigned.encode(), hashlib.sha256).hexdigest()
    assert signature == expected


@pytest.mark.unit
def test_build_signed_query_deterministic():
    """Test same inputs produce the same signed query regardless of insertion order."""
    first = build_signed_query({"b": 2, "a": 1}, "secret", 1000)
    second = build_signed_query({"a": 1, "b": 2}, "secret", 1000)

    assert first == second


@pytest.mark.unit
def test_build_signed_query_replaces_caller_timestamp():
    """Test caller-supplied timestamp and signature fields are ignored."""
    query = build_signed_query(
        {"symbol": "BTCUSDT", "timestamp": 1, "signature": "forged"},
        "secret",
        2000
    )

    pairs = parse_qsl(query)
    assert pairs.count(("timestamp", "2000")) == 1
    assert ("timestamp", "1") not in pairs
    assert ("signature", "forged") not in pairs
    assert pairs[-1][0] == "signature"


@pytest.mark.unit
def test_build_signed_query_without_params():
    """Test signed query with only the timestamp."""
    query = build_signed_query(None, "secret", 1000)

    assert query.startswith("timestamp=1000&signature=")
    assert query.endswith(sign("secret", "timestamp=1000"))
