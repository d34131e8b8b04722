"""
Binance Stream Client

A small client for the Binance REST API (public and HMAC-signed requests)
and its WebSocket market data streams.
"""

__version__ = "0.1.0"
__author__ = "Binance Stream Client Team"
