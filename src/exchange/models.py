"""
Data models for decoded market endpoint responses.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict


@dataclass
class Price:
    """Latest price for one symbol."""
    symbol: str                      # Exchange symbol (e.g., "BTCUSDT")
    price: Decimal

    def __post_init__(self):
        """Ensure Decimal type for precision."""
        if not isinstance(self.price, Decimal):
            self.price = Decimal(str(self.price))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Price":
        """
        Build from a ticker price object.

        Args:
            data: {"symbol": "...", "price": "..."}

        Raises:
            KeyError: If a field is missing
            decimal.InvalidOperation: If price is not numeric
        """
        return cls(symbol=data['symbol'], price=Decimal(data['price']))
