"""
Domain model for a row of the stocks table.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional


@dataclass
class Stock:
    """
    Represents one listed company.

    Attributes:
        id: Database primary key, assigned by the store.
        name: Company name.
        symbol: Ticker symbol, unique when present.
        price: Last known price.
        cik: SEC Central Index Key, unique when present.
        updated_at: Timestamp of the last write.
    """
    id: int
    name: str
    symbol: Optional[str] = None
    price: Optional[float] = None
    cik: Optional[int] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Stock":
        """Build a Stock from a database row or an update echo."""
        price = row.get("price")
        if isinstance(price, Decimal):
            price = float(price)
        return cls(
            id=row["id"],
            name=row["name"],
            symbol=row.get("symbol"),
            price=price,
            cik=row.get("cik"),
            updated_at=row.get("updated_at"),
        )

    def to_dict(self) -> dict:
        """API representation, with camelCase ``updatedAt`` as ISO-8601."""
        return {
            "id": self.id,
            "symbol": self.symbol,
            "name": self.name,
            "price": self.price,
            "cik": self.cik,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __str__(self) -> str:
        return f"{self.symbol or '-'} | {self.name} | cik={self.cik} | price={self.price}"
