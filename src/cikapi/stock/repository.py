from datetime import datetime, timezone
from typing import List, Optional

from psycopg import sql

from cikapi.db import DataStore
from cikapi.schema import STOCKS_TABLE

# Columns an upsert may be keyed on
UNIQUE_KEYS = ("symbol", "cik")


class StockRepository:
    """
    Repository for stock-related data access.
    Encapsulates all SQL and queries for the stocks table.
    """

    def __init__(self, store: DataStore):
        self.store = store

    def get_by_id(self, stock_id: int) -> Optional[dict]:
        """Get stock by ID."""
        return self.store.find_by_id(STOCKS_TABLE, stock_id)

    def get_by_symbol(self, symbol: str) -> Optional[dict]:
        """Get stock by ticker symbol (exact match)."""
        return self.get_by_key("symbol", symbol)

    def get_by_cik(self, cik: int) -> Optional[dict]:
        """Get stock by CIK."""
        return self.get_by_key("cik", cik)

    def get_by_key(self, key: str, value) -> Optional[dict]:
        """Get the first stock whose unique column ``key`` equals ``value``."""
        rows = self.store.query(self._select_by(key), (value,))
        return rows[0] if rows else None

    def list(self, limit: int = 100, offset: int = 0) -> List[dict]:
        """List stocks, ordered by ID."""
        return self.store.find_all(STOCKS_TABLE, limit=limit, offset=offset)

    def upsert(self, key: str, value, name: str, price: Optional[float] = None) -> dict:
        """
        Update the stock whose ``key`` equals ``value``, or create it.

        The lookup and the write share one transaction. The lookup locks the
        matching row; the insert branch falls back to an update on conflict
        so two first-time upserts of the same key cannot both insert.

        Returns:
            The created row, or the looked-up row merged with the update echo.
        """
        fields = {
            "name": name,
            "price": price,
            "updated_at": datetime.now(timezone.utc),
        }

        with self.store.transaction():
            existing = self.store.query(self._select_by(key, for_update=True), (value,))

            if existing:
                # The unique constraint allows at most one match
                current = existing[0]
                return {**current, **self.store.update(STOCKS_TABLE, current["id"], fields)}

            return self.store.create(STOCKS_TABLE, {key: value, **fields}, on_conflict=key)

    @staticmethod
    def _select_by(key: str, for_update: bool = False) -> sql.Composed:
        if key not in UNIQUE_KEYS:
            raise ValueError(f"Not a unique stock key: {key}")
        query = sql.SQL("SELECT * FROM {table} WHERE {key} = %s").format(
            table=sql.Identifier(STOCKS_TABLE),
            key=sql.Identifier(key),
        )
        if for_update:
            query += sql.SQL(" FOR UPDATE")
        return query
