from typing import List, Optional

from cikapi.errors import MutationFailed, QueryError, StoreError
from cikapi.log import get_logger
from cikapi.stock.model import Stock
from cikapi.stock.repository import StockRepository

logger = get_logger(__name__)


class StockService:
    """
    Resolvers for the stock API operations.

    Each operation maps onto one repository call, shapes rows into Stock
    objects, and re-raises storage failures with the operation named.
    Absent stocks come back as None, never as an error.
    """

    def __init__(self, repository: StockRepository):
        self.repository = repository

    # Queries

    def stocks(self, limit: int = 100, offset: int = 0) -> List[Stock]:
        try:
            rows = self.repository.list(limit=limit, offset=offset)
        except StoreError as e:
            raise QueryError(f"Failed to fetch stocks: {e}", cause=e) from e
        return [Stock.from_row(r) for r in rows]

    def stock(self, stock_id: int) -> Optional[Stock]:
        try:
            row = self.repository.get_by_id(stock_id)
        except StoreError as e:
            raise QueryError(f"Failed to fetch stock: {e}", cause=e) from e
        return Stock.from_row(row) if row else None

    def stock_by_symbol(self, symbol: str) -> Optional[Stock]:
        try:
            row = self.repository.get_by_symbol(symbol)
        except StoreError as e:
            raise QueryError(f"Failed to fetch stock by symbol: {e}", cause=e) from e
        return Stock.from_row(row) if row else None

    def stock_by_cik(self, cik: int) -> Optional[Stock]:
        try:
            row = self.repository.get_by_cik(cik)
        except StoreError as e:
            raise QueryError(f"Failed to fetch stock by CIK: {e}", cause=e) from e
        return Stock.from_row(row) if row else None

    # Mutations

    def upsert_stock(self, symbol: str, name: str, price: Optional[float] = None) -> Stock:
        """Create or update the stock identified by ``symbol``."""
        try:
            row = self.repository.upsert("symbol", symbol, name=name, price=price)
        except StoreError as e:
            raise MutationFailed(f"Failed to upsert stock: {e}", cause=e) from e
        logger.info("Upserted stock %s (id=%s)", symbol, row["id"])
        return Stock.from_row(row)

    def upsert_stock_by_cik(self, cik: int, name: str, price: Optional[float] = None) -> Stock:
        """Create or update the stock identified by ``cik``."""
        try:
            row = self.repository.upsert("cik", cik, name=name, price=price)
        except StoreError as e:
            raise MutationFailed(f"Failed to upsert stock by CIK: {e}", cause=e) from e
        logger.info("Upserted stock cik=%s (id=%s)", cik, row["id"])
        return Stock.from_row(row)
