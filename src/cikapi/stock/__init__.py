"""
Stock

This module provides the stock entity, its repository, and the resolvers
behind the stock API operations.
"""

from cikapi.stock.model import Stock
from cikapi.stock.repository import StockRepository
from cikapi.stock.service import StockService

__all__ = ["Stock", "StockRepository", "StockService"]
