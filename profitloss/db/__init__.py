"""Database layer for the profit/loss reconciler."""

from profitloss.db.repository import SourceRepository
from profitloss.db.schema import create_schema

__all__ = ["SourceRepository", "create_schema"]
