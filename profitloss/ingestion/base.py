"""Base adapter interface for loading raw source documents."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from profitloss.normalization.costs import CostBook


@dataclass
class RawBatch:
    """Already-fetched source documents for one reconciliation request."""

    sales: list[dict] = field(default_factory=list)
    returns: list[dict] = field(default_factory=list)
    uploaded_rows: list[dict] = field(default_factory=list)
    sheets: list[dict] = field(default_factory=list)
    products: list[dict] = field(default_factory=list)
    purchases: list[dict] = field(default_factory=list)
    combos: list[dict] = field(default_factory=list)

    def cost_book(self) -> CostBook:
        return CostBook(products=self.products, purchases=self.purchases, combos=self.combos)

    @property
    def document_count(self) -> int:
        return (
            len(self.sales) + len(self.returns) + len(self.uploaded_rows)
            + len(self.sheets) + len(self.products) + len(self.purchases) + len(self.combos)
        )


class BaseAdapter(ABC):
    """Abstract base class for all ingestion adapters."""

    @abstractmethod
    def parse(self, file_path: Path) -> RawBatch:
        """Parse a file and return the raw documents it holds."""
        ...

    @abstractmethod
    def validate(self, batch: RawBatch) -> list[str]:
        """Validate parsed data. Returns a list of validation error messages."""
        ...
