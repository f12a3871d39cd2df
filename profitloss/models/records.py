"""Canonical profit record, source reference and warning models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from profitloss.exceptions import InvalidSourceIdError
from profitloss.models.enums import ItemType, ProfitStatus, SourceType, WarningCode

_PREFIXES = {
    SourceType.SALE: "sale",
    SourceType.RETURN: "return",
    SourceType.UPLOADED_ROW: "upload",
}
_TYPES_BY_PREFIX = {prefix: source_type for source_type, prefix in _PREFIXES.items()}


class SourceRef(BaseModel):
    """Points a ProfitRecord back at the document and item it came from.

    Rendered as ``<prefix>:<document_id>:<item_key>``, e.g.
    ``sale:65f0c1:65f0c2`` or ``return:66a1:0``.
    """

    model_config = ConfigDict(frozen=True)

    source_type: SourceType
    document_id: str
    item_key: str

    def __str__(self) -> str:
        return f"{_PREFIXES[self.source_type]}:{self.document_id}:{self.item_key}"

    @classmethod
    def parse(cls, source_id: str) -> "SourceRef":
        prefix, sep, rest = source_id.partition(":")
        document_id, sep2, item_key = rest.rpartition(":")
        if not sep or not sep2 or prefix not in _TYPES_BY_PREFIX:
            raise InvalidSourceIdError(source_id)
        if not document_id or not item_key:
            raise InvalidSourceIdError(source_id)
        return cls(
            source_type=_TYPES_BY_PREFIX[prefix],
            document_id=document_id,
            item_key=item_key,
        )

    @property
    def item_index(self) -> int | None:
        """The item key as a list index, when it is one."""
        return int(self.item_key) if self.item_key.isdigit() else None


class ProfitRecord(BaseModel):
    """One line item's profit, whichever source family it came from.

    Prices are ``None`` when the source value could not be read as a finite
    number; the calculator then zeroes the profit instead of failing.
    """

    model_config = ConfigDict(frozen=True)

    source_type: SourceType
    source_id: str
    date: datetime | None = None
    product_label: str = "Unknown"
    item_type: ItemType = ItemType.PRODUCT
    quantity: int
    cost_price: Decimal | None = None
    sold_price: Decimal | None = None
    status: ProfitStatus
    profit_per_unit: Decimal = Decimal("0")
    profit_total: Decimal = Decimal("0")
    reported_profit: Decimal | None = None
    warnings: tuple[WarningCode, ...] = ()

    @property
    def ref(self) -> SourceRef:
        return SourceRef.parse(self.source_id)

    def with_warning(self, code: WarningCode) -> "ProfitRecord":
        if code in self.warnings:
            return self
        return self.model_copy(update={"warnings": (*self.warnings, code)})


class ReconciliationWarning(BaseModel):
    """A non-fatal data-quality finding raised while reconciling."""

    code: WarningCode
    message: str
    source_id: str | None = None
    details: dict = Field(default_factory=dict)

    def __str__(self) -> str:
        where = f" [{self.source_id}]" if self.source_id else ""
        return f"{self.code.value}{where}: {self.message}"
