"""Field mapping and value coercion for loosely-typed source documents.

Uploaded sheet rows arrive with either spreadsheet headers ("Order Date") or
camelCase keys ("orderDate"), sometimes both. SHEET_COLUMNS is the single
table that says which keys feed which canonical field; human-readable keys
come first so they win when both are filled in.
"""

import re
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

# (canonical field, storage key, recognised source keys in priority order)
SHEET_COLUMNS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("month", "month", ("Month", "month")),
    ("sno", "sno", ("S.No.", "sno", "serialNumber")),
    ("order_date", "orderDate", ("Order Date", "orderDate")),
    ("order_id", "orderId", ("Order id", "Order ID", "orderId", "orderid")),
    ("sku", "sku", ("SKU", "sku")),
    ("quantity", "quantity", ("Quantity", "quantity")),
    ("status", "status", ("Status", "status")),
    ("payment", "payment", ("Payment", "payment")),
    ("payment_date", "paymentDate", ("Payment Date", "paymentDate")),
    ("payment_status", "paymentStatus", ("Payment Status", "paymentStatus")),
    ("purchase_price", "purchasePrice", ("Purchase Price", "purchasePrice")),
    ("profit", "profit", ("Profit", "profit")),
    ("reuse_or_claim", "reuseOrClaim", ("Re-use / Claim", "reuseOrClaim")),
    ("reused_date", "reusedDate", ("Reused Date", "reusedDate")),
    ("status_of_product", "statusOfProduct", ("Status of Product", "statusOfProduct")),
    ("remarks", "remarks", ("Remarks", "remarks")),
)

SHEET_FIELDS: dict[str, tuple[str, ...]] = {field: keys for field, _, keys in SHEET_COLUMNS}
DATE_FIELDS = frozenset({"order_date", "payment_date", "reused_date"})

_EXCEL_EPOCH = datetime(1899, 12, 30)
_MAX_EXCEL_SERIAL = 2958465  # 9999-12-31
_CURRENCY_RE = re.compile(r"^(?:rs\.?|inr|₹|\$)\s*", re.IGNORECASE)
_SERIAL_RE = re.compile(r"\d+(?:\.\d+)?")
_DATE_FORMATS = (
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%Y/%m/%d",
    "%d-%b-%Y",
    "%d %b %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%B %d, %Y",
)


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _squash_key(key: str) -> str:
    return re.sub(r"[\s_]+", "", key).lower()


def resolve_row(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Resolve a raw sheet row to canonical field names.

    Each field takes the first non-blank value among its recognised keys.
    Keys that differ only in case or spacing ("order date ") still match.
    """
    loose = {_squash_key(str(k)): v for k, v in raw.items() if not is_blank(v)}
    resolved: dict[str, Any] = {}
    for field, keys in SHEET_FIELDS.items():
        value = None
        for key in keys:
            candidate = raw.get(key)
            if is_blank(candidate):
                candidate = loose.get(_squash_key(key))
            if not is_blank(candidate):
                value = candidate
                break
        resolved[field] = value
    return resolved


def canonical_row(raw: Mapping[str, Any]) -> dict[str, str]:
    """Map a raw sheet row to the stored camelCase shape, all values as strings.

    Date columns holding Excel serial numbers are stored as YYYY-MM-DD.
    """
    resolved = resolve_row(raw)
    row = {
        storage_key: _as_date_text(resolved[field]) if field in DATE_FIELDS else _as_text(resolved[field])
        for field, storage_key, _ in SHEET_COLUMNS
    }
    row_id = raw.get("_id", raw.get("id"))
    if not is_blank(row_id):
        row["_id"] = str(row_id)
    return row


def _as_date_text(value: Any) -> str:
    if _is_serial(value):
        moment = to_datetime(value)
        if moment is not None:
            return moment.date().isoformat()
    return _as_text(value)


def _is_serial(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return True
    return isinstance(value, str) and _SERIAL_RE.fullmatch(value.strip()) is not None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def to_decimal(value: Any) -> Decimal | None:
    """Coerce a currency-ish value to a finite Decimal, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = _CURRENCY_RE.sub("", value.strip()).replace(",", "")
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None
    return result if result.is_finite() else None


def to_quantity(value: Any, default: int | None = None) -> int | None:
    """Coerce to a positive whole quantity; None if the value is unusable."""
    if is_blank(value):
        return default
    number = to_decimal(value)
    if number is None or number != number.to_integral_value() or number <= 0:
        return None
    return int(number)


def to_datetime(value: Any) -> datetime | None:
    """Parse a source date to a naive UTC datetime, or None.

    Numbers are treated as Excel serial dates, which is what spreadsheet
    exports produce for unformatted date cells.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float, Decimal)):
        serial = float(value)
        if not 0 < serial <= _MAX_EXCEL_SERIAL:
            return None
        return _EXCEL_EPOCH + timedelta(days=serial)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return _naive_utc(datetime.fromisoformat(iso))
    except ValueError:
        pass
    if _SERIAL_RE.fullmatch(text):
        return to_datetime(Decimal(text))
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def ref_id(value: Any) -> str | None:
    """Extract a document id from a reference that may be an id or an embedded document."""
    if is_blank(value):
        return None
    if isinstance(value, Mapping):
        inner = value.get("_id", value.get("id"))
        return None if is_blank(inner) else str(inner)
    return str(value)


def first_present(doc: Mapping[str, Any], *keys: str) -> Any:
    """Return the first non-blank value among ``keys``."""
    for key in keys:
        value = doc.get(key)
        if not is_blank(value):
            return value
    return None
