"""Enumerations for the profit/loss reconciler."""

from enum import StrEnum


class SourceType(StrEnum):
    SALE = "SALE"
    RETURN = "RETURN"
    UPLOADED_ROW = "UPLOADED_ROW"


class ProfitStatus(StrEnum):
    DELIVERED = "DELIVERED"
    RTO = "RTO"
    RPU = "RPU"


class ItemType(StrEnum):
    PRODUCT = "product"
    COMBO = "combo"


class WarningCode(StrEnum):
    MISSING_REFERENCE = "MISSING_REFERENCE"
    INVALID_NUMERIC = "INVALID_NUMERIC"
    INVALID_DATE = "INVALID_DATE"
    UNRECOGNIZED_STATUS = "UNRECOGNIZED_STATUS"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    PROFIT_MISMATCH = "PROFIT_MISMATCH"
