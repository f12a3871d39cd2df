"""Custom exceptions for the profit/loss reconciler.

Per-record data-quality problems never raise; they are reported as
ReconciliationWarning entries. These exceptions are for failures that make a
whole batch or request meaningless.
"""

from datetime import date


class ReconciliationError(Exception):
    """Base exception for reconciliation failures."""


class InputShapeError(ReconciliationError):
    """Raised when a raw input collection has the wrong structure entirely."""

    def __init__(self, collection: str, message: str):
        self.collection = collection
        super().__init__(f"Malformed '{collection}' input: {message}")


class InvalidDateRangeError(ReconciliationError):
    """Raised when a date range starts after it ends."""

    def __init__(self, start: date, end: date):
        self.start = start
        self.end = end
        super().__init__(f"Start date {start} must not be after end date {end}")


class InvalidSourceIdError(ReconciliationError):
    """Raised when a source id string cannot be parsed back into a reference."""

    def __init__(self, source_id: str):
        self.source_id = source_id
        super().__init__(f"Invalid source id: {source_id!r}")


class SourceNotFoundError(ReconciliationError):
    """Raised when an edit or delete targets a document or item that doesn't exist."""

    def __init__(self, source_id: str):
        self.source_id = source_id
        super().__init__(f"Source not found: {source_id}")


class BatchImportError(ReconciliationError):
    """Raised when an input file cannot be read into a raw batch."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"Import error from {source}: {message}")
