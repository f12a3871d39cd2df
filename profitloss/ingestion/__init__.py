"""Ingestion adapters for loading source documents from exported files."""

from profitloss.ingestion.base import BaseAdapter, RawBatch
from profitloss.ingestion.json_batch import JsonBatchAdapter
from profitloss.ingestion.sheet_csv import SheetCsvAdapter

__all__ = ["BaseAdapter", "JsonBatchAdapter", "RawBatch", "SheetCsvAdapter"]
