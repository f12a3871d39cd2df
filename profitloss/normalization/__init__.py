"""Normalization layer: raw source documents to canonical profit records."""

from profitloss.normalization.costs import CostBook
from profitloss.normalization.records import NormalizationResult, RecordNormalizer

__all__ = ["CostBook", "NormalizationResult", "RecordNormalizer"]
