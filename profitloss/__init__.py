"""Profit/loss reconciliation for sales, returns and uploaded profit sheets."""

__version__ = "0.1.0"
