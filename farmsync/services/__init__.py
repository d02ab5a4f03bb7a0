"""Services module"""
from .stock_ledger import StockLedger, fold_movements

__all__ = ["StockLedger", "fold_movements"]
