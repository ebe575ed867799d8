"""Persistence layer for CreditDesk."""

from .database import Database, DuplicatePaymentError, get_db

__all__ = ["Database", "DuplicatePaymentError", "get_db"]
