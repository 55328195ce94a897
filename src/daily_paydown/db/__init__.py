"""Database package: models, session management and the ledger store."""
from daily_paydown.db.models import (AccountSelection, BalanceSnapshot,
                                     DailyReport, Device, ItemStatus,
                                     LinkedItem, Transaction, User)
from daily_paydown.db.sessions import Database
from daily_paydown.db.store import LedgerStore, TransactionRecord, UpsertCounts

__all__ = [
    "AccountSelection",
    "BalanceSnapshot",
    "DailyReport",
    "Database",
    "Device",
    "ItemStatus",
    "LedgerStore",
    "LinkedItem",
    "Transaction",
    "TransactionRecord",
    "UpsertCounts",
    "User",
]
