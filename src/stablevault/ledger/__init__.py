"""Ledger module for depositor balances, vault state and audit events."""

from stablevault.ledger.database import close_db, get_session_factory, init_db, unit_of_work
from stablevault.ledger.models import AssetClass, Balance, VaultEventRecord, VaultState
from stablevault.ledger.repository import LedgerRepository, VaultNotInitialized

__all__ = [
    # Models
    "AssetClass",
    "Balance",
    "VaultEventRecord",
    "VaultState",
    # Database
    "close_db",
    "get_session_factory",
    "init_db",
    "unit_of_work",
    "LedgerRepository",
    "VaultNotInitialized",
]
