"""Ledger module for claims, custody records and settlement balances."""

from nftgift.ledger.models import (
    AssetAllowance,
    AssetBalance,
    Base,
    ClaimToken,
    CustodyRecord,
    EventKind,
    LedgerEvent,
    OperatorApproval,
    RegistryState,
)
from nftgift.ledger.database import close_db, get_db, get_session_factory, init_db
from nftgift.ledger.registry import ClaimRegistry

__all__ = [
    # Models
    "Base",
    "ClaimToken",
    "CustodyRecord",
    "RegistryState",
    "OperatorApproval",
    "LedgerEvent",
    "AssetBalance",
    "AssetAllowance",
    # Enums
    "EventKind",
    # Database
    "get_db",
    "get_session_factory",
    "init_db",
    "close_db",
    "ClaimRegistry",
]
