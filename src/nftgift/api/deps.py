"""Shared dependencies for API routes."""

from typing import Optional

from nftgift.config import get_settings
from nftgift.exchange.factory import get_exchange
from nftgift.ledger.database import get_session_factory
from nftgift.vault.engine import VaultEngine

_vault: Optional[VaultEngine] = None


def get_vault() -> VaultEngine:
    """Get the process-wide vault engine.

    A single instance is shared so that its guard serializes every request.
    """
    global _vault
    if _vault is None:
        _vault = VaultEngine(
            session_factory=get_session_factory(),
            exchange=get_exchange(),
            settings=get_settings(),
        )
    return _vault


def reset_vault() -> None:
    """Forget the vault engine (after the database is closed)."""
    global _vault
    _vault = None
