"""Custody vault: deposit/mint and liquidate/burn of claims."""

from nftgift.vault.engine import VaultContext, VaultEngine
from nftgift.vault.events import ClaimLiquidated, ClaimMinted
from nftgift.vault.guard import ReentrancyGuard

__all__ = [
    "ClaimLiquidated",
    "ClaimMinted",
    "ReentrancyGuard",
    "VaultContext",
    "VaultEngine",
]
