"""Asset transfer layer for native currency and fungible tokens."""

from nftgift.assets.base import (
    MAX_UINT256,
    NATIVE_ASSET,
    ZERO_ADDRESS,
    AssetTransfer,
    check_amount,
    is_native,
    normalize_address,
    normalize_asset,
)
from nftgift.assets.ledger_bank import LedgerAssetBank

__all__ = [
    "AssetTransfer",
    "LedgerAssetBank",
    "MAX_UINT256",
    "NATIVE_ASSET",
    "ZERO_ADDRESS",
    "check_amount",
    "is_native",
    "normalize_address",
    "normalize_asset",
]
