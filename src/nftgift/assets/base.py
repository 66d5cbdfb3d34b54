"""Asset transfer interface for native currency and ERC-20-style tokens."""

from abc import ABC, abstractmethod

from eth_utils import is_address, to_checksum_address

from nftgift.errors import InvalidAddressError, InvalidAmountError, InvalidAssetError

MAX_UINT256 = 2**256 - 1

# Sentinel used by conversion networks to denote the chain's native currency
NATIVE_ASSET = to_checksum_address("0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee")
ZERO_ADDRESS = to_checksum_address("0x0000000000000000000000000000000000000000")


def normalize_address(value: str) -> str:
    """Validate an account address and return its checksum form."""
    if not isinstance(value, str) or not is_address(value):
        raise InvalidAddressError(f"Invalid address: {value!r}")
    return to_checksum_address(value)


def normalize_asset(value: str) -> str:
    """Validate an asset address and return its checksum form."""
    if not isinstance(value, str) or not is_address(value):
        raise InvalidAssetError(f"Invalid asset address: {value!r}")
    asset = to_checksum_address(value)
    if asset == ZERO_ADDRESS:
        raise InvalidAssetError("Zero address is not an asset")
    return asset


def is_native(asset: str) -> bool:
    """Check if the asset address is the native-currency sentinel."""
    return normalize_asset(asset) == NATIVE_ASSET


def check_amount(amount: int) -> int:
    """Validate an amount in the asset's smallest unit."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(f"Amount must be an integer, got {amount!r}")
    if amount < 0 or amount > MAX_UINT256:
        raise InvalidAmountError(f"Amount out of range: {amount}")
    return amount


class AssetTransfer(ABC):
    """Settlement layer through which the vault moves funds.

    Implementations must move exactly the requested amount or raise
    ``InsufficientFundsError``; nothing else is assumed about an asset.
    """

    @abstractmethod
    async def balance_of(self, asset: str, account: str) -> int:
        """Balance of ``asset`` held by ``account``."""
        pass

    @abstractmethod
    async def allowance(self, asset: str, owner: str, spender: str) -> int:
        """Amount of ``asset`` that ``spender`` may pull from ``owner``."""
        pass

    @abstractmethod
    async def approve(self, asset: str, owner: str, spender: str, amount: int) -> None:
        """Set the allowance of ``spender`` over ``owner``'s balance."""
        pass

    @abstractmethod
    async def pull(self, asset: str, source: str, recipient: str, amount: int) -> None:
        """
        Pull ``amount`` from ``source`` into ``recipient``.

        For tokens the recipient acts as the spender and consumes the
        allowance ``source`` granted it. For native currency the amount is
        the payment attached to the call and needs no allowance.
        """
        pass

    @abstractmethod
    async def push(self, asset: str, holder: str, recipient: str, amount: int) -> None:
        """Send ``amount`` from ``holder``'s own balance to ``recipient``."""
        pass
