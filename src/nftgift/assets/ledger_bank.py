"""Database-backed settlement layer used in dry-run mode and tests.

Mimics ERC-20 ``transfer`` / ``transferFrom`` / ``approve`` semantics for
tokens and plain value transfers for the native currency. Because it shares
the vault's session, a failed vault operation rolls back every balance
change it made.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nftgift.assets.base import (
    MAX_UINT256,
    NATIVE_ASSET,
    ZERO_ADDRESS,
    AssetTransfer,
    check_amount,
    normalize_address,
    normalize_asset,
)
from nftgift.errors import InsufficientFundsError, InvalidAddressError, InvalidAssetError
from nftgift.ledger.models import AssetAllowance, AssetBalance

logger = logging.getLogger(__name__)

EXCEEDS_ALLOWANCE = "transfer amount exceeds spender allowance"
EXCEEDS_BALANCE = "transfer amount exceeds balance"


class LedgerAssetBank(AssetTransfer):
    """Balances and allowances kept in the ledger database."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # Balance operations
    async def _get_balance(self, asset: str, account: str) -> Optional[AssetBalance]:
        stmt = select(AssetBalance).where(
            AssetBalance.asset == asset, AssetBalance.account == account
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_or_create_balance(self, asset: str, account: str) -> AssetBalance:
        balance = await self._get_balance(asset, account)
        if balance is None:
            balance = AssetBalance(asset=asset, account=account, amount=0)
            self.session.add(balance)
            await self.session.flush()
        return balance

    async def balance_of(self, asset: str, account: str) -> int:
        balance = await self._get_balance(normalize_asset(asset), normalize_address(account))
        return balance.amount if balance else 0

    async def mint(self, asset: str, account: str, amount: int) -> int:
        """Create ``amount`` of ``asset`` out of thin air (dry-run funding only)."""
        asset = normalize_asset(asset)
        account = normalize_address(account)
        check_amount(amount)

        balance = await self._get_or_create_balance(asset, account)
        if balance.amount + amount > MAX_UINT256:
            raise InvalidAssetError(f"Minting {amount} would overflow {asset} balance")
        balance.amount += amount
        await self.session.flush()
        logger.debug(f"Minted {amount} of {asset} to {account}")
        return balance.amount

    async def transfer(self, asset: str, source: str, recipient: str, amount: int) -> None:
        """Move ``amount`` from ``source`` to ``recipient``."""
        asset = normalize_asset(asset)
        source = normalize_address(source)
        recipient = normalize_address(recipient)
        check_amount(amount)
        if recipient == ZERO_ADDRESS:
            raise InvalidAddressError("Transfer to the zero address")

        sender_balance = await self._get_or_create_balance(asset, source)
        if sender_balance.amount < amount:
            raise InsufficientFundsError(EXCEEDS_BALANCE)
        if source == recipient:
            return

        recipient_balance = await self._get_or_create_balance(asset, recipient)
        sender_balance.amount -= amount
        recipient_balance.amount += amount
        await self.session.flush()

    # Allowance operations
    async def _get_allowance(
        self, asset: str, owner: str, spender: str
    ) -> Optional[AssetAllowance]:
        stmt = select(AssetAllowance).where(
            AssetAllowance.asset == asset,
            AssetAllowance.owner == owner,
            AssetAllowance.spender == spender,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def allowance(self, asset: str, owner: str, spender: str) -> int:
        record = await self._get_allowance(
            normalize_asset(asset), normalize_address(owner), normalize_address(spender)
        )
        return record.amount if record else 0

    async def approve(self, asset: str, owner: str, spender: str, amount: int) -> None:
        asset = normalize_asset(asset)
        if asset == NATIVE_ASSET:
            raise InvalidAssetError("Native currency has no allowances")
        owner = normalize_address(owner)
        spender = normalize_address(spender)
        check_amount(amount)

        record = await self._get_allowance(asset, owner, spender)
        if record is None:
            record = AssetAllowance(asset=asset, owner=owner, spender=spender, amount=amount)
            self.session.add(record)
        else:
            record.amount = amount
        await self.session.flush()

    async def transfer_from(
        self, asset: str, spender: str, source: str, recipient: str, amount: int
    ) -> None:
        """Spend ``source``'s allowance to ``spender`` and move ``amount`` to ``recipient``."""
        asset = normalize_asset(asset)
        spender = normalize_address(spender)
        source = normalize_address(source)
        check_amount(amount)

        record = await self._get_allowance(asset, source, spender)
        allowed = record.amount if record else 0
        if allowed < amount:
            raise InsufficientFundsError(EXCEEDS_ALLOWANCE)

        await self.transfer(asset, source, recipient, amount)

        # An unlimited allowance is never decremented
        if record is not None and allowed != MAX_UINT256:
            record.amount = allowed - amount
            await self.session.flush()

    # AssetTransfer
    async def pull(self, asset: str, source: str, recipient: str, amount: int) -> None:
        asset = normalize_asset(asset)
        if normalize_address(recipient) == normalize_address(source):
            raise InvalidAddressError("Cannot pull funds from the recipient itself")
        if asset == NATIVE_ASSET:
            await self.transfer(asset, source, recipient, amount)
        else:
            await self.transfer_from(asset, recipient, source, recipient, amount)
        logger.debug(f"Pulled {amount} of {asset} from {source} into {recipient}")

    async def push(self, asset: str, holder: str, recipient: str, amount: int) -> None:
        await self.transfer(asset, holder, recipient, amount)
        logger.debug(f"Pushed {amount} of {asset} from {holder} to {recipient}")

    async def holdings(self, account: str) -> dict[str, int]:
        """Every non-zero balance held by ``account``."""
        account = normalize_address(account)
        stmt = (
            select(AssetBalance)
            .where(AssetBalance.account == account)
            .order_by(AssetBalance.asset)
        )
        result = await self.session.execute(stmt)
        return {row.asset: row.amount for row in result.scalars().all() if row.amount}
