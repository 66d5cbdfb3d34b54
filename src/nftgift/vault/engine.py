"""Vault engine: deposit/mint and liquidate/burn of custody claims.

Every mutating call runs inside the reentrancy guard and a single database
transaction. Any error rolls the transaction back, so a failed call leaves
claims, custody records and balances exactly as they were.

Liquidation follows checks-effects-interactions: the claim is burned before
any funds leave the vault, and custody solvency is verified both before the
release and after the exchange has settled.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nftgift.assets.base import (
    NATIVE_ASSET,
    AssetTransfer,
    check_amount,
    normalize_address,
    normalize_asset,
)
from nftgift.assets.ledger_bank import LedgerAssetBank
from nftgift.config import Settings, get_settings
from nftgift.errors import (
    AuthorizationError,
    InvalidAmountError,
    LedgerInvariantError,
    SlippageError,
    UnknownClaimError,
)
from nftgift.exchange.base import ExchangeProvider
from nftgift.ledger.models import EventKind
from nftgift.ledger.registry import ClaimRegistry
from nftgift.vault.events import ClaimLiquidated, ClaimMinted
from nftgift.vault.guard import ReentrancyGuard

logger = logging.getLogger(__name__)

AssetsFactory = Callable[[AsyncSession], AssetTransfer]


@dataclass
class VaultContext:
    """Repositories bound to one operation's session."""

    session: AsyncSession
    registry: ClaimRegistry
    assets: AssetTransfer


class VaultEngine:
    """Custody vault that wraps deposits into transferable claims."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        exchange: ExchangeProvider,
        settings: Optional[Settings] = None,
        address: Optional[str] = None,
        assets_factory: AssetsFactory = LedgerAssetBank,
        strict_unknown_claims: Optional[bool] = None,
    ):
        self.settings = settings or get_settings()
        self.session_factory = session_factory
        self.exchange = exchange
        self.address = normalize_address(address or self.settings.vault_address)
        self.assets_factory = assets_factory
        self.strict_unknown_claims = (
            self.settings.strict_unknown_claims
            if strict_unknown_claims is None
            else strict_unknown_claims
        )
        self.guard = ReentrancyGuard(
            name=f"vault:{self.address}", timeout=self.settings.lock_timeout_seconds
        )
        if not self.settings.dry_run and assets_factory is LedgerAssetBank:
            logger.warning(
                "DRY_RUN is off but balances are still kept in the simulated ledger bank"
            )

    def _bind(self, session: AsyncSession) -> VaultContext:
        return VaultContext(
            session=session,
            registry=ClaimRegistry(
                session,
                controller=self.address,
                name=self.settings.claim_name,
                symbol=self.settings.claim_symbol,
            ),
            assets=self.assets_factory(session),
        )

    @asynccontextmanager
    async def transaction(self, operation: str) -> AsyncGenerator[VaultContext, None]:
        """Guarded all-or-nothing unit of work."""
        async with self.guard.enter(operation):
            async with self.session_factory() as session:
                try:
                    yield self._bind(session)
                    await session.commit()
                except Exception:
                    await session.rollback()
                    logger.debug(f"{operation} rolled back")
                    raise

    @asynccontextmanager
    async def reader(self) -> AsyncGenerator[VaultContext, None]:
        """Read-only view of the ledger."""
        async with self.session_factory() as session:
            yield self._bind(session)

    # Invariants
    async def _check_solvency(self, ctx: VaultContext, asset: str) -> None:
        """Vault holdings of ``asset`` must cover all active custody of it."""
        custody = await ctx.registry.total_custody(asset)
        held = await ctx.assets.balance_of(asset, self.address)
        if held < custody:
            logger.error(f"Solvency violated for {asset}: held {held}, custody {custody}")
            raise LedgerInvariantError(f"Vault holds {held} of {asset} but owes {custody}")

    # Deposit & mint
    async def create_nft(
        self,
        sender: str,
        asset_address: str,
        amount: int,
        native_payment: int = 0,
    ) -> int:
        """Deposit an asset and mint a claim for it to ``sender``.

        For the native-currency sentinel the custody amount is the payment;
        ``amount`` must be 0 or equal to it. Token deposits pull exactly
        ``amount`` using the allowance ``sender`` granted the vault.

        Returns:
            The new claim identifier
        """
        event = await self.deposit(sender, asset_address, amount, native_payment)
        return event.claim_id

    async def deposit(
        self,
        sender: str,
        asset_address: str,
        amount: int,
        native_payment: int = 0,
    ) -> ClaimMinted:
        """Same as ``create_nft`` but returns the emitted event."""
        sender = normalize_address(sender)
        asset = normalize_asset(asset_address)
        check_amount(amount)
        check_amount(native_payment)

        if asset == NATIVE_ASSET:
            if native_payment == 0:
                raise InvalidAmountError("Native deposit requires a payment")
            if amount not in (0, native_payment):
                raise InvalidAmountError(
                    f"Amount {amount} does not match native payment {native_payment}"
                )
            amount = native_payment
        else:
            if native_payment:
                raise InvalidAmountError("Native payment is not accepted for token deposits")
            if amount == 0:
                raise InvalidAmountError("Deposit amount must be positive")

        async with self.transaction("create_nft") as ctx:
            before = await ctx.assets.balance_of(asset, self.address)
            await ctx.assets.pull(asset, sender, self.address, amount)
            after = await ctx.assets.balance_of(asset, self.address)
            if after - before != amount:
                raise LedgerInvariantError(
                    f"Vault received {after - before} of {asset}, expected {amount}"
                )

            claim_id = await ctx.registry.mint(self.address, sender, asset, amount)
            await self._check_solvency(ctx, asset)

            event = ClaimMinted(
                claim_id=claim_id, asset_address=asset, amount=amount, owner=sender
            )
            await ctx.registry.log_event(EventKind.DEPOSIT, claim_id, event.to_dict())

        logger.info(f"Minted claim {claim_id} for {amount} of {asset} to {sender}")
        return event

    # Liquidate & burn
    async def liquidate_nft(
        self,
        sender: str,
        claim_id: int,
        output_asset_address: str,
        minimum_return: int,
    ) -> Optional[ClaimLiquidated]:
        """Burn a claim and pay its owner the converted asset.

        Unknown claims are ignored (``None`` is returned and nothing changes)
        unless ``strict_unknown_claims`` is set.

        Raises:
            AuthorizationError: If ``sender`` may not act on the claim
            SlippageError: If the exchange cannot return ``minimum_return``
        """
        sender = normalize_address(sender)
        output_asset = normalize_asset(output_asset_address)
        check_amount(minimum_return)

        async with self.transaction("liquidate_nft") as ctx:
            record = await ctx.registry.get_record(claim_id)
            if record is None:
                if self.strict_unknown_claims:
                    raise UnknownClaimError(claim_id)
                logger.warning(f"Ignoring liquidation of unknown claim {claim_id}")
                return None

            owner = await ctx.registry.owner_of(claim_id)
            if not await ctx.registry.is_approved_or_owner(sender, claim_id):
                raise AuthorizationError(
                    f"{sender} is not owner nor approved for claim {claim_id}"
                )

            source_asset = record.asset_address
            amount = record.amount

            quote = await self.exchange.get_return(source_asset, output_asset, amount)
            if not quote.meets(minimum_return):
                raise SlippageError(quote.return_amount, minimum_return)

            await self._check_solvency(ctx, source_asset)

            # Effects before interactions
            await ctx.registry.burn(self.address, claim_id)

            returned = await self._convert(ctx, source_asset, output_asset, amount, minimum_return)
            await ctx.assets.push(output_asset, self.address, owner, returned)

            await self._check_solvency(ctx, source_asset)
            if output_asset != source_asset:
                await self._check_solvency(ctx, output_asset)

            event = ClaimLiquidated(
                claim_id=claim_id,
                output_asset_address=output_asset,
                returned_amount=returned,
                owner=owner,
                source_asset_address=source_asset,
                source_amount=amount,
            )
            await ctx.registry.log_event(EventKind.LIQUIDATE, claim_id, event.to_dict())

        logger.info(
            f"Liquidated claim {claim_id}: {amount} of {source_asset} -> "
            f"{returned} of {output_asset} to {owner}"
        )
        return event

    async def _convert(
        self,
        ctx: VaultContext,
        source_asset: str,
        output_asset: str,
        amount: int,
        minimum_return: int,
    ) -> int:
        """Swap through the exchange and measure the proceeds the vault received."""
        before = await ctx.assets.balance_of(output_asset, self.address)

        if source_asset != NATIVE_ASSET:
            await ctx.assets.approve(source_asset, self.address, self.exchange.address, amount)

        reported = await self.exchange.convert(
            ctx.assets,
            source_asset,
            output_asset,
            amount,
            minimum_return,
            trader=self.address,
            beneficiary=self.address,
        )

        if source_asset != NATIVE_ASSET:
            leftover = await ctx.assets.allowance(
                source_asset, self.address, self.exchange.address
            )
            if leftover:
                raise LedgerInvariantError(
                    f"Exchange left {leftover} of {source_asset} allowance unspent"
                )
            await ctx.assets.approve(source_asset, self.address, self.exchange.address, 0)

        received = await ctx.assets.balance_of(output_asset, self.address) - before
        if received != reported:
            raise LedgerInvariantError(
                f"Exchange reported {reported} of {output_asset} but vault received {received}"
            )
        if received < minimum_return:
            raise SlippageError(received, minimum_return)
        return received

    # Claim ownership
    async def transfer_claim(self, sender: str, source: str, to: str, claim_id: int) -> None:
        async with self.transaction("transfer_claim") as ctx:
            await ctx.registry.transfer_from(sender, source, to, claim_id)
        logger.info(f"Claim {claim_id} transferred from {source} to {to}")

    async def approve_claim(self, sender: str, to: str, claim_id: int) -> None:
        async with self.transaction("approve_claim") as ctx:
            await ctx.registry.approve(sender, to, claim_id)

    async def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        async with self.transaction("set_approval_for_all") as ctx:
            await ctx.registry.set_approval_for_all(owner, operator, approved)

    # Queries
    async def exists(self, claim_id: int) -> bool:
        async with self.reader() as ctx:
            return await ctx.registry.exists(claim_id)

    async def owner_of(self, claim_id: int) -> str:
        async with self.reader() as ctx:
            return await ctx.registry.owner_of(claim_id)

    async def get_token_amount(self, claim_id: int) -> int:
        async with self.reader() as ctx:
            return await ctx.registry.get_token_amount(claim_id)

    async def get_token_address(self, claim_id: int) -> str:
        async with self.reader() as ctx:
            return await ctx.registry.get_token_address(claim_id)

    async def balance_of(self, owner: str) -> int:
        async with self.reader() as ctx:
            return await ctx.registry.balance_of(owner)

    async def tokens_of_owner(self, owner: str) -> list[int]:
        async with self.reader() as ctx:
            return await ctx.registry.tokens_of_owner(owner)

    async def total_supply(self) -> int:
        async with self.reader() as ctx:
            return await ctx.registry.total_supply()

    async def solvency_report(self) -> dict[str, dict[str, int]]:
        """Custody owed versus holdings, per asset the vault has touched."""
        async with self.reader() as ctx:
            custody = await ctx.registry.custody_by_asset()
            assets = set(custody)
            if isinstance(ctx.assets, LedgerAssetBank):
                assets.update(await ctx.assets.holdings(self.address))

            report = {}
            for asset in sorted(assets):
                held = await ctx.assets.balance_of(asset, self.address)
                owed = custody.get(asset, 0)
                report[asset] = {"custody": owed, "held": held, "surplus": held - owed}
            return report
