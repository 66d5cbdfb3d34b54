"""Claim registry: ERC-721-style claim tokens and their custody records."""

import json
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from nftgift.assets.base import (
    MAX_UINT256,
    ZERO_ADDRESS,
    check_amount,
    normalize_address,
    normalize_asset,
)
from nftgift.errors import (
    AuthorizationError,
    InvalidAddressError,
    InvalidClaimIdError,
    UnknownClaimError,
)
from nftgift.ledger.models import (
    ClaimToken,
    CustodyRecord,
    EventKind,
    LedgerEvent,
    OperatorApproval,
    RegistryState,
)

DEFAULT_NAME = "NFTGift"
DEFAULT_SYMBOL = "NTG"

# Largest value a SQLite INTEGER column holds
MAX_STORED_ID = 2**63 - 1


class ClaimRegistry:
    """Repository for claim ownership, approvals and custody records.

    Only the controller (the vault engine's address) may mint and burn.
    """

    def __init__(
        self,
        session: AsyncSession,
        controller: str,
        name: str = DEFAULT_NAME,
        symbol: str = DEFAULT_SYMBOL,
    ):
        self.session = session
        self.controller = normalize_address(controller)
        self.name = name
        self.symbol = symbol

    # Identifier issuance
    async def _get_or_create_state(self) -> RegistryState:
        stmt = select(RegistryState).where(RegistryState.name == self.name)
        result = await self.session.execute(stmt)
        state = result.scalar_one_or_none()
        if state is None:
            state = RegistryState(name=self.name, next_id=0)
            self.session.add(state)
            await self.session.flush()
        return state

    async def _issue_id(self) -> int:
        state = await self._get_or_create_state()
        claim_id = state.next_id
        state.next_id = claim_id + 1
        await self.session.flush()
        return claim_id

    # Event log
    async def log_event(
        self, kind: EventKind, claim_id: Optional[int], payload: dict
    ) -> LedgerEvent:
        """Append an event to the audit log."""
        event = LedgerEvent(
            kind=kind.value,
            claim_id=claim_id,
            payload=json.dumps(payload, sort_keys=True, default=str),
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def get_events(
        self, claim_id: Optional[int] = None, limit: int = 50
    ) -> list[LedgerEvent]:
        """Most recent events, optionally for a single claim."""
        stmt = select(LedgerEvent).order_by(LedgerEvent.id.desc()).limit(limit)
        if claim_id is not None:
            stmt = stmt.where(LedgerEvent.claim_id == claim_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # Lookups
    @staticmethod
    def _storable_id(claim_id: int) -> bool:
        """Validate an identifier and tell whether it can have been issued.

        Identifiers are unsigned 256-bit integers, but issued ones are
        sequential from 0 and always fit a SQLite INTEGER.

        Raises:
            InvalidClaimIdError: If the identifier is not a uint256
        """
        if isinstance(claim_id, bool) or not isinstance(claim_id, int):
            raise InvalidClaimIdError(claim_id)
        if claim_id < 0 or claim_id > MAX_UINT256:
            raise InvalidClaimIdError(claim_id)
        return claim_id <= MAX_STORED_ID

    async def _get_token(self, claim_id: int) -> Optional[ClaimToken]:
        if not self._storable_id(claim_id):
            return None
        return await self.session.get(ClaimToken, claim_id)

    async def _require_token(self, claim_id: int) -> ClaimToken:
        token = await self._get_token(claim_id)
        if token is None:
            raise UnknownClaimError(claim_id)
        return token

    async def exists(self, claim_id: int) -> bool:
        return await self._get_token(claim_id) is not None

    async def owner_of(self, claim_id: int) -> str:
        token = await self._require_token(claim_id)
        return token.owner

    async def balance_of(self, owner: str) -> int:
        owner = normalize_address(owner)
        if owner == ZERO_ADDRESS:
            raise InvalidAddressError("Balance query for the zero address")
        stmt = select(func.count()).select_from(ClaimToken).where(ClaimToken.owner == owner)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def tokens_of_owner(self, owner: str) -> list[int]:
        owner = normalize_address(owner)
        stmt = select(ClaimToken.id).where(ClaimToken.owner == owner).order_by(ClaimToken.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def total_supply(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(ClaimToken))
        return result.scalar_one()

    async def get_record(self, claim_id: int) -> Optional[CustodyRecord]:
        if not self._storable_id(claim_id):
            return None
        return await self.session.get(CustodyRecord, claim_id)

    async def get_token_amount(self, claim_id: int) -> int:
        record = await self.get_record(claim_id)
        return record.amount if record else 0

    async def get_token_address(self, claim_id: int) -> str:
        record = await self.get_record(claim_id)
        return record.asset_address if record else ZERO_ADDRESS

    async def total_custody(self, asset: str) -> int:
        """Sum of active custody amounts for one asset."""
        asset = normalize_asset(asset)
        stmt = select(CustodyRecord.amount).where(CustodyRecord.asset_address == asset)
        result = await self.session.execute(stmt)
        # Amounts are stored as text, so they are summed here rather than in SQL
        return sum(result.scalars().all())

    async def custody_by_asset(self) -> dict[str, int]:
        """Sum of active custody amounts per asset."""
        result = await self.session.execute(
            select(CustodyRecord.asset_address, CustodyRecord.amount)
        )
        totals: dict[str, int] = {}
        for asset, amount in result.all():
            totals[asset] = totals.get(asset, 0) + amount
        return totals

    # Approvals
    async def _get_operator_approval(
        self, owner: str, operator: str
    ) -> Optional[OperatorApproval]:
        stmt = select(OperatorApproval).where(
            OperatorApproval.owner == owner, OperatorApproval.operator == operator
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def is_approved_for_all(self, owner: str, operator: str) -> bool:
        approval = await self._get_operator_approval(
            normalize_address(owner), normalize_address(operator)
        )
        return approval is not None

    async def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        owner = normalize_address(owner)
        operator = normalize_address(operator)
        if owner == operator:
            raise InvalidAddressError("Cannot approve yourself as operator")

        existing = await self._get_operator_approval(owner, operator)
        if approved and existing is None:
            self.session.add(OperatorApproval(owner=owner, operator=operator))
        elif not approved and existing is not None:
            await self.session.delete(existing)
        await self.session.flush()
        await self.log_event(
            EventKind.APPROVAL_FOR_ALL,
            None,
            {"owner": owner, "operator": operator, "approved": approved},
        )

    async def get_approved(self, claim_id: int) -> str:
        token = await self._require_token(claim_id)
        return token.approved or ZERO_ADDRESS

    async def approve(self, caller: str, to: str, claim_id: int) -> None:
        """Approve ``to`` to transfer one claim; the zero address clears it."""
        caller = normalize_address(caller)
        to = normalize_address(to)
        token = await self._require_token(claim_id)

        if to == token.owner:
            raise InvalidAddressError("Approval to current owner")
        if caller != token.owner and not await self.is_approved_for_all(token.owner, caller):
            raise AuthorizationError(
                f"{caller} is not the owner of claim {claim_id} nor approved for all"
            )

        token.approved = None if to == ZERO_ADDRESS else to
        await self.session.flush()
        await self.log_event(EventKind.APPROVAL, claim_id, {"owner": token.owner, "approved": to})

    async def is_approved_or_owner(self, spender: str, claim_id: int) -> bool:
        spender = normalize_address(spender)
        token = await self._require_token(claim_id)
        return (
            spender == token.owner
            or spender == token.approved
            or await self.is_approved_for_all(token.owner, spender)
        )

    # Ownership changes
    async def transfer_from(self, caller: str, source: str, to: str, claim_id: int) -> None:
        """Transfer a claim; the caller must be owner, approved or operator."""
        caller = normalize_address(caller)
        source = normalize_address(source)
        to = normalize_address(to)
        token = await self._require_token(claim_id)

        if not await self.is_approved_or_owner(caller, claim_id):
            raise AuthorizationError(
                f"{caller} is not owner nor approved for claim {claim_id}"
            )
        if token.owner != source:
            raise AuthorizationError(f"Claim {claim_id} is not owned by {source}")
        if to == ZERO_ADDRESS:
            raise InvalidAddressError("Transfer to the zero address")

        token.owner = to
        token.approved = None
        await self.session.flush()
        await self.log_event(EventKind.TRANSFER, claim_id, {"from": source, "to": to})

    async def mint(self, caller: str, to: str, asset_address: str, amount: int) -> int:
        """Issue the next identifier and create its token and custody record."""
        self._require_controller(caller, "mint")
        to = normalize_address(to)
        if to == ZERO_ADDRESS:
            raise InvalidAddressError("Mint to the zero address")
        asset_address = normalize_asset(asset_address)
        check_amount(amount)

        claim_id = await self._issue_id()
        token = ClaimToken(id=claim_id, owner=to)
        token.record = CustodyRecord(claim_id=claim_id, asset_address=asset_address, amount=amount)
        self.session.add(token)
        await self.session.flush()
        await self.log_event(EventKind.MINT, claim_id, {"from": ZERO_ADDRESS, "to": to})
        return claim_id

    async def burn(self, caller: str, claim_id: int) -> CustodyRecord:
        """Destroy a claim together with its custody record.

        Returns the detached record so the caller can settle it.
        """
        self._require_controller(caller, "burn")
        token = await self._require_token(claim_id)
        record = token.record
        owner = token.owner

        await self.session.delete(token)
        await self.session.flush()
        await self.log_event(EventKind.BURN, claim_id, {"from": owner, "to": ZERO_ADDRESS})
        return record

    def _require_controller(self, caller: str, operation: str) -> None:
        if normalize_address(caller) != self.controller:
            raise AuthorizationError(f"Only the vault may {operation} claims")
