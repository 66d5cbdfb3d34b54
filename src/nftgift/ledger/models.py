"""SQLAlchemy models for the claim ledger and the simulated settlement layer."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

ADDRESS_LENGTH = 42
MAX_UINT256 = 2**256 - 1


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TokenAmount(TypeDecorator):
    """Unsigned 256-bit integer stored as a decimal string.

    SQLite keeps NUMERIC values as 64-bit integers or doubles, so wei-sized
    amounts are persisted as text and converted back to ``int`` on load.
    """

    impl = String(78)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = int(value)
        if value < 0 or value > MAX_UINT256:
            raise ValueError(f"Amount out of uint256 range: {value}")
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


class EventKind(str, Enum):
    """Kind of ledger event."""

    MINT = "mint"
    TRANSFER = "transfer"
    APPROVAL = "approval"
    APPROVAL_FOR_ALL = "approval_for_all"
    BURN = "burn"
    DEPOSIT = "deposit"
    LIQUIDATE = "liquidate"


class RegistryState(Base):
    """Identifier counter for a claim registry.

    ``next_id`` only ever increases, so burned identifiers are never reissued.
    """

    __tablename__ = "registry_state"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    next_id: Mapped[int] = mapped_column(default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class ClaimToken(Base):
    """Ownership unit for one custody record."""

    __tablename__ = "claim_tokens"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    owner: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), nullable=False, index=True)
    approved: Mapped[Optional[str]] = mapped_column(String(ADDRESS_LENGTH), nullable=True)
    minted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    record: Mapped["CustodyRecord"] = relationship(
        back_populates="token", lazy="selectin", cascade="all, delete-orphan", uselist=False
    )


class CustodyRecord(Base):
    """Asset and quantity held by the vault against a claim."""

    __tablename__ = "custody_records"

    claim_id: Mapped[int] = mapped_column(
        ForeignKey("claim_tokens.id", ondelete="CASCADE"), primary_key=True
    )
    asset_address: Mapped[str] = mapped_column(
        String(ADDRESS_LENGTH), nullable=False, index=True
    )
    amount: Mapped[int] = mapped_column(TokenAmount(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    token: Mapped["ClaimToken"] = relationship(back_populates="record")


class OperatorApproval(Base):
    """Operator allowed to manage every claim of an owner."""

    __tablename__ = "operator_approvals"
    __table_args__ = (
        Index("ix_operator_approvals_owner_operator", "owner", "operator", unique=True),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    owner: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), nullable=False)
    operator: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class LedgerEvent(Base):
    """Append-only audit log of registry and vault events."""

    __tablename__ = "ledger_events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    kind: Mapped[EventKind] = mapped_column(String(20), nullable=False, index=True)
    claim_id: Mapped[Optional[int]] = mapped_column(nullable=True, index=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)  # JSON
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class AssetBalance(Base):
    """Balance of an asset held by an account in the simulated settlement layer."""

    __tablename__ = "asset_balances"
    __table_args__ = (Index("ix_asset_balances_asset_account", "asset", "account", unique=True),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    asset: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), nullable=False)
    account: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), nullable=False)
    amount: Mapped[int] = mapped_column(TokenAmount(), default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class AssetAllowance(Base):
    """Amount a spender may pull from an owner's balance of a token."""

    __tablename__ = "asset_allowances"
    __table_args__ = (
        Index("ix_asset_allowances_asset_owner_spender", "asset", "owner", "spender", unique=True),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    asset: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), nullable=False)
    owner: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), nullable=False)
    spender: Mapped[str] = mapped_column(String(ADDRESS_LENGTH), nullable=False)
    amount: Mapped[int] = mapped_column(TokenAmount(), default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
