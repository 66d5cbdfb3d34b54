"""Pytest configuration and fixtures."""

import os
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEBUG"] = "false"
os.environ["DRY_RUN"] = "true"

from nftgift.assets.base import NATIVE_ASSET
from nftgift.assets.ledger_bank import LedgerAssetBank
from nftgift.config import get_settings
from nftgift.exchange.dry_run import SimulatedExchange
from nftgift.ledger.database import build_engine, create_schema, create_session_factory
from nftgift.ledger.registry import ClaimRegistry
from nftgift.vault.engine import VaultEngine

VAULT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
EXCHANGE = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
ALICE = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
BOB = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
CAROL = "0x90F79bf6EB2c4f870365E785982E1f101E93b906"

UNI = "0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984"
MATIC = "0x7D1AfA7B718fb893dB30A3aBc0Cfc608AaCfeBB0"
NATIVE = NATIVE_ASSET

ETHER = 10**18


@pytest_asyncio.fixture
async def db_engine():
    """Create in-memory database engine for testing."""
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await create_schema(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    """Session factory bound to the test engine."""
    return create_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def registry(db_session: AsyncSession) -> ClaimRegistry:
    """Claim registry controlled by the test vault address."""
    return ClaimRegistry(db_session, controller=VAULT)


@pytest_asyncio.fixture
async def bank(db_session: AsyncSession) -> LedgerAssetBank:
    """Simulated settlement layer on the test session."""
    return LedgerAssetBank(db_session)


@pytest.fixture
def exchange() -> SimulatedExchange:
    """Simulated exchange: UNI <-> MATIC at 2 and 0.5, native at 1000, no fee."""
    return SimulatedExchange(
        address=EXCHANGE,
        fee_percent=Decimal("0"),
        default_rate=None,
        rates={
            (UNI, MATIC): Decimal("2"),
            (MATIC, UNI): Decimal("0.5"),
            (NATIVE, UNI): Decimal("1000"),
            (UNI, NATIVE): Decimal("0.001"),
        },
    )


@pytest.fixture
def settings():
    return get_settings()


@pytest_asyncio.fixture
async def vault(session_factory, exchange, settings) -> VaultEngine:
    """Vault engine over the in-memory ledger and simulated exchange."""
    return VaultEngine(
        session_factory=session_factory,
        exchange=exchange,
        settings=settings,
        address=VAULT,
        strict_unknown_claims=False,
    )


@pytest.fixture
def fund(vault: VaultEngine):
    """Credit balances and allowances in the vault's settlement layer."""

    async def _fund(asset: str, account: str, amount: int, approve: int = 0) -> None:
        async with vault.transaction("fund") as ctx:
            await LedgerAssetBank(ctx.session).mint(asset, account, amount)
            if approve:
                await ctx.assets.approve(asset, account, vault.address, approve)

    return _fund


@pytest.fixture
def balance(vault: VaultEngine):
    """Read a balance from the vault's settlement layer."""

    async def _balance(asset: str, account: str) -> int:
        async with vault.reader() as ctx:
            return await ctx.assets.balance_of(asset, account)

    return _balance
