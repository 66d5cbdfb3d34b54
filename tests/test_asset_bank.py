"""Tests for the database-backed settlement layer."""

import pytest

from conftest import ALICE, BOB, NATIVE, UNI, VAULT
from nftgift.assets.base import MAX_UINT256, ZERO_ADDRESS, is_native
from nftgift.assets.ledger_bank import EXCEEDS_ALLOWANCE, EXCEEDS_BALANCE, LedgerAssetBank
from nftgift.errors import (
    InsufficientFundsError,
    InvalidAddressError,
    InvalidAmountError,
    InvalidAssetError,
)


class TestBalances:
    """Tests for balance operations."""

    @pytest.mark.asyncio
    async def test_mint_and_balance(self, bank: LedgerAssetBank):
        """Test funding an account."""
        assert await bank.balance_of(UNI, ALICE) == 0

        balance = await bank.mint(UNI, ALICE, 10**19)

        assert balance == 10**19
        assert await bank.balance_of(UNI, ALICE) == 10**19
        assert await bank.balance_of(UNI, BOB) == 0

    @pytest.mark.asyncio
    async def test_mint_overflow(self, bank: LedgerAssetBank):
        """Test balances cannot exceed uint256."""
        await bank.mint(UNI, ALICE, MAX_UINT256)

        with pytest.raises(InvalidAssetError):
            await bank.mint(UNI, ALICE, 1)

    @pytest.mark.asyncio
    async def test_transfer(self, bank: LedgerAssetBank):
        """Test moving funds between accounts."""
        await bank.mint(UNI, ALICE, 100)

        await bank.transfer(UNI, ALICE, BOB, 40)

        assert await bank.balance_of(UNI, ALICE) == 60
        assert await bank.balance_of(UNI, BOB) == 40

    @pytest.mark.asyncio
    async def test_transfer_exceeds_balance(self, bank: LedgerAssetBank):
        """Test overdrafts are rejected with the balance reason."""
        await bank.mint(UNI, ALICE, 10)

        with pytest.raises(InsufficientFundsError, match=EXCEEDS_BALANCE):
            await bank.transfer(UNI, ALICE, BOB, 11)

        assert await bank.balance_of(UNI, ALICE) == 10

    @pytest.mark.asyncio
    async def test_transfer_to_zero_address(self, bank: LedgerAssetBank):
        """Test transfers to the zero address are rejected."""
        await bank.mint(UNI, ALICE, 10)

        with pytest.raises(InvalidAddressError):
            await bank.transfer(UNI, ALICE, ZERO_ADDRESS, 1)

    @pytest.mark.asyncio
    async def test_invalid_amounts(self, bank: LedgerAssetBank):
        """Test amounts must be non-negative integers."""
        with pytest.raises(InvalidAmountError):
            await bank.transfer(UNI, ALICE, BOB, -1)
        with pytest.raises(InvalidAmountError):
            await bank.transfer(UNI, ALICE, BOB, 1.5)
        with pytest.raises(InvalidAmountError):
            await bank.transfer(UNI, ALICE, BOB, True)

    @pytest.mark.asyncio
    async def test_holdings(self, bank: LedgerAssetBank):
        """Test listing an account's non-zero balances."""
        await bank.mint(UNI, VAULT, 5)
        await bank.mint(NATIVE, VAULT, 7)
        await bank.mint(UNI, ALICE, 1)
        await bank.transfer(UNI, ALICE, BOB, 1)

        assert await bank.holdings(VAULT) == {UNI: 5, NATIVE: 7}
        assert await bank.holdings(ALICE) == {}


class TestAllowances:
    """Tests for ERC-20 style allowances."""

    @pytest.mark.asyncio
    async def test_transfer_from_spends_allowance(self, bank: LedgerAssetBank):
        """Test transfer_from decrements the allowance."""
        await bank.mint(UNI, ALICE, 100)
        await bank.approve(UNI, ALICE, VAULT, 60)

        await bank.transfer_from(UNI, VAULT, ALICE, VAULT, 50)

        assert await bank.balance_of(UNI, VAULT) == 50
        assert await bank.allowance(UNI, ALICE, VAULT) == 10

    @pytest.mark.asyncio
    async def test_transfer_from_exceeds_allowance(self, bank: LedgerAssetBank):
        """Test spending beyond the allowance is rejected with the allowance reason."""
        await bank.mint(UNI, ALICE, 100)
        await bank.approve(UNI, ALICE, VAULT, 5)

        with pytest.raises(InsufficientFundsError, match=EXCEEDS_ALLOWANCE):
            await bank.transfer_from(UNI, VAULT, ALICE, VAULT, 6)

        assert await bank.balance_of(UNI, ALICE) == 100
        assert await bank.allowance(UNI, ALICE, VAULT) == 5

    @pytest.mark.asyncio
    async def test_allowance_checked_before_balance(self, bank: LedgerAssetBank):
        """Test a missing allowance is reported even when the balance is short too."""
        with pytest.raises(InsufficientFundsError, match=EXCEEDS_ALLOWANCE):
            await bank.transfer_from(UNI, VAULT, ALICE, VAULT, 1)

    @pytest.mark.asyncio
    async def test_infinite_allowance_not_decremented(self, bank: LedgerAssetBank):
        """Test an unlimited allowance stays unlimited."""
        await bank.mint(UNI, ALICE, 100)
        await bank.approve(UNI, ALICE, VAULT, MAX_UINT256)

        await bank.transfer_from(UNI, VAULT, ALICE, BOB, 30)

        assert await bank.allowance(UNI, ALICE, VAULT) == MAX_UINT256
        assert await bank.balance_of(UNI, BOB) == 30

    @pytest.mark.asyncio
    async def test_approve_overwrites(self, bank: LedgerAssetBank):
        """Test approve sets rather than adds."""
        await bank.approve(UNI, ALICE, VAULT, 10)
        await bank.approve(UNI, ALICE, VAULT, 3)

        assert await bank.allowance(UNI, ALICE, VAULT) == 3

    @pytest.mark.asyncio
    async def test_native_has_no_allowances(self, bank: LedgerAssetBank):
        """Test approving the native currency is rejected."""
        with pytest.raises(InvalidAssetError):
            await bank.approve(NATIVE, ALICE, VAULT, 1)


class TestPullPush:
    """Tests for the vault-facing transfer interface."""

    @pytest.mark.asyncio
    async def test_pull_token_uses_allowance(self, bank: LedgerAssetBank):
        """Test pulling a token consumes the recipient's allowance."""
        await bank.mint(UNI, ALICE, 100)
        await bank.approve(UNI, ALICE, VAULT, 100)

        await bank.pull(UNI, ALICE, VAULT, 100)

        assert await bank.balance_of(UNI, VAULT) == 100
        assert await bank.allowance(UNI, ALICE, VAULT) == 0

    @pytest.mark.asyncio
    async def test_pull_native_needs_no_allowance(self, bank: LedgerAssetBank):
        """Test pulling native currency moves the attached payment."""
        await bank.mint(NATIVE, ALICE, 10)

        await bank.pull(NATIVE, ALICE, VAULT, 10)

        assert await bank.balance_of(NATIVE, VAULT) == 10
        assert is_native(NATIVE)

    @pytest.mark.asyncio
    async def test_pull_from_self_rejected(self, bank: LedgerAssetBank):
        """Test the recipient cannot pull from itself."""
        await bank.mint(UNI, VAULT, 10)

        with pytest.raises(InvalidAddressError):
            await bank.pull(UNI, VAULT, VAULT, 1)

    @pytest.mark.asyncio
    async def test_push(self, bank: LedgerAssetBank):
        """Test pushing from the holder's own balance."""
        await bank.mint(NATIVE, VAULT, 10)

        await bank.push(NATIVE, VAULT, ALICE, 4)

        assert await bank.balance_of(NATIVE, VAULT) == 6
        assert await bank.balance_of(NATIVE, ALICE) == 4

    @pytest.mark.asyncio
    async def test_push_insufficient(self, bank: LedgerAssetBank):
        """Test pushing more than held is rejected."""
        with pytest.raises(InsufficientFundsError):
            await bank.push(UNI, VAULT, ALICE, 1)
