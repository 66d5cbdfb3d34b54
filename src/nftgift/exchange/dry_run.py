"""Simulated conversion network for dry-run mode and tests."""

import logging
from decimal import ROUND_DOWN, Decimal, localcontext
from typing import Optional

from nftgift.assets.base import (
    NATIVE_ASSET,
    AssetTransfer,
    check_amount,
    normalize_address,
    normalize_asset,
)
from nftgift.errors import ExchangeError, SlippageError
from nftgift.exchange.base import ExchangeProvider, Quote

logger = logging.getLogger(__name__)

# Enough digits for any uint256 product without rounding
_PRECISION = 100


class SimulatedExchange(ExchangeProvider):
    """
    Reserve-backed exchange with fixed rates.

    - Rates are destination units per source unit, per asset pair
    - A percentage fee is taken from the gross return
    - Returns are rounded down to whole units
    - Payouts come from the exchange's own balance in the settlement layer
    """

    def __init__(
        self,
        address: str,
        fee_percent: Decimal = Decimal("0.003"),
        default_rate: Optional[Decimal] = Decimal("1"),
        rates: Optional[dict[tuple[str, str], Decimal]] = None,
    ):
        if not Decimal("0") <= fee_percent < Decimal("1"):
            raise ValueError(f"Fee percent must be in [0, 1): {fee_percent}")
        self._address = normalize_address(address)
        self.fee_percent = Decimal(fee_percent)
        self.default_rate = Decimal(default_rate) if default_rate is not None else None
        self._rates: dict[tuple[str, str], Decimal] = {}
        for (source, dest), rate in (rates or {}).items():
            self.set_rate(source, dest, rate)

    @property
    def name(self) -> str:
        return "dry_run"

    @property
    def address(self) -> str:
        return self._address

    def set_rate(self, source_asset: str, dest_asset: str, rate: Decimal) -> None:
        """Set the rate for converting ``source_asset`` into ``dest_asset``."""
        rate = Decimal(rate)
        if rate <= 0:
            raise ValueError(f"Rate must be positive: {rate}")
        self._rates[(normalize_asset(source_asset), normalize_asset(dest_asset))] = rate

    def get_rate(self, source_asset: str, dest_asset: str) -> Optional[Decimal]:
        return self._rates.get((source_asset, dest_asset), self.default_rate)

    async def get_return(self, source_asset: str, dest_asset: str, amount: int) -> Quote:
        source_asset = normalize_asset(source_asset)
        dest_asset = normalize_asset(dest_asset)
        check_amount(amount)

        if source_asset == dest_asset:
            raise ExchangeError(f"Cannot convert {source_asset} into itself")

        rate = self.get_rate(source_asset, dest_asset)
        if rate is None:
            raise ExchangeError(f"No conversion path from {source_asset} to {dest_asset}")

        with localcontext() as ctx:
            ctx.prec = _PRECISION
            gross = (Decimal(amount) * rate).to_integral_value(rounding=ROUND_DOWN)
            net = (gross * (Decimal("1") - self.fee_percent)).to_integral_value(
                rounding=ROUND_DOWN
            )

        return Quote(
            provider=self.name,
            source_asset=source_asset,
            dest_asset=dest_asset,
            source_amount=amount,
            return_amount=int(net),
            fee_amount=int(gross - net),
            path=(source_asset, self.address, dest_asset),
        )

    async def convert(
        self,
        assets: AssetTransfer,
        source_asset: str,
        dest_asset: str,
        amount: int,
        minimum_return: int,
        trader: str,
        beneficiary: str,
    ) -> int:
        quote = await self.get_return(source_asset, dest_asset, amount)
        if not quote.meets(minimum_return):
            raise SlippageError(quote.return_amount, minimum_return)

        liquidity = await assets.balance_of(quote.dest_asset, self.address)
        if liquidity < quote.return_amount:
            raise ExchangeError(
                f"Insufficient liquidity: have {liquidity} of {quote.dest_asset}, "
                f"need {quote.return_amount}"
            )

        if quote.source_asset == NATIVE_ASSET:
            await assets.push(quote.source_asset, trader, self.address, amount)
        else:
            await assets.pull(quote.source_asset, trader, self.address, amount)
        await assets.push(quote.dest_asset, self.address, beneficiary, quote.return_amount)

        logger.info(
            f"Converted {amount} of {quote.source_asset} into {quote.return_amount} "
            f"of {quote.dest_asset} (fee {quote.fee_amount})"
        )
        return quote.return_amount
