"""Abstract exchange interface used to liquidate custodied assets."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal

from nftgift.assets.base import AssetTransfer


@dataclass
class Quote:
    """Expected result of converting one asset into another."""

    provider: str
    source_asset: str
    dest_asset: str
    source_amount: int
    return_amount: int
    fee_amount: int
    path: tuple[str, ...] = ()  # Conversion path, source first and destination last
    timestamp: float = field(default_factory=time.time)
    ttl_seconds: int = 60

    @property
    def effective_rate(self) -> Decimal:
        """Destination units received per source unit, after fees."""
        if self.source_amount == 0:
            return Decimal("0")
        return Decimal(self.return_amount) / Decimal(self.source_amount)

    @property
    def is_expired(self) -> bool:
        return time.time() > (self.timestamp + self.ttl_seconds)

    def meets(self, minimum_return: int) -> bool:
        """Check the slippage guard."""
        return self.return_amount >= minimum_return

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "source_asset": self.source_asset,
            "dest_asset": self.dest_asset,
            "source_amount": str(self.source_amount),
            "return_amount": str(self.return_amount),
            "fee_amount": str(self.fee_amount),
            "path": list(self.path),
        }


class ExchangeProvider(ABC):
    """Exchange collaborator: converts a source asset into a destination asset."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        pass

    @property
    @abstractmethod
    def address(self) -> str:
        """Account the vault approves and pays when converting tokens."""
        pass

    @abstractmethod
    async def get_return(self, source_asset: str, dest_asset: str, amount: int) -> Quote:
        """
        Quote a conversion.

        Args:
            source_asset: Asset address offered
            dest_asset: Asset address wanted
            amount: Amount of source_asset in its smallest unit

        Returns:
            Quote with the expected return amount

        Raises:
            ExchangeError: If the pair cannot be converted
        """
        pass

    @abstractmethod
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
        """
        Convert ``amount`` of ``source_asset`` held by ``trader``.

        Token sources are pulled from ``trader`` using the allowance it
        granted ``address``; native sources are sent by ``trader``. The
        proceeds go to ``beneficiary``.

        Returns:
            Amount of dest_asset paid out

        Raises:
            SlippageError: If the return would be below ``minimum_return``
            ExchangeError: If the conversion cannot be performed
        """
        pass
