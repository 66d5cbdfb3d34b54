"""Factory for the exchange collaborator.

Only the simulated conversion network ships with the service; any other
configured provider falls back to it with a warning.
"""

import logging
from typing import Optional

from nftgift.config import Settings, get_settings
from nftgift.exchange.base import ExchangeProvider
from nftgift.exchange.dry_run import SimulatedExchange

logger = logging.getLogger(__name__)

_exchange: Optional[ExchangeProvider] = None


def create_exchange(settings: Optional[Settings] = None) -> ExchangeProvider:
    """Create the exchange collaborator described by the settings."""
    settings = settings or get_settings()
    provider = settings.exchange_provider.lower()

    if provider != "dry_run":
        logger.warning(f"Unknown exchange provider '{provider}', using simulated exchange")
    if not settings.dry_run:
        logger.warning(
            "DRY_RUN is off but no live exchange is available; swaps are simulated"
        )

    exchange = SimulatedExchange(
        address=settings.exchange_address,
        fee_percent=settings.exchange_fee_percent,
        default_rate=settings.default_exchange_rate,
    )
    logger.info(f"Created {exchange.name} exchange at {exchange.address}")
    return exchange


def get_exchange() -> ExchangeProvider:
    """Get the process-wide exchange collaborator."""
    global _exchange
    if _exchange is None:
        _exchange = create_exchange()
    return _exchange


def reset_exchange() -> None:
    """Forget the process-wide exchange (useful for testing)."""
    global _exchange
    _exchange = None
