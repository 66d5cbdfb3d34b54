"""Exchange collaborators used to liquidate claims."""

from nftgift.exchange.base import ExchangeProvider, Quote
from nftgift.exchange.dry_run import SimulatedExchange
from nftgift.exchange.factory import create_exchange, get_exchange, reset_exchange

__all__ = [
    "ExchangeProvider",
    "Quote",
    "SimulatedExchange",
    "create_exchange",
    "get_exchange",
    "reset_exchange",
]
