#!/usr/bin/env python3
"""Vault Solvency Reconciliation Script.

Compares the custody owed to active claims with what the vault actually
holds in the settlement layer, per asset.

Usage:
    python scripts/reconcile.py [--asset 0x...] [--json]

Options:
    --asset  Only reconcile a specific asset address (default: all)
    --json   Print the report as JSON instead of log lines

Exits with status 1 when any asset is under-collateralized.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv

from nftgift.assets.base import normalize_asset
from nftgift.exchange.factory import get_exchange
from nftgift.ledger.database import close_db, get_session_factory, init_db
from nftgift.vault.engine import VaultEngine

load_dotenv()

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


async def reconcile(asset: Optional[str] = None) -> dict:
    """Build the solvency report, optionally for a single asset.

    Returns:
        Dict of asset address to custody, held and surplus amounts
    """
    await init_db()
    try:
        vault = VaultEngine(get_session_factory(), get_exchange())
        logger.info(f"Reconciling vault {vault.address}")
        report = await vault.solvency_report()
    finally:
        await close_db()

    if asset:
        asset = normalize_asset(asset)
        report = {asset: report.get(asset, {"custody": 0, "held": 0, "surplus": 0})}
    return report


async def main() -> int:
    parser = argparse.ArgumentParser(description="Vault Solvency Reconciliation")
    parser.add_argument("--asset", type=str, help="Only reconcile a specific asset address")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    args = parser.parse_args()

    report = await reconcile(args.asset)
    deficits = [asset for asset, entry in report.items() if entry["surplus"] < 0]

    if args.json:
        print(json.dumps(
            {
                asset: {key: str(value) for key, value in entry.items()}
                for asset, entry in report.items()
            },
            indent=2,
        ))
    else:
        logger.info("=" * 60)
        logger.info("SOLVENCY SUMMARY")
        logger.info("=" * 60)

        if not report:
            logger.info("No custody and no holdings recorded")

        for asset, entry in report.items():
            status = "DEFICIT" if entry["surplus"] < 0 else "OK"
            logger.info(f"{asset}: {status}")
            logger.info(f"  Custody: {entry['custody']}")
            logger.info(f"  Held:    {entry['held']}")
            logger.info(f"  Surplus: {entry['surplus']}")

    if deficits:
        logger.error(f"Under-collateralized assets: {', '.join(deficits)}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
