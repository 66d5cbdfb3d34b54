"""Tests for the solvency reconciliation script."""

import importlib.util
from pathlib import Path

import pytest

from conftest import UNI
from nftgift.exchange.factory import reset_exchange

SCRIPT = Path(__file__).parent.parent / "scripts" / "reconcile.py"


@pytest.fixture
def reconcile_script():
    """Load the reconciliation script as a module."""
    spec = importlib.util.spec_from_file_location("reconcile_script", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    reset_exchange()
    yield module
    reset_exchange()


class TestReconcile:
    """Tests for building the solvency report."""

    @pytest.mark.asyncio
    async def test_empty_vault(self, reconcile_script):
        """Test an empty vault reports no assets."""
        assert await reconcile_script.reconcile() == {}

    @pytest.mark.asyncio
    async def test_single_asset(self, reconcile_script):
        """Test an asset filter reports a zero entry for an untouched asset."""
        report = await reconcile_script.reconcile(UNI.lower())

        assert report == {UNI: {"custody": 0, "held": 0, "surplus": 0}}
