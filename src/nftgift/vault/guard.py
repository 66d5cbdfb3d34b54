"""Serialization and reentrancy protection for vault operations.

Vault operations run one at a time. A task that is already inside an
operation (for example an exchange calling back into the vault) is rejected
instead of waiting for a lock it holds itself.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Optional

from nftgift.errors import LockTimeoutError, ReentrancyError

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    """Lock that serializes vault operations and refuses re-entry."""

    def __init__(self, name: str = "vault", timeout: Optional[float] = 30.0):
        self.name = name
        self.timeout = timeout
        self._lock = asyncio.Lock()
        self._active: ContextVar[Optional[str]] = ContextVar(f"{name}_active", default=None)

    @property
    def entered(self) -> bool:
        """Whether the current task is inside a guarded operation."""
        return self._active.get() is not None

    @asynccontextmanager
    async def enter(self, operation: str):
        """Run ``operation`` exclusively.

        Raises:
            ReentrancyError: If the current task is already inside an operation
            LockTimeoutError: If the lock is not acquired within ``timeout``
        """
        running = self._active.get()
        if running is not None:
            logger.warning(f"Rejected re-entrant {operation} during {running} on {self.name}")
            raise ReentrancyError(f"{operation} called while {running} is in progress")

        try:
            if self.timeout:
                await asyncio.wait_for(self._lock.acquire(), timeout=self.timeout)
            else:
                await self._lock.acquire()
        except asyncio.TimeoutError:
            logger.warning(f"Lock timeout on {self.name} after {self.timeout}s: {operation}")
            raise LockTimeoutError(
                f"Could not acquire {self.name} lock within {self.timeout}s"
            )

        token = self._active.set(operation)
        logger.debug(f"Lock acquired on {self.name}: {operation}")
        try:
            yield
        finally:
            self._active.reset(token)
            self._lock.release()
            logger.debug(f"Lock released on {self.name}: {operation}")
