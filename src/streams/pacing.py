"""
Request pacing for Helix status checks.

Helix publishes a budget of roughly 800 requests per minute per client id.
The poller respects it with a fixed pause after every request rather than a
burst-capable token bucket: a pass over N channels always takes at least
N x pause, failed requests included.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


async def interruptible_sleep(seconds: float, stop: asyncio.Event | None = None) -> bool:
    """
    Sleep for ``seconds`` or until ``stop`` is set.

    Args:
        seconds: Duration to sleep
        stop: Optional shutdown signal

    Returns:
        True if the sleep was cut short by ``stop``, False otherwise
    """
    if stop is None:
        await asyncio.sleep(seconds)
        return False
    if stop.is_set():
        return True
    try:
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return False
    return True


@dataclass
class RequestPacer:
    """
    Serializes requests and inserts a fixed pause after each one.

    A single pacer is shared by every check an engine issues, so even if
    checks were run concurrently they would still be spaced by the floor
    interval: the lock is held across the request and its trailing pause.

    Usage:
        pacer = RequestPacer(interval=0.08)
        async with pacer.slot(stop_event):
            await client.get_live_status("channel")
    """

    interval: float  # seconds
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    _requests: int = field(default=0, init=False, repr=False)

    @property
    def requests(self) -> int:
        """Number of slots granted so far."""
        return self._requests

    @asynccontextmanager
    async def slot(self, stop: asyncio.Event | None = None) -> AsyncIterator[None]:
        """
        Hold the pacing lock for one request, then pause.

        The pause runs in ``finally`` so it also follows a failed request.
        Task cancellation skips it.
        """
        async with self._lock:
            self._requests += 1
            cancelled = False
            try:
                yield
            except asyncio.CancelledError:
                cancelled = True
                raise
            finally:
                if not cancelled and await interruptible_sleep(self.interval, stop):
                    logger.debug("Pacing pause interrupted by shutdown")
