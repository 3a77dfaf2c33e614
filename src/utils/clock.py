"""Clock abstraction used for poll and refresh scheduling."""

import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    """Source of time and suspension for polling loops."""

    def now(self) -> float:
        """Current time in seconds since the epoch."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the caller for the given number of seconds."""
        ...


class SystemClock:
    """Wall clock backed by time.time and asyncio.sleep."""

    def now(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
