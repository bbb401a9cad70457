"""
Turn scheduling gates.

Two independent gates serialize the only work that suspends on the content
service while mutating the world:

- ``console``: one player command in flight at a time
- ``events``: one event or action-consequence generation in flight at a time

A gate never queues. Entering a busy gate raises GateBusyError so the caller
can reject the request instead of stacking up behind a stalled call.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class GateBusyError(Exception):
    """Raised when a gate is entered while already held."""

    def __init__(self, gate: str) -> None:
        self.gate = gate
        super().__init__(f"{gate} gate is busy")


class TurnGate:
    """Non-queuing mutual exclusion around one kind of long-running work."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._semaphore = asyncio.Semaphore(1)

    @property
    def busy(self) -> bool:
        return self._semaphore.locked()

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        if self._semaphore.locked():
            raise GateBusyError(self.name)
        await self._semaphore.acquire()
        try:
            yield
        finally:
            self._semaphore.release()


class TurnScheduler:
    """The console and event gates shared by one game session."""

    def __init__(self) -> None:
        self.console = TurnGate("console")
        self.events = TurnGate("events")
