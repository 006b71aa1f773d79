"""
Async Hygiene Tools.
First-completed racing of sibling tasks and a deterministic clock for tests.
"""

import asyncio
import logging
import time
from typing import Iterable, Tuple

logger = logging.getLogger(__name__)


async def race(tasks: Iterable[asyncio.Task]) -> Tuple[asyncio.Task, list]:
    """
    Wait for the first task to finish, then cancel and reap the rest.

    Exactly one winner is returned even if several tasks finish in the same
    loop iteration; ties go to the earliest task in the given order.

    Returns:
        (winner, losers)
    """
    ordered = list(tasks)
    try:
        done, _ = await asyncio.wait(ordered, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        for task in ordered:
            task.cancel()
        await asyncio.gather(*ordered, return_exceptions=True)
        raise

    winner = next(task for task in ordered if task in done)
    losers = [task for task in ordered if task is not winner]
    for task in losers:
        if not task.done():
            task.cancel()
    # Reap losers so no exception is left unretrieved
    await asyncio.gather(*losers, return_exceptions=True)
    return winner, losers


class DeterministicClock:
    """A deterministic clock for testing that can be frozen and advanced."""

    def __init__(self, start_time: float = 0.0):
        self._time = start_time
        self._frozen = False

    def time(self) -> float:
        """Get current time."""
        if self._frozen:
            return self._time
        return time.time()

    def __call__(self) -> float:
        return self.time()

    def freeze(self):
        """Freeze the clock at current time."""
        self._frozen = True
        self._time = time.time()

    def advance(self, seconds: float):
        """Advance the clock by the given number of seconds."""
        if not self._frozen:
            raise RuntimeError("Clock must be frozen to advance")
        self._time += seconds

    def unfreeze(self):
        """Unfreeze the clock to use real time."""
        self._frozen = False

