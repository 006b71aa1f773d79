"""
Async tools tests: first-completed racing and the deterministic clock.
"""

import asyncio

import pytest

from market_watcher.util.async_tools import DeterministicClock, race


class TestRace:

    async def test_loser_is_cancelled(self):
        async def fast():
            return "fast"

        async def slow():
            await asyncio.sleep(60)

        slow_task = asyncio.create_task(slow())
        winner, losers = await race([asyncio.create_task(fast()), slow_task])

        assert winner.result() == "fast"
        assert losers == [slow_task]
        assert slow_task.cancelled()

    async def test_tie_goes_to_first_task(self):
        async def fail(msg):
            raise RuntimeError(msg)

        first = asyncio.create_task(fail("first"))
        second = asyncio.create_task(fail("second"))
        await asyncio.sleep(0)

        winner, _ = await race([first, second])
        assert winner is first
        assert str(winner.exception()) == "first"
        assert str(second.exception()) == "second"


class TestDeterministicClock:

    def test_advance_requires_freeze(self):
        clock = DeterministicClock()
        with pytest.raises(RuntimeError):
            clock.advance(1)

    def test_frozen_clock(self):
        clock = DeterministicClock()
        clock.freeze()
        start = clock()
        clock.advance(2.5)
        assert clock.time() == start + 2.5
