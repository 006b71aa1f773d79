"""
Heartbeat & Read Loop Tests.
Termination on reader or heartbeat failure, ordering and stats.
"""

import asyncio
import json

import pytest

from market_watcher.errors import NetworkError, SessionClosedError
from market_watcher.services.feed_session import FeedSession
from market_watcher.services.listen_loop import PING_FRAME, WatcherStats, listen
from market_watcher.services.payload_decoder import DecodeKind, DecodeResult


def item_frame(name: str) -> str:
    return json.dumps({"type": "newitems_go", "data": json.dumps({"i_market_name": name})})


class TestListenLoop:

    async def test_reader_failure_ends_loop_and_closes(self, fake_ws):
        session = FeedSession(fake_ws, "wss://feed.test/wsn/")
        fake_ws.drop()

        with pytest.raises(SessionClosedError):
            await listen(session, ping_interval=60)

        assert session.closed
        assert fake_ws.close_calls == 1

    async def test_bad_frames_do_not_stop_listening(self, fake_ws):
        session = FeedSession(fake_ws, "wss://feed.test/wsn/")
        stats = WatcherStats()
        for frame in ["garbage", '{"type":"newitems_go","data":"{oops"}', '{"type":"other"}', item_frame("AK-47")]:
            fake_ws.feed(frame)
        fake_ws.drop()

        with pytest.raises(NetworkError):
            await listen(session, ping_interval=60, stats=stats)

        assert stats.messages_received == 4
        assert stats.non_json == 1
        assert stats.parse_errors == 1
        assert stats.ignored == 1
        assert stats.items_logged == 1

    async def test_messages_handled_in_arrival_order(self, fake_ws):
        session = FeedSession(fake_ws, "wss://feed.test/wsn/")
        seen = []

        def on_message(raw):
            seen.append(raw)
            return DecodeResult(DecodeKind.IGNORED)

        for i in range(5):
            fake_ws.feed(f"m{i}")
        fake_ws.drop()

        with pytest.raises(NetworkError):
            await listen(session, ping_interval=60, on_message=on_message)

        assert seen == ["m0", "m1", "m2", "m3", "m4"]

    async def test_handler_exception_is_contained(self, fake_ws):
        session = FeedSession(fake_ws, "wss://feed.test/wsn/")
        stats = WatcherStats()

        def on_message(raw):
            raise RuntimeError("boom")

        fake_ws.feed("x")
        fake_ws.drop()

        with pytest.raises(SessionClosedError):
            await listen(session, ping_interval=60, stats=stats, on_message=on_message)
        assert stats.parse_errors == 1

    async def test_heartbeat_sends_ping(self, fake_ws):
        session = FeedSession(fake_ws, "wss://feed.test/wsn/")
        stats = WatcherStats()

        async def drop_later():
            while stats.pings_sent < 2:
                await asyncio.sleep(0.005)
            fake_ws.drop()

        dropper = asyncio.create_task(drop_later())
        with pytest.raises(SessionClosedError):
            await asyncio.wait_for(listen(session, ping_interval=0.01, stats=stats, clock=lambda: 123.0), timeout=5)
        await dropper

        assert fake_ws.sent[:2] == [PING_FRAME, PING_FRAME]
        assert stats.last_ping == 123.0

    async def test_heartbeat_failure_ends_loop(self, fake_ws):
        session = FeedSession(fake_ws, "wss://feed.test/wsn/")
        fake_ws.fail_send_on = PING_FRAME

        with pytest.raises(NetworkError):
            await asyncio.wait_for(listen(session, ping_interval=0.01), timeout=5)

        assert session.closed
        assert fake_ws.close_calls == 1
        assert fake_ws.sent == []
