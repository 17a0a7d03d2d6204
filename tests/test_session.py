"""Tests for match session lifecycle and the local ticker."""
import asyncio

from client.session import MatchSession
from shared.match import MatchDocument, default_document
from shared.store import InMemoryStore


def test_open_bootstraps_and_reports_snapshot(store, clock):
    seen = []
    session = MatchSession(store, local_clock=clock, on_snapshot=seen.append)
    session.open()
    assert session.is_open
    assert seen[-1] == default_document()


def test_custom_defaults_are_used_for_bootstrap(store, clock):
    session = MatchSession(store, local_clock=clock, defaults=default_document(points_to_win=21, roster_size=3))
    session.open()
    stored = store.get("scoreboard")
    assert stored["pointsToWin"] == 21
    assert stored["numPlayersPerTeam"] == 3


def test_close_releases_document_and_offset_streams(clock):
    store = InMemoryStore(server_offset_ms=100)
    seen = []
    session = MatchSession(store, local_clock=clock, on_snapshot=seen.append)
    session.open()
    assert session.clock.offset_ms == 100
    session.close()

    store.publish_server_offset(5_000)
    store.set("scoreboard", MatchDocument(points_to_win=3).to_dict())
    assert session.clock.offset_ms == 100
    assert seen[-1].points_to_win == 50
    assert store.listener_count("scoreboard") == 0
    assert store.listener_count() == 0
    assert not session.is_open


def test_close_is_idempotent(store, clock):
    session = MatchSession(store, local_clock=clock)
    session.open()
    session.close()
    session.close()
    assert not session.is_open


def test_tick_survives_failing_callback(store, clock):
    def boom(remaining):
        raise RuntimeError("display gone")

    session = MatchSession(store, local_clock=clock, on_tick=boom)
    session.open()
    assert session.timer.tick() == 450


def test_ticker_runs_until_close(store, clock):
    ticks = []

    async def scenario():
        session = MatchSession(store, local_clock=clock, on_tick=ticks.append)
        session.open()
        session.timer.resume()
        session.start_ticker(interval=0.01)
        for _ in range(3):
            clock.advance(1)
            await asyncio.sleep(0.03)
        session.close()
        count = len(ticks)
        await asyncio.sleep(0.05)
        return count

    count = asyncio.run(scenario())
    assert count >= 3
    assert len(ticks) == count
    # first tick runs after the first advance
    assert ticks[0] == 449
    assert ticks[-1] == 447


def test_restarting_ticker_replaces_the_running_loop(store, clock):
    ticks = []

    async def scenario():
        session = MatchSession(store, local_clock=clock, on_tick=ticks.append)
        session.open()
        first = session.start_ticker(interval=0.01)
        second = session.start_ticker(interval=0.01)
        await asyncio.sleep(0.03)
        running = not second.done()
        session.close()
        return first, running

    first, running = asyncio.run(scenario())
    assert first.cancelled()
    assert running
    assert ticks
