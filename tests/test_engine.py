import asyncio
import time

import pytest

from core.engine import WatchEngine, bounded_map
from core.models import Sample, WalletEntry
from settings import WatchSettings

from tests.conftest import FakeNotifier


class FakeSnapshotter:
    """Valuations per address; records how many samples run at once."""

    def __init__(self, valuations, delay=0.0):
        self.valuations = dict(valuations)
        self.delay = delay
        self.fail = set()
        self.in_flight = 0
        self.max_in_flight = 0

    async def sample(self, address):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if address in self.fail:
                raise RuntimeError("boom")
            return Sample(snapshots=[], valuation=self.valuations[address], any_error=False)
        finally:
            self.in_flight -= 1


def wallets(n):
    return [WalletEntry(address="0x" + f"{i:040x}", email="ops@example.com") for i in range(n)]


def engine_for(entries, snapshotter, notifier=None, **settings):
    return WatchEngine(entries, WatchSettings(**settings), notifier or FakeNotifier(), snapshotter=snapshotter)


@pytest.mark.asyncio
async def test_bounded_map_keeps_order_and_captures_errors():
    async def fn(x):
        if x == 2:
            raise ValueError("two")
        return x * 10

    out = await bounded_map([1, 2, 3], fn, limit=2)

    assert out[0] == 10 and out[2] == 30
    assert isinstance(out[1], ValueError)


@pytest.mark.asyncio
async def test_concurrency_is_bounded():
    entries = wallets(10)
    snap = FakeSnapshotter({w.address: 0 for w in entries}, delay=0.05)
    engine = engine_for(entries, snap, concurrency=2)

    started = time.monotonic()
    await engine.run_cycle()
    elapsed = time.monotonic() - started

    assert snap.max_in_flight == 2
    assert elapsed >= 0.05 * 5 * 0.95
    assert engine.summary["evaluated"] == 10


@pytest.mark.asyncio
async def test_failing_wallet_does_not_stop_cycle():
    entries = wallets(3)
    snap = FakeSnapshotter({w.address: 1_000_000 for w in entries})
    snap.fail.add(entries[1].address)
    engine = engine_for(entries, snap)

    await engine.run_cycle()

    assert engine.summary["exceptions"] == 1
    assert engine.tracker.states[entries[0].address].last_valuation == 1_000_000
    assert engine.tracker.states[entries[2].address].last_valuation == 1_000_000


@pytest.mark.asyncio
async def test_changes_notified_once_and_committed():
    entries = wallets(2)
    snap = FakeSnapshotter({w.address: 1_000_000 for w in entries})
    notifier = FakeNotifier()
    engine = engine_for(entries, snap, notifier)

    assert await engine.run_cycle() == []
    snap.valuations = {w.address: 2_000_000 for w in entries}
    delivered = await engine.run_cycle()

    assert len(delivered) == 2
    assert len(notifier.sent) == 1
    assert all(engine.tracker.states[w.address].last_valuation == 2_000_000 for w in entries)

    assert await engine.run_cycle() == []
    assert len(notifier.sent) == 1
    assert engine.summary["cycles"] == 3
    assert engine.summary["notified"] == 2


@pytest.mark.asyncio
async def test_undelivered_change_keeps_baseline_and_retries():
    entries = wallets(1)
    snap = FakeSnapshotter({entries[0].address: 1_000_000})
    notifier = FakeNotifier(fail=True)
    engine = engine_for(entries, snap, notifier)
    await engine.run_cycle()

    snap.valuations[entries[0].address] = 3_000_000
    assert await engine.run_cycle() == []
    assert engine.tracker.states[entries[0].address].last_valuation == 1_000_000
    assert engine.summary["undelivered"] == 1

    notifier.fail = False
    delivered = await engine.run_cycle()
    assert len(delivered) == 1
    assert engine.tracker.states[entries[0].address].last_valuation == 3_000_000


@pytest.mark.asyncio
async def test_run_forever_stops_on_event():
    entries = wallets(1)
    engine = engine_for(entries, FakeSnapshotter({entries[0].address: 0}), interval=5)
    stop = asyncio.Event()

    task = asyncio.create_task(engine.run_forever(stop))
    while engine.summary["cycles"] < 1:
        await asyncio.sleep(0.01)
    stop.set()
    await asyncio.wait_for(task, timeout=1)

    assert engine.summary["cycles"] == 1
