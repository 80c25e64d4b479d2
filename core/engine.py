from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Iterable, List, Optional, TypeVar

from core.aggregator import NotificationAggregator
from core.models import ChangeRecord, WalletEntry
from core.notifier import Notifier
from core.providers import ProviderCache, ProviderSelector
from core.snapshot import BalanceSnapshotter, TokenMetaCache
from core.valuation import threshold_micro
from core.wallet_state import WalletTracker
from networks import select_networks
from settings import MIN_INTERVAL_SECONDS, WatchSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def bounded_map(items: Iterable[T], fn: Callable[[T], Awaitable[R]], limit: int) -> List[Any]:
    """
    Run fn over items with at most `limit` in flight. Results keep input
    order; an item that raised yields its exception instead of a result.
    """
    sem = asyncio.Semaphore(max(1, int(limit)))

    async def one(item: T) -> Any:
        async with sem:
            return await fn(item)

    return await asyncio.gather(*(one(i) for i in items), return_exceptions=True)


class WatchEngine:
    def __init__(
        self,
        wallets: List[WalletEntry],
        settings: WatchSettings,
        notifier: Notifier,
        snapshotter: Optional[BalanceSnapshotter] = None,
    ):
        self.wallets = list(wallets)
        self.settings = settings
        self.networks = select_networks(settings.only)
        self.snapshotter = snapshotter or BalanceSnapshotter(
            self.networks,
            ProviderSelector(
                cache=ProviderCache(),
                probe_timeout=settings.probe_timeout,
                discovery_timeout=settings.discovery_timeout,
            ),
            meta_cache=TokenMetaCache(),
            read_timeout=settings.read_timeout,
        )
        self.tracker = WalletTracker(
            sampler=self.snapshotter.sample,
            threshold=threshold_micro(settings.usd_delta),
            allow_errors=settings.allow_errors,
        )
        self.aggregator = NotificationAggregator(notifier, default_recipient=settings.email_to)

        self.summary = {
            "cycles": 0,
            "evaluated": 0,
            "changes": 0,
            "notified": 0,
            "undelivered": 0,
            "exceptions": 0,
        }
        self.last_cycle_at: Optional[float] = None

    async def _evaluate(self, entry: WalletEntry) -> Optional[ChangeRecord]:
        try:
            return await self.tracker.evaluate(entry)
        except Exception:
            self.summary["exceptions"] += 1
            logger.exception("wallet %s evaluation failed", entry.address)
            return None

    async def run_cycle(self) -> List[ChangeRecord]:
        """One pass over every wallet. Returns the changes that were delivered."""
        started = time.monotonic()
        logger.info("Cycle start: %d wallet(s), concurrency %d", len(self.wallets), self.settings.concurrency)

        results = await bounded_map(self.wallets, self._evaluate, self.settings.concurrency)
        changes = [r for r in results if isinstance(r, ChangeRecord)]
        self.summary["evaluated"] += len(results)
        self.summary["changes"] += len(changes)

        delivered: List[ChangeRecord] = []
        if changes:
            delivered = await self.aggregator.dispatch(changes)
            # all evaluations have drained; safe to move baselines now
            for c in delivered:
                self.tracker.commit(c.address, c.valuation)
            self.summary["notified"] += len(delivered)
            self.summary["undelivered"] += len(changes) - len(delivered)

        self.summary["cycles"] += 1
        self.last_cycle_at = time.time()
        logger.info("Cycle end (%.1fs).", time.monotonic() - started)
        return delivered

    async def run_forever(self, stop: Optional[asyncio.Event] = None) -> None:
        """
        Cycles never overlap: the next one starts `interval` seconds after the
        previous one started, or immediately if it ran longer than that.
        """
        interval = max(MIN_INTERVAL_SECONDS, self.settings.interval)
        stop = stop or asyncio.Event()
        while not stop.is_set():
            started = time.monotonic()
            try:
                await self.run_cycle()
            except Exception:
                self.summary["exceptions"] += 1
                logger.exception("cycle failed")
            wait = max(0.0, interval - (time.monotonic() - started))
            try:
                await asyncio.wait_for(stop.wait(), timeout=wait)
            except asyncio.TimeoutError:
                pass
