from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, List, Optional

from core.models import ChangeRecord, NetworkSnapshot, Sample, WalletEntry, WalletState
from core.valuation import STABLE_SYMBOLS, format_micro, token_text

logger = logging.getLogger(__name__)

Sampler = Callable[[str], Awaitable[Sample]]


def short_addr(a: str) -> str:
    return a[:6] + "..." + a[-4:]


def label_of(address: str, label: Optional[str], user: Optional[str]) -> str:
    if label and user:
        return f"{user}/{label}"
    return label or user or short_addr(address)


def detail_line(snap: NetworkSnapshot) -> str:
    if snap.error:
        return f"- {snap.network.name}: ERROR {snap.error}"
    parts = [f"{sym}={token_text(snap.tokens.get(sym))}" for sym in STABLE_SYMBOLS]
    return f"- {snap.network.name}: " + ", ".join(parts)


class WalletTracker:
    """
    Per-wallet change detection. A wallet is Uninitialized until its first
    observation sets the baseline; afterwards each cycle compares against
    the baseline, which only moves through commit().
    """

    def __init__(self, sampler: Sampler, threshold: int, allow_errors: bool = False):
        self.sampler = sampler
        self.threshold = int(threshold)
        self.allow_errors = bool(allow_errors)
        self.states: Dict[str, WalletState] = {}

    def state_for(self, entry: WalletEntry) -> WalletState:
        state = self.states.get(entry.address)
        if state is None:
            state = WalletState(label=entry.label, user=entry.user, email=entry.email)
            self.states[entry.address] = state
        state.label = entry.label or state.label
        state.user = entry.user or state.user
        state.email = entry.email or state.email
        return state

    def commit(self, address: str, valuation: int) -> None:
        state = self.states.setdefault(address, WalletState())
        state.last_valuation = int(valuation)

    async def evaluate(self, entry: WalletEntry) -> Optional[ChangeRecord]:
        address = entry.address
        state = self.state_for(entry)
        name = f"{label_of(address, state.label, state.user)} ({short_addr(address)})"

        first = await self.sampler(address)

        if state.last_valuation is None:
            state.last_valuation = first.valuation
            logger.info("[init] %s ~$%s", name, format_micro(first.valuation))
            return None

        last = state.last_valuation
        delta = abs(first.valuation - last)
        if delta < self.threshold:
            logger.info("[tick] %s ~$%s (delta %s below threshold)", name,
                        format_micro(first.valuation), format_micro(delta))
            return None

        if first.any_error and not self.allow_errors:
            logger.info("[skip] %s change of ~$%s but some networks errored", name, format_micro(delta))
            return None

        try:
            confirm = await self.sampler(address)
        except Exception as e:
            logger.warning("[skip] %s confirmation re-sample failed: %s", name, e)
            return None

        confirm_delta = abs(confirm.valuation - last)
        if confirm_delta < self.threshold:
            logger.info("[skip] %s change did not confirm (~$%s -> ~$%s)", name,
                        format_micro(first.valuation), format_micro(confirm.valuation))
            return None

        return ChangeRecord(
            address=address,
            delta=confirm_delta,
            previous=last,
            valuation=confirm.valuation,
            lines=self._lines(address, state, confirm_delta, confirm),
            label=state.label,
            user=state.user,
            email=state.email,
        )

    @staticmethod
    def _lines(address: str, state: WalletState, delta: int, sample: Sample) -> List[str]:
        return [
            f"User: {state.user or '-'}  Label: {state.label or '-'}",
            f"Address: {address}",
            f"Change: ~${format_micro(delta)}",
            f"Now: ~${format_micro(sample.valuation)}",
            "",
            *(detail_line(s) for s in sample.snapshots),
        ]
