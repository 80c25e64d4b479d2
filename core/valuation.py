from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List

from core.models import NetworkSnapshot, Sample, TokenReading

MICRO = 1_000_000

# Tokens whose unit is treated as ~1 USD
STABLE_SYMBOLS = ("USDT", "USDC")

DEFAULT_TOKEN_DECIMALS = 6


def to_micro_units(reading: TokenReading | None) -> int:
    """raw * 1e6 / 10**decimals, integer math only. Errors count as 0."""
    if reading is None or reading.error or reading.raw is None:
        return 0
    decimals = DEFAULT_TOKEN_DECIMALS if reading.decimals is None else int(reading.decimals)
    return (int(reading.raw) * MICRO) // (10 ** decimals)


def snapshot_micro(snap: NetworkSnapshot) -> int:
    if snap.error:
        return 0
    return sum(to_micro_units(snap.tokens.get(sym)) for sym in STABLE_SYMBOLS)


def valuation_of(snapshots: Iterable[NetworkSnapshot]) -> int:
    return sum(snapshot_micro(s) for s in snapshots)


def any_network_error(snapshots: Iterable[NetworkSnapshot]) -> bool:
    return any(s.error for s in snapshots)


def sample_from(snapshots: List[NetworkSnapshot]) -> Sample:
    return Sample(
        snapshots=snapshots,
        valuation=valuation_of(snapshots),
        any_error=any_network_error(snapshots),
    )


def threshold_micro(usd_delta: float) -> int:
    return int(round(usd_delta * MICRO))


def format_micro(m: int) -> str:
    neg = m < 0
    n = -m if neg else m
    return f"{'-' if neg else ''}{n // MICRO}.{n % MICRO:06d}"


def format_units(raw: int, decimals: int) -> str:
    """Human form of a raw on-chain amount, e.g. (1500000, 6) -> '1.5'."""
    value = Decimal(int(raw)).scaleb(-int(decimals))
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def token_text(reading: TokenReading | None) -> str:
    if reading is None or reading.error or reading.raw is None:
        return "0"
    decimals = DEFAULT_TOKEN_DECIMALS if reading.decimals is None else reading.decimals
    return format_units(reading.raw, decimals)
