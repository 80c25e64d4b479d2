#!/usr/bin/env python3
# check_balances.py
# One-shot: print native + USDT/USDC balances of one address on every network.
#   python check_balances.py 0x... [--csv] [--only=eth,polygon] [--timeout=8]
from __future__ import annotations

import argparse
import asyncio
import sys
import time
from typing import List, Optional

from core.models import NetworkSnapshot
from core.providers import ProviderSelector
from core.snapshot import BalanceSnapshotter
from core.valuation import STABLE_SYMBOLS, format_units, token_text
from networks import candidate_urls, select_networks
from wallet_config import canonical_address


def _token_status(snap: NetworkSnapshot) -> str:
    parts = []
    for sym in STABLE_SYMBOLS:
        r = snap.tokens.get(sym)
        if r is None:
            continue
        parts.append(f"{sym} ERROR: {r.error}" if r.error else f"{sym}: {token_text(r)}")
    return " | ".join(parts)


def render_text(address: str, rows: List[NetworkSnapshot]) -> List[str]:
    out = [f"Address: {address}"]
    for r in rows:
        n = r.network
        if r.error:
            out.append(f"- {n.name} [{n.chain_id}] {n.symbol}: ERROR -> {r.error}")
            continue
        out.append(f"- {n.name} [{n.chain_id}] {n.symbol}: {format_units(r.native or 0, n.native_decimals)}")
        tokens = _token_status(r)
        if tokens:
            out.append(f"  • {tokens}")
    return out


def render_csv(rows: List[NetworkSnapshot]) -> List[str]:
    out = ["network,chainId,symbol,balance,raw," + ",".join(STABLE_SYMBOLS) + ",rpc,status"]
    for r in rows:
        n = r.network
        if r.error:
            blanks = "," * len(STABLE_SYMBOLS)
            url = r.url or next(iter(candidate_urls(n)), "")
            out.append(f"{n.name},{n.chain_id},{n.symbol},,{blanks},{url},ERROR: {r.error.replace(',', ';')}")
            continue
        stables = []
        for sym in STABLE_SYMBOLS:
            t = r.tokens.get(sym)
            stables.append(token_text(t) if t and not t.error else "")
        out.append(
            f"{n.name},{n.chain_id},{n.symbol},{format_units(r.native or 0, n.native_decimals)},{r.native},"
            f"{','.join(stables)},{r.url},OK"
        )
    return out


async def check(address: str, only: Optional[List[str]], timeout: float) -> List[NetworkSnapshot]:
    snapshotter = BalanceSnapshotter(
        select_networks(only),
        ProviderSelector(discovery_timeout=timeout),
        read_timeout=timeout,
    )
    return await snapshotter.snapshot(address)


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="check_balances", description="Print balances for one address.")
    p.add_argument("address")
    p.add_argument("--csv", action="store_true")
    p.add_argument("--only", help="comma separated network keys")
    p.add_argument("--timeout", type=float, default=8.0, help="seconds per RPC call")
    args = p.parse_args(argv)

    address = canonical_address(args.address)
    if not address:
        print(f"Invalid address: {args.address}", file=sys.stderr)
        return 2

    start = time.monotonic()
    only = args.only.split(",") if args.only else None
    rows = asyncio.run(check(address, only, args.timeout))

    lines = render_csv(rows) if args.csv else render_text(address, rows)
    if not args.csv:
        lines.append(f"Checked {len(rows)} networks in {int((time.monotonic() - start) * 1000)}ms")
    print("\n".join(lines))
    return 0


if __name__ == "__main__":
    sys.exit(main())
