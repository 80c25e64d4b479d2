#!/usr/bin/env python3
"""
Stable-balance watcher.

Polls USDT/USDC balances of every configured wallet across the selected
networks and sends one grouped notification per recipient when a wallet's
total moves by at least --usd-delta (confirmed by an immediate re-read).

Wallets come from (merged, first non-empty value wins per field):
  - positional addresses ("0x...", "0x...,label", "label 0x...")
  - a legacy text file, one address per line (default ./wallet-addresses)
  - wallets.json: [{"user": "alex", "email": "a@b.c",
                    "wallets": [{"label": "exodus", "address": "0x...", "email": "..."}]}]
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from core.engine import WatchEngine
from core.errors import NoWalletsConfigured
from core.models import WalletEntry
from core.notifier import Notifier, build_notifier
from core.valuation import STABLE_SYMBOLS
from log_setup import setup_logging
from networks import network_keys, select_networks
from settings import WatchSettings
from wallet_config import load_wallets

logger = logging.getLogger("watch")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="watch",
        description="Watch stablecoin balances across networks and notify on changes.",
    )
    p.add_argument("addresses", nargs="*", help="wallet addresses, optionally with a label")
    p.add_argument("--config", default="wallets.json", help="wallets JSON file (default: %(default)s)")
    p.add_argument("--file", default="wallet-addresses", help="legacy one-address-per-line file")
    p.add_argument("--only", help=f"comma separated network keys ({','.join(network_keys())})")
    p.add_argument("--interval", type=float, help="seconds between cycles (min 5, default 30)")
    p.add_argument("--usd-delta", dest="usd_delta", type=float, help="USD change that triggers a notification")
    p.add_argument("--email-to", dest="email_to", help="default recipient")
    p.add_argument("--concurrency", type=int, help="wallets evaluated in parallel (default 50)")
    p.add_argument("--allow-errors", dest="allow_errors", action="store_true", default=None,
                   help="notify even when some networks errored during the pass")
    p.add_argument("--log-level", default="INFO")
    return p


def settings_from_args(args: argparse.Namespace, base: Optional[WatchSettings] = None) -> WatchSettings:
    base = base or WatchSettings.from_env()
    return base.with_overrides(
        only=args.only,
        interval=args.interval,
        usd_delta=args.usd_delta,
        email_to=args.email_to,
        concurrency=args.concurrency,
        allow_errors=args.allow_errors,
    )


def require_wallets(wallets: List[WalletEntry]) -> List[WalletEntry]:
    if not wallets:
        raise NoWalletsConfigured("no valid wallet addresses to watch")
    return wallets


async def run(wallets: List[WalletEntry], settings: WatchSettings, notifier: Notifier) -> None:
    engine = WatchEngine(wallets, settings, notifier)
    nets = select_networks(settings.only)
    logger.info(
        "Watching %d wallet(s) across %d networks (interval %.0fs, threshold ~$%s, %s)",
        len(wallets), len(nets), settings.interval, settings.usd_delta, "+".join(STABLE_SYMBOLS),
    )
    await engine.run_forever()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    settings = settings_from_args(args)
    try:
        wallets = require_wallets(load_wallets(args.addresses, args.file, args.config))
    except NoWalletsConfigured as e:
        logger.error("%s", e)
        parser.print_usage(sys.stderr)
        print(
            'Tips:\n'
            ' - Preferred: wallets.json as [{"user":"alex","wallets":[{"label":"exodus","address":"0x...","email":"you@example.com"}]}]\n'
            ' - Legacy: one address per line in wallet-addresses (comments supported).',
            file=sys.stderr,
        )
        return 1

    try:
        notifier = build_notifier()
    except ValueError as e:
        logger.error("notifier misconfigured: %s", e)
        return 2

    try:
        asyncio.run(run(wallets, settings, notifier))
    except KeyboardInterrupt:
        logger.info("stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
