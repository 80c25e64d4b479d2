# wallet_config.py
# Wallet list loading: positional args, legacy "wallet-addresses" text file,
# and wallets.json ([{"user": ..., "email": ..., "wallets": [{"label", "address", "email"}]}]).
from __future__ import annotations

import json
import logging
import os
import re
from email.utils import parseaddr
from typing import Any, Dict, Iterable, List, Mapping, Optional

import base58
from eth_utils import is_address, to_checksum_address

from chains.tron_rpc import tron_address_bytes
from core.models import WalletEntry

logger = logging.getLogger(__name__)

COMMENT_PREFIXES = ("#", "//", ";")
_B58 = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def is_tron_address(text: str) -> bool:
    if not text.startswith("T") or len(text) != 34:
        return False
    try:
        tron_address_bytes(text)
    except ValueError:
        return False
    return True


def canonical_address(text: Any) -> Optional[str]:
    """EIP-55 checksum for EVM addresses, base58 as-is for Tron and Solana; None otherwise."""
    if not isinstance(text, str):
        return None
    t = text.strip()
    if t.startswith("0x") or t.startswith("0X"):
        return to_checksum_address(t) if is_address(t) else None
    if is_tron_address(t):
        return t
    if _B58.match(t):
        try:
            if len(base58.b58decode(t)) == 32:
                return t
        except ValueError:
            return None
    return None


def address_family(address: str) -> str:
    if address.startswith("0x"):
        return "evm"
    if is_tron_address(address):
        return "tron"
    return "solana"


def is_valid_email(text: Any) -> bool:
    if not isinstance(text, str) or not text.strip():
        return False
    _, addr = parseaddr(text.strip())
    local, at, domain = addr.partition("@")
    return bool(local and at and "." in domain and " " not in addr)


def _clean(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def parse_address_line(line: str) -> Optional[Dict[str, str]]:
    """
    Accepts "addr", "addr,label", "label,addr" or whitespace separated
    "label words addr more words". Returns {"address", "label"} or None.
    """
    line = (line or "").strip()
    if not line:
        return None

    parts = [p.strip() for p in line.split(",") if p.strip()]
    if len(parts) >= 2:
        first, last = canonical_address(parts[0]), canonical_address(parts[-1])
        if first:
            return {"address": first, "label": ",".join(parts[1:])}
        if last:
            return {"address": last, "label": ",".join(parts[:-1])}

    tokens = line.split()
    if len(tokens) >= 2:
        for i, tok in enumerate(tokens):
            addr = canonical_address(tok)
            if addr:
                label = " ".join(tokens[:i] + tokens[i + 1:]).strip()
                return {"address": addr, "label": label}

    addr = canonical_address(line)
    if addr:
        return {"address": addr, "label": ""}
    return None


def read_address_file(path: str) -> List[Dict[str, str]]:
    if not os.path.exists(path):
        return []
    out: List[Dict[str, str]] = []
    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith(COMMENT_PREFIXES):
                continue
            parsed = parse_address_line(line)
            if not parsed:
                logger.warning("Skipping invalid address/line in %s: %s", path, line)
                continue
            out.append(parsed)
    return out


def wallets_from_json(data: Any) -> List[Dict[str, Optional[str]]]:
    if not isinstance(data, list):
        raise ValueError("config root must be an array")
    out: List[Dict[str, Optional[str]]] = []
    for user in data:
        if not isinstance(user, dict):
            continue
        uname = _clean(user.get("user"))
        uemail = user.get("email") if is_valid_email(user.get("email")) else None
        for w in user.get("wallets") or []:
            if not isinstance(w, dict):
                continue
            addr = canonical_address(w.get("address"))
            if not addr:
                logger.warning("Skipping invalid address in config: %s", w.get("address"))
                continue
            out.append({
                "address": addr,
                "label": _clean(w.get("label")),
                "user": uname,
                "email": w.get("email").strip() if is_valid_email(w.get("email")) else uemail,
            })
    return out


def read_wallets_json(path: str) -> List[Dict[str, Optional[str]]]:
    if not os.path.exists(path):
        return []
    try:
        with open(path, "r", encoding="utf-8") as f:
            return wallets_from_json(json.load(f))
    except (OSError, ValueError) as e:
        logger.error("Failed to parse %s: %s", path, e)
        return []


def normalize_entries(raw_entries: Iterable[Any]) -> List[WalletEntry]:
    """
    Strings or mappings -> unique WalletEntry list, in first-seen order.
    Per field the first non-empty value wins; later entries only fill gaps.
    """
    merged: Dict[str, Dict[str, Optional[str]]] = {}
    for raw in raw_entries:
        entry: Optional[Dict[str, Optional[str]]] = None
        if isinstance(raw, str):
            entry = parse_address_line(raw)
        elif isinstance(raw, Mapping):
            addr = canonical_address(raw.get("address"))
            if addr:
                entry = {
                    "address": addr,
                    "label": _clean(raw.get("label")),
                    "user": _clean(raw.get("user")),
                    "email": _clean(raw.get("email")),
                }
        if not entry:
            shown = raw.get("address") if isinstance(raw, Mapping) else raw
            logger.warning("Skipping invalid address: %s", shown)
            continue

        prev = merged.setdefault(entry["address"], {"label": None, "user": None, "email": None})
        for fld in ("label", "user", "email"):
            if not prev.get(fld):
                prev[fld] = _clean(entry.get(fld))

    return [WalletEntry(address=a, label=f["label"], user=f["user"], email=f["email"]) for a, f in merged.items()]


def load_wallets(positional: Iterable[str] = (), file_path: str = "wallet-addresses",
                 config_path: str = "wallets.json") -> List[WalletEntry]:
    return normalize_entries([*positional, *read_address_file(file_path), *read_wallets_json(config_path)])
