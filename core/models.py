from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class NetworkDescriptor:
    """One chain the watcher can read from."""
    key: str                    # "eth", "polygon", "sol", ...
    name: str                   # display name
    chain_id: int               # EVM chain id (or a stable id for non-EVM)
    symbol: str                 # native coin symbol
    rpc_urls: Tuple[str, ...]   # static fallback candidates, in order
    tokens: Dict[str, str] = field(default_factory=dict)  # symbol -> contract/mint
    rpc_env: str = ""           # env var holding a preferred RPC override
    family: str = "evm"         # "evm" | "solana"
    native_decimals: int = 18


@dataclass(frozen=True)
class WalletEntry:
    address: str                # canonical form
    label: Optional[str] = None
    user: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class TokenReading:
    raw: Optional[int] = None
    decimals: Optional[int] = None
    symbol: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str) -> "TokenReading":
        return cls(error=error)


@dataclass(frozen=True)
class NetworkSnapshot:
    network: NetworkDescriptor
    native: Optional[int] = None
    tokens: Dict[str, TokenReading] = field(default_factory=dict)
    url: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, network: NetworkDescriptor, error: str) -> "NetworkSnapshot":
        return cls(network=network, error=error)


@dataclass(frozen=True)
class Sample:
    """One sampling pass for one wallet."""
    snapshots: List[NetworkSnapshot]
    valuation: int              # micro-units
    any_error: bool


@dataclass
class WalletState:
    last_valuation: Optional[int] = None    # None until first observation
    label: Optional[str] = None
    user: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class ChangeRecord:
    address: str
    delta: int                  # micro-units, absolute
    previous: int
    valuation: int              # confirmed valuation
    lines: List[str]
    label: Optional[str] = None
    user: Optional[str] = None
    email: Optional[str] = None
