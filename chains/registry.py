from __future__ import annotations

from typing import Dict

from chains.base import ChainReader
from chains.evm_rpc import EvmReader
from chains.solana_rpc import SolanaReader
from chains.tron_rpc import TronReader

_READERS: Dict[str, ChainReader] = {
    "evm": EvmReader(),
    "solana": SolanaReader(),
    "tron": TronReader(),
}


def reader_for(family: str) -> ChainReader:
    try:
        return _READERS[family]
    except KeyError:
        raise ValueError(f"no chain reader for family {family!r}") from None
