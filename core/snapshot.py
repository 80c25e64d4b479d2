from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from chains.base import ChainReader
from chains.registry import reader_for
from core.models import NetworkDescriptor, NetworkSnapshot, Sample, TokenReading
from core.providers import ProviderSelector, call_blocking
from core.valuation import sample_from
from settings import READ_TIMEOUT
from wallet_config import address_family

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenMeta:
    decimals: int
    symbol: str


class TokenMetaCache:
    """(chain id, contract) -> decimals/symbol. Fetched once, reused forever."""

    def __init__(self):
        self._meta: Dict[Tuple[int, str], TokenMeta] = {}

    @staticmethod
    def _key(chain_id: int, contract: str) -> Tuple[int, str]:
        return chain_id, contract.lower()

    def get(self, chain_id: int, contract: str) -> Optional[TokenMeta]:
        return self._meta.get(self._key(chain_id, contract))

    def put(self, chain_id: int, contract: str, meta: TokenMeta) -> None:
        self._meta[self._key(chain_id, contract)] = meta

    def __len__(self) -> int:
        return len(self._meta)


def _err(e: BaseException, label: str) -> str:
    if isinstance(e, asyncio.TimeoutError):
        return f"Timeout: {label}"
    return str(e) or e.__class__.__name__


class BalanceSnapshotter:
    def __init__(
        self,
        networks: List[NetworkDescriptor],
        selector: ProviderSelector,
        meta_cache: Optional[TokenMetaCache] = None,
        readers: Callable[[str], ChainReader] = reader_for,
        read_timeout: float = READ_TIMEOUT,
    ):
        self.networks = list(networks)
        self.selector = selector
        self.meta_cache = meta_cache if meta_cache is not None else TokenMetaCache()
        self.readers = readers
        self.read_timeout = float(read_timeout)

    def networks_for(self, address: str) -> List[NetworkDescriptor]:
        family = address_family(address)
        return [n for n in self.networks if n.family == family]

    async def snapshot(self, address: str) -> List[NetworkSnapshot]:
        """One snapshot per network; failures are captured in-line, never raised."""
        out: List[NetworkSnapshot] = []
        for net in self.networks_for(address):
            try:
                out.append(await self._snapshot_network(net, address))
            except Exception as e:
                out.append(NetworkSnapshot.failed(net, _err(e, f"{net.name} native")))
        return out

    async def sample(self, address: str) -> Sample:
        return sample_from(await self.snapshot(address))

    async def _snapshot_network(self, net: NetworkDescriptor, address: str) -> NetworkSnapshot:
        reader = self.readers(net.family)
        handle, url = await self.selector.acquire(net)
        native = await call_blocking(reader.native_balance, handle, address, self.read_timeout,
                                     timeout=self.read_timeout)

        symbols = list(net.tokens)
        readings = await asyncio.gather(
            *(self._read_token(reader, handle, net, address, sym, net.tokens[sym]) for sym in symbols)
        )
        return NetworkSnapshot(network=net, native=native, tokens=dict(zip(symbols, readings)), url=url)

    async def _read_token(self, reader: ChainReader, handle: Any, net: NetworkDescriptor,
                          address: str, sym: str, contract: str) -> TokenReading:
        try:
            raw = await call_blocking(reader.token_balance, handle, address, contract, self.read_timeout,
                                      timeout=self.read_timeout)
            meta = await self._metadata(reader, handle, net, contract)
            return TokenReading(raw=int(raw), decimals=meta.decimals, symbol=meta.symbol)
        except Exception as e:
            logger.debug("%s:%s read failed for %s: %s", net.name, sym, address, _err(e, f"{net.name}:{sym}"))
            return TokenReading.failed(_err(e, f"{net.name}:{sym}"))

    async def _metadata(self, reader: ChainReader, handle: Any, net: NetworkDescriptor, contract: str) -> TokenMeta:
        meta = self.meta_cache.get(net.chain_id, contract)
        if meta is None:
            decimals, symbol = await call_blocking(reader.token_metadata, handle, contract, self.read_timeout,
                                                   timeout=self.read_timeout)
            meta = TokenMeta(decimals=int(decimals), symbol=str(symbol))
            self.meta_cache.put(net.chain_id, contract, meta)
        return meta
