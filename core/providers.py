from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from chains.base import ChainReader
from chains.registry import reader_for
from core.errors import NoLiveEndpoint
from core.models import NetworkDescriptor
from networks import candidate_urls
from settings import DISCOVERY_TIMEOUT, PROBE_TIMEOUT

logger = logging.getLogger(__name__)


async def call_blocking(fn: Callable[..., Any], *args: Any, timeout: float) -> Any:
    """Run a blocking read off the loop. On timeout the thread is abandoned."""
    return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=timeout)


@dataclass(frozen=True)
class ProviderCacheEntry:
    handle: Any
    url: str


class ProviderCache:
    """
    chain id -> trusted endpoint. Shared by every wallet evaluation;
    concurrent refreshes simply overwrite each other.
    """

    def __init__(self):
        self._entries: Dict[int, ProviderCacheEntry] = {}

    def get(self, chain_id: int) -> Optional[ProviderCacheEntry]:
        return self._entries.get(chain_id)

    def put(self, chain_id: int, entry: ProviderCacheEntry) -> None:
        self._entries[chain_id] = entry

    def drop(self, chain_id: int) -> None:
        self._entries.pop(chain_id, None)

    def __len__(self) -> int:
        return len(self._entries)


class ProviderSelector:
    def __init__(
        self,
        cache: Optional[ProviderCache] = None,
        readers: Callable[[str], ChainReader] = reader_for,
        environ: Mapping[str, str] = os.environ,
        probe_timeout: float = PROBE_TIMEOUT,
        discovery_timeout: float = DISCOVERY_TIMEOUT,
    ):
        self.cache = cache if cache is not None else ProviderCache()
        self.readers = readers
        self.environ = environ
        self.probe_timeout = float(probe_timeout)
        self.discovery_timeout = float(discovery_timeout)

    async def acquire(self, network: NetworkDescriptor) -> Tuple[Any, str]:
        reader = self.readers(network.family)
        failed_url = None

        cached = self.cache.get(network.chain_id)
        if cached is not None:
            try:
                await call_blocking(reader.probe, cached.handle, self.probe_timeout, timeout=self.probe_timeout)
                return cached.handle, cached.url
            except Exception as e:
                logger.info("%s: cached RPC %s failed probe (%s), rediscovering", network.name, cached.url, _reason(e))
                failed_url = cached.url

        candidates = candidate_urls(network, self.environ)
        if failed_url in candidates:
            # try everything else before the endpoint that just failed
            candidates.remove(failed_url)
            candidates.append(failed_url)

        for url in candidates:
            try:
                handle = reader.connect(url, network)
                await call_blocking(reader.probe, handle, self.discovery_timeout, timeout=self.discovery_timeout)
            except Exception as e:
                logger.debug("%s: candidate %s unreachable: %s", network.name, url, _reason(e))
                continue
            self.cache.put(network.chain_id, ProviderCacheEntry(handle=handle, url=url))
            logger.info("%s: using RPC %s", network.name, url)
            return handle, url

        self.cache.drop(network.chain_id)
        raise NoLiveEndpoint(network.name, tried=len(candidates))


def _reason(e: BaseException) -> str:
    if isinstance(e, asyncio.TimeoutError):
        return "timeout"
    return str(e) or e.__class__.__name__
