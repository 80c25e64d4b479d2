from __future__ import annotations

import threading
import time
from typing import Dict, List, Optional, Set, Tuple

import pytest

from core.errors import NotificationError
from core.models import NetworkDescriptor, Sample

EVM_ADDR = "0x" + "ab" * 20
EVM_ADDR_2 = "0x" + "cd" * 20

USDT = "0x00000000000000000000000000000000000000a1"
USDC = "0x00000000000000000000000000000000000000a2"


def make_network(key: str = "t1", chain_id: int = 1,
                 urls: Tuple[str, ...] = ("https://a", "https://b"),
                 tokens: Optional[Dict[str, str]] = None, family: str = "evm") -> NetworkDescriptor:
    return NetworkDescriptor(
        key=key,
        name=f"Test {key}",
        chain_id=chain_id,
        symbol="ETH",
        rpc_urls=urls,
        tokens={"USDT": USDT, "USDC": USDC} if tokens is None else tokens,
        rpc_env=f"RPC_{key.upper()}",
        family=family,
    )


class FakeReader:
    """In-memory chain reader. Handles are the endpoint URL."""

    family = "evm"

    def __init__(self):
        self.down: Set[str] = set()
        self.native: Dict[str, int] = {}
        self.balances: Dict[Tuple[str, str], object] = {}
        self.decimals: Dict[str, int] = {USDT: 6, USDC: 6}
        self.native_delay = 0.0
        self.connects: List[str] = []
        self.probes: List[str] = []
        self.metadata_calls = 0
        self._lock = threading.Lock()

    def connect(self, url, network):
        with self._lock:
            self.connects.append(url)
        return url

    def probe(self, handle, timeout):
        with self._lock:
            self.probes.append(handle)
        if handle in self.down:
            raise ConnectionError(f"{handle} down")

    def native_balance(self, handle, address, timeout):
        if self.native_delay:
            time.sleep(self.native_delay)
        return self.native.get(address, 0)

    def token_balance(self, handle, address, contract, timeout):
        value = self.balances.get((address, contract), 0)
        if isinstance(value, Exception):
            raise value
        return value

    def token_metadata(self, handle, contract, timeout):
        with self._lock:
            self.metadata_calls += 1
        return self.decimals.get(contract, 6), "TKN"


class FakeNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Tuple[str, str, str]] = []

    def deliver(self, recipient, subject, body):
        if self.fail:
            raise NotificationError("smtp down")
        self.sent.append((recipient, subject, body))


class ScriptedSampler:
    """Returns queued valuations in order; the last one repeats."""

    def __init__(self, *samples):
        self.samples = list(samples)
        self.calls = 0

    async def __call__(self, address):
        self.calls += 1
        item = self.samples[0] if len(self.samples) == 1 else self.samples.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, Sample):
            return item
        return Sample(snapshots=[], valuation=item, any_error=False)


def errored(valuation: int) -> Sample:
    return Sample(snapshots=[], valuation=valuation, any_error=True)


@pytest.fixture
def reader():
    return FakeReader()


@pytest.fixture
def network():
    return make_network()
