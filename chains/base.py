from __future__ import annotations

import itertools
from typing import Any, Protocol, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from core.errors import RpcError
from core.models import NetworkDescriptor

_ids = itertools.count(1)


class ChainReader(Protocol):
    """
    Per-family read capability. Handles are whatever connect() returns;
    the engine only passes them back into the same reader.
    All methods are blocking and honour the given timeout (seconds).
    """
    family: str

    def connect(self, url: str, network: NetworkDescriptor) -> Any: ...

    def probe(self, handle: Any, timeout: float) -> None: ...

    def native_balance(self, handle: Any, address: str, timeout: float) -> int: ...

    def token_balance(self, handle: Any, address: str, contract: str, timeout: float) -> int: ...

    def token_metadata(self, handle: Any, contract: str, timeout: float) -> Tuple[int, str]: ...


def rpc_session(retries: int = 2) -> requests.Session:
    """
    Session with retries on rate limits / 5xx. JSON-RPC reads are
    idempotent, so POST is allowed to retry.
    """
    session = requests.Session()
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        backoff_factor=0.5,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["POST"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class JsonRpcClient:
    """Minimal JSON-RPC 2.0 client bound to one endpoint."""

    def __init__(self, url: str, session: requests.Session | None = None):
        self.url = url
        self.session = session or rpc_session()

    def call(self, method: str, params: list, timeout: float) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(_ids), "method": method, "params": params}
        r = self.session.post(self.url, json=payload, timeout=timeout)
        r.raise_for_status()
        data = r.json()
        if not isinstance(data, dict):
            raise RpcError(f"{method}: unexpected response {data!r}")
        if data.get("error"):
            raise RpcError(f"{method}: {data['error']}")
        if "result" not in data:
            raise RpcError(f"{method}: missing result")
        return data["result"]

    def close(self) -> None:
        self.session.close()

    def __repr__(self) -> str:
        return f"JsonRpcClient({self.url!r})"
