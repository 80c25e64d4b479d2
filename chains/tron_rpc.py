from __future__ import annotations

from typing import Any, Dict, Tuple

import base58
import requests
from eth_abi import decode, encode

from chains.base import rpc_session
from chains.evm_rpc import decode_symbol
from core.errors import RpcError
from core.models import NetworkDescriptor

# mainnet address version byte; base58check "T..." addresses
TRON_PREFIX = 0x41


def tron_address_bytes(address: str) -> bytes:
    """20-byte account id of a base58check T-address. Raises ValueError."""
    raw = base58.b58decode_check(address)
    if len(raw) != 21 or raw[0] != TRON_PREFIX:
        raise ValueError(f"not a tron address: {address}")
    return raw[1:]


def _abi_address(address: str) -> str:
    return encode(["address"], ["0x" + tron_address_bytes(address).hex()]).hex()


class TronHandle:
    """TronGrid-style HTTP API (/wallet/*) bound to one full node."""

    def __init__(self, url: str, session: requests.Session | None = None):
        self.url = url.rstrip("/")
        self.session = session or rpc_session()

    def post(self, path: str, payload: Dict[str, Any], timeout: float) -> Dict[str, Any]:
        r = self.session.post(f"{self.url}/wallet/{path}", json=payload, timeout=timeout)
        r.raise_for_status()
        data = r.json()
        if not isinstance(data, dict):
            raise RpcError(f"{path}: unexpected response {data!r}")
        if data.get("Error"):
            raise RpcError(f"{path}: {data['Error']}")
        return data

    def close(self) -> None:
        self.session.close()

    def __repr__(self) -> str:
        return f"TronHandle({self.url!r})"


def _revert_reason(result: Dict[str, Any]) -> str:
    msg = result.get("message") or result.get("code") or "call failed"
    try:
        return bytes.fromhex(msg).decode("utf-8", errors="replace")
    except ValueError:
        return str(msg)


class TronReader:
    """TRX in sun via getaccount, TRC-20 reads via triggerconstantcontract."""

    family = "tron"

    def connect(self, url: str, network: NetworkDescriptor) -> TronHandle:
        return TronHandle(url)

    def probe(self, handle: TronHandle, timeout: float) -> None:
        block = handle.post("getnowblock", {}, timeout)
        if not block.get("blockID"):
            raise RpcError(f"getnowblock: unexpected result {block!r}")

    def native_balance(self, handle: TronHandle, address: str, timeout: float) -> int:
        # unactivated accounts come back as {}
        account = handle.post("getaccount", {"address": address, "visible": True}, timeout)
        return int(account.get("balance") or 0)

    def _constant_call(self, handle: TronHandle, contract: str, selector: str, parameter: str,
                       owner: str, timeout: float) -> bytes:
        res = handle.post("triggerconstantcontract", {
            "owner_address": owner,
            "contract_address": contract,
            "function_selector": selector,
            "parameter": parameter,
            "visible": True,
        }, timeout)
        result = res.get("result") or {}
        if not result.get("result"):
            raise RpcError(f"{selector} on {contract}: {_revert_reason(result)}")
        out = res.get("constant_result") or []
        if not out or not out[0]:
            raise RpcError(f"{selector} on {contract}: empty return data")
        return bytes.fromhex(out[0])

    def token_balance(self, handle: TronHandle, address: str, contract: str, timeout: float) -> int:
        data = self._constant_call(handle, contract, "balanceOf(address)", _abi_address(address), address, timeout)
        return decode(["uint256"], data)[0]

    def token_metadata(self, handle: TronHandle, contract: str, timeout: float) -> Tuple[int, str]:
        dec = decode(["uint8"], self._constant_call(handle, contract, "decimals()", "", contract, timeout))[0]
        sym = decode_symbol(self._constant_call(handle, contract, "symbol()", "", contract, timeout))
        return int(dec), sym
