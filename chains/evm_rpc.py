from __future__ import annotations

from typing import Any, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError

from chains.base import JsonRpcClient, rpc_session
from core.errors import RpcError
from core.models import NetworkDescriptor

# ERC-20 selectors
BALANCE_OF = "0x70a08231"
DECIMALS = "0x313ce567"
SYMBOL = "0x95d89b41"


def _hex_int(value: Any, what: str) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.startswith("0x"):
        return int(value, 16) if len(value) > 2 else 0
    raise RpcError(f"{what}: not a hex quantity: {value!r}")


def _hex_bytes(value: Any, what: str) -> bytes:
    if not isinstance(value, str) or not value.startswith("0x"):
        raise RpcError(f"{what}: not hex data: {value!r}")
    data = bytes.fromhex(value[2:])
    if not data:
        # eth_call on an address without code returns "0x"
        raise RpcError(f"{what}: empty return data")
    return data


def balance_of_calldata(owner: str) -> str:
    return BALANCE_OF + encode(["address"], [owner]).hex()


def decode_symbol(data: bytes) -> str:
    """ABI string, with a fallback for legacy bytes32 symbols (MKR, SAI)."""
    try:
        return decode(["string"], data)[0]
    except (DecodingError, OverflowError, ValueError):
        (raw,) = decode(["bytes32"], data[:32])
        return raw.rstrip(b"\x00").decode("utf-8", errors="replace")


class EvmReader:
    """Contract-call style reads over plain JSON-RPC."""

    family = "evm"

    def connect(self, url: str, network: NetworkDescriptor) -> JsonRpcClient:
        return JsonRpcClient(url, session=rpc_session())

    def probe(self, handle: JsonRpcClient, timeout: float) -> None:
        _hex_int(handle.call("eth_blockNumber", [], timeout), "eth_blockNumber")

    def native_balance(self, handle: JsonRpcClient, address: str, timeout: float) -> int:
        res = handle.call("eth_getBalance", [address, "latest"], timeout)
        return _hex_int(res, "eth_getBalance")

    def _eth_call(self, handle: JsonRpcClient, to: str, data: str, timeout: float) -> bytes:
        res = handle.call("eth_call", [{"to": to, "data": data}, "latest"], timeout)
        return _hex_bytes(res, f"eth_call {to}")

    def token_balance(self, handle: JsonRpcClient, address: str, contract: str, timeout: float) -> int:
        data = self._eth_call(handle, contract, balance_of_calldata(address), timeout)
        return decode(["uint256"], data)[0]

    def token_metadata(self, handle: JsonRpcClient, contract: str, timeout: float) -> Tuple[int, str]:
        dec = decode(["uint8"], self._eth_call(handle, contract, DECIMALS, timeout))[0]
        sym = decode_symbol(self._eth_call(handle, contract, SYMBOL, timeout))
        return int(dec), sym
