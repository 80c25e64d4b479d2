from __future__ import annotations

from typing import Any, Dict, Tuple

from chains.base import JsonRpcClient, rpc_session
from core.errors import RpcError
from core.models import NetworkDescriptor


class SolanaHandle(JsonRpcClient):
    def __init__(self, url: str, network: NetworkDescriptor):
        super().__init__(url, session=rpc_session())
        # mint -> configured symbol, used as the token symbol
        self.symbols: Dict[str, str] = {mint: sym for sym, mint in network.tokens.items()}


def _value(res: Any, what: str) -> Any:
    if not isinstance(res, dict) or "value" not in res:
        raise RpcError(f"{what}: unexpected result {res!r}")
    return res["value"]


class SolanaReader:
    """
    Account-balance style reads: lamports via getBalance, SPL balances by
    summing the owner's token accounts for a mint.
    """

    family = "solana"
    commitment = "confirmed"

    def connect(self, url: str, network: NetworkDescriptor) -> SolanaHandle:
        return SolanaHandle(url, network)

    def probe(self, handle: SolanaHandle, timeout: float) -> None:
        slot = handle.call("getSlot", [{"commitment": self.commitment}], timeout)
        if not isinstance(slot, int):
            raise RpcError(f"getSlot: unexpected result {slot!r}")

    def native_balance(self, handle: SolanaHandle, address: str, timeout: float) -> int:
        res = handle.call("getBalance", [address, {"commitment": self.commitment}], timeout)
        return int(_value(res, "getBalance"))

    def token_balance(self, handle: SolanaHandle, address: str, contract: str, timeout: float) -> int:
        res = handle.call(
            "getTokenAccountsByOwner",
            [address, {"mint": contract}, {"encoding": "jsonParsed", "commitment": self.commitment}],
            timeout,
        )
        total = 0
        for acct in _value(res, "getTokenAccountsByOwner") or []:
            info = (((acct.get("account") or {}).get("data") or {}).get("parsed") or {}).get("info") or {}
            amount = (info.get("tokenAmount") or {}).get("amount")
            if amount is None:
                raise RpcError(f"getTokenAccountsByOwner: account without tokenAmount for {contract}")
            total += int(amount)
        return total

    def token_metadata(self, handle: SolanaHandle, contract: str, timeout: float) -> Tuple[int, str]:
        res = handle.call("getTokenSupply", [contract, {"commitment": self.commitment}], timeout)
        supply = _value(res, "getTokenSupply")
        decimals = supply.get("decimals") if isinstance(supply, dict) else None
        if decimals is None:
            raise RpcError(f"getTokenSupply: no decimals for {contract}")
        return int(decimals), handle.symbols.get(contract, contract[:6])
