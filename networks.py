# networks.py
# Curated public RPC endpoints. Prefer your own endpoints via the RPC_* env
# vars for reliability and rate limits.
#
# Avalanche USDT is native Tether (0x9702...A8c7). The bridged USDT.e
# (0xde3A24028580884448a5397872046a019649b084) can be watched instead by
# setting AVAX_USDT.
from __future__ import annotations

import os
from typing import Dict, Iterable, List, Mapping, Optional

from dotenv import load_dotenv

from core.models import NetworkDescriptor

load_dotenv()

N = NetworkDescriptor


def apply_token_env(tokens: Dict[str, str], env_names: Dict[str, str],
                    environ: Mapping[str, str] = os.environ) -> Dict[str, str]:
    """
    symbol -> contract/mint, with any set env var replacing the default.
    A symbol with no default is only watched when its env var is set.
    """
    out: Dict[str, str] = {}
    for sym in [*tokens, *(s for s in env_names if s not in tokens)]:
        override = (environ.get(env_names[sym]) or "").strip() if sym in env_names else ""
        value = override or tokens.get(sym, "")
        if value:
            out[sym] = value
    return out


NETWORKS: List[NetworkDescriptor] = [
    N("eth", "Ethereum Mainnet", 1, "ETH",
      ("https://eth.llamarpc.com", "https://cloudflare-eth.com", "https://rpc.ankr.com/eth"),
      {"USDT": "0xdAC17F958D2ee523a2206206994597C13D831ec7", "USDC": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"},
      rpc_env="RPC_ETH"),
    N("polygon", "Polygon", 137, "MATIC",
      ("https://polygon-rpc.com", "https://rpc.ankr.com/polygon"),
      {"USDT": "0xc2132D05D31c914a87C6611C10748AEb04B58e8F", "USDC": "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359"},
      rpc_env="RPC_POLYGON"),
    N("bsc", "BNB Smart Chain", 56, "BNB",
      ("https://bsc-dataseed.binance.org", "https://rpc.ankr.com/bsc"),
      {"USDT": "0x55d398326f99059ff775485246999027b3197955", "USDC": "0x8ac76a51cc950d9822d68b83fe1ad97b32cd580d"},
      rpc_env="RPC_BSC"),
    N("arbitrum", "Arbitrum One", 42161, "ETH",
      ("https://arb1.arbitrum.io/rpc", "https://rpc.ankr.com/arbitrum"),
      {"USDT": "0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9", "USDC": "0xff970a61a04b1ca14834a43f5de4533ebddb5cc8"},
      rpc_env="RPC_ARBITRUM"),
    N("optimism", "Optimism", 10, "ETH",
      ("https://mainnet.optimism.io", "https://optimism.meowrpc.com", "https://rpc.ankr.com/optimism"),
      {"USDT": "0x94b008aA00579c1307B0EF2c499aD98a8ce58e58", "USDC": "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85"},
      rpc_env="RPC_OPTIMISM"),
    N("base", "Base", 8453, "ETH",
      ("https://mainnet.base.org", "https://rpc.ankr.com/base"),
      {"USDC": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"},
      rpc_env="RPC_BASE"),
    N("avalanche", "Avalanche C-Chain", 43114, "AVAX",
      ("https://api.avax.network/ext/bc/C/rpc", "https://avalanche.public-rpc.com", "https://rpc.ankr.com/avalanche"),
      apply_token_env({"USDT": "0x9702230A8Ea53601f5cD2dc00fDBc13d4dF4A8c7", "USDC": "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E"},
                      {"USDT": "AVAX_USDT"}),
      rpc_env="RPC_AVAX"),
    N("fantom", "Fantom Opera", 250, "FTM", ("https://rpc.ftm.tools", "https://rpc.ankr.com/fantom"), rpc_env="RPC_FANTOM"),
    N("gnosis", "Gnosis", 100, "xDAI", ("https://rpc.gnosischain.com", "https://rpc.ankr.com/gnosis"), rpc_env="RPC_GNOSIS"),
    N("linea", "Linea", 59144, "ETH", ("https://rpc.linea.build",), rpc_env="RPC_LINEA"),
    N("zksync", "zkSync Era", 324, "ETH", ("https://mainnet.era.zksync.io",), rpc_env="RPC_ZKSYNC"),
    N("scroll", "Scroll", 534352, "ETH", ("https://rpc.scroll.io",), rpc_env="RPC_SCROLL"),
    N("mantle", "Mantle", 5000, "MNT", ("https://rpc.mantle.xyz",), rpc_env="RPC_MANTLE"),
    N("celo", "Celo", 42220, "CELO", ("https://forno.celo.org",), rpc_env="RPC_CELO"),
    N("opbnb", "opBNB", 204, "BNB", ("https://opbnb-mainnet-rpc.bnbchain.org",), rpc_env="RPC_OPBNB"),
    N("zkevm", "Polygon zkEVM", 1101, "ETH", ("https://zkevm-rpc.com",), rpc_env="RPC_ZKEVM"),
    N("moonbeam", "Moonbeam", 1284, "GLMR", ("https://rpc.api.moonbeam.network",), rpc_env="RPC_MOONBEAM"),
    # Solana has no EVM chain id; 101 is the id Phantom/CAIP use for mainnet-beta
    N("sol", "Solana", 101, "SOL",
      ("https://api.mainnet-beta.solana.com",),
      apply_token_env({"USDC": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", "USDT": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"},
                      {"USDC": "SOLANA_USDC", "USDT": "SOLANA_USDT"}),
      rpc_env="RPC_SOLANA", family="solana", native_decimals=9),
    # Tron mainnet chain id (0x2b6653dc); TRX has 6 decimals (sun)
    N("tron", "Tron", 728126428, "TRX",
      ("https://api.trongrid.io",),
      apply_token_env({"USDT": "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t"}, {"USDT": "TRON_USDT", "USDC": "TRON_USDC"}),
      rpc_env="RPC_TRON_FULLNODE", family="tron", native_decimals=6),
]


def network_keys() -> List[str]:
    return [n.key for n in NETWORKS]


def select_networks(only: Optional[Iterable[str]] = None,
                    networks: Optional[List[NetworkDescriptor]] = None) -> List[NetworkDescriptor]:
    nets = NETWORKS if networks is None else networks
    if not only:
        return list(nets)
    wanted = {k.strip().lower() for k in only if k and k.strip()}
    return [n for n in nets if n.key in wanted]


def candidate_urls(network: NetworkDescriptor, environ: Mapping[str, str] = os.environ) -> List[str]:
    """Preferred override (if set) first, then the static list, deduplicated."""
    out: List[str] = []
    preferred = (environ.get(network.rpc_env) or "").strip() if network.rpc_env else ""
    for url in ([preferred] if preferred else []) + list(network.rpc_urls):
        if url and url not in out:
            out.append(url)
    return out
