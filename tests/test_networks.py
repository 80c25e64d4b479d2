from networks import NETWORKS, apply_token_env, select_networks


def test_env_replaces_default_token():
    tokens = apply_token_env({"USDT": "native", "USDC": "usdc"}, {"USDT": "AVAX_USDT"},
                             {"AVAX_USDT": "0xde3A24028580884448a5397872046a019649b084"})

    assert tokens == {"USDT": "0xde3A24028580884448a5397872046a019649b084", "USDC": "usdc"}


def test_defaults_kept_without_env():
    assert apply_token_env({"USDT": "native"}, {"USDT": "AVAX_USDT"}, {}) == {"USDT": "native"}


def test_optional_token_only_when_set():
    names = {"USDT": "TRON_USDT", "USDC": "TRON_USDC"}

    assert apply_token_env({"USDT": "T1"}, names, {}) == {"USDT": "T1"}
    assert apply_token_env({"USDT": "T1"}, names, {"TRON_USDC": " T2 "}) == {"USDT": "T1", "USDC": "T2"}


def test_directory_covers_all_families():
    families = {n.family for n in NETWORKS}
    assert families == {"evm", "solana", "tron"}

    [tron] = select_networks(["tron"])
    assert tron.native_decimals == 6
    assert tron.rpc_env == "RPC_TRON_FULLNODE"


def test_keys_and_chain_ids_unique():
    assert len({n.key for n in NETWORKS}) == len(NETWORKS)
    assert len({n.chain_id for n in NETWORKS}) == len(NETWORKS)
