import json

import pytest

from wallet_config import (
    address_family,
    canonical_address,
    is_valid_email,
    load_wallets,
    normalize_entries,
    parse_address_line,
    read_address_file,
    wallets_from_json,
)

USDT_LOWER = "0xdac17f958d2ee523a2206206994597c13d831ec7"
USDT_CHECKSUM = "0xdAC17F958D2ee523a2206206994597C13D831ec7"
USDC_CHECKSUM = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
SOL_ADDR = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
TRON_ADDR = "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t"


class TestCanonicalAddress:

    def test_evm_is_checksummed(self):
        assert canonical_address(USDT_LOWER) == USDT_CHECKSUM
        assert canonical_address(f"  {USDT_CHECKSUM} ") == USDT_CHECKSUM

    def test_solana_kept_as_is(self):
        assert canonical_address(SOL_ADDR) == SOL_ADDR
        assert address_family(SOL_ADDR) == "solana"

    def test_tron_kept_as_is(self):
        assert canonical_address(f" {TRON_ADDR} ") == TRON_ADDR
        assert address_family(TRON_ADDR) == "tron"
        assert address_family(USDT_CHECKSUM) == "evm"

    def test_tron_bad_checksum_rejected(self):
        assert canonical_address(TRON_ADDR[:-1] + "u") is None

    @pytest.mark.parametrize("bad", ["", "hello", "0x1234", USDT_LOWER[:-1] + "z", None, 42])
    def test_invalid(self, bad):
        assert canonical_address(bad) is None


class TestParseAddressLine:

    def test_plain(self):
        assert parse_address_line(USDT_LOWER) == {"address": USDT_CHECKSUM, "label": ""}

    def test_address_then_label(self):
        assert parse_address_line(f"{USDT_LOWER}, cold storage") == {"address": USDT_CHECKSUM, "label": "cold storage"}

    def test_label_then_address(self):
        assert parse_address_line(f"exodus,{USDT_LOWER}") == {"address": USDT_CHECKSUM, "label": "exodus"}

    def test_whitespace_tokens(self):
        assert parse_address_line(f"my hot {USDT_LOWER} wallet") == {"address": USDT_CHECKSUM, "label": "my hot wallet"}

    def test_garbage(self):
        assert parse_address_line("nothing to see") is None


def test_is_valid_email():
    assert is_valid_email("a@example.com")
    assert not is_valid_email("a@localhost")
    assert not is_valid_email("nope")
    assert not is_valid_email(None)


def test_read_address_file_skips_comments(tmp_path):
    path = tmp_path / "wallet-addresses"
    path.write_text(f"# header\n// note\n; also\n\n{USDT_LOWER},main\nnot an address\n", encoding="utf-8")

    assert read_address_file(str(path)) == [{"address": USDT_CHECKSUM, "label": "main"}]


def test_read_address_file_missing(tmp_path):
    assert read_address_file(str(tmp_path / "missing")) == []


class TestWalletsJson:

    def test_user_email_is_fallback(self):
        data = [{"user": "alex", "email": "alex@example.com", "wallets": [
            {"label": "exodus", "address": USDT_LOWER},
            {"label": "ledger", "address": USDC_CHECKSUM, "email": "ledger@example.com"},
            {"label": "broken", "address": "0xnope"},
        ]}]

        out = wallets_from_json(data)

        assert out == [
            {"address": USDT_CHECKSUM, "label": "exodus", "user": "alex", "email": "alex@example.com"},
            {"address": USDC_CHECKSUM, "label": "ledger", "user": "alex", "email": "ledger@example.com"},
        ]

    def test_root_must_be_list(self):
        with pytest.raises(ValueError):
            wallets_from_json({"wallets": []})


def test_normalize_first_non_empty_wins():
    entries = normalize_entries([
        f"{USDT_LOWER},first",
        {"address": USDT_CHECKSUM, "label": "second", "user": "alex"},
        {"address": USDT_LOWER, "email": "a@example.com"},
        "garbage",
    ])

    assert len(entries) == 1
    e = entries[0]
    assert (e.address, e.label, e.user, e.email) == (USDT_CHECKSUM, "first", "alex", "a@example.com")


def test_load_wallets_merges_sources(tmp_path):
    (tmp_path / "wallet-addresses").write_text(f"{USDC_CHECKSUM}\n", encoding="utf-8")
    (tmp_path / "wallets.json").write_text(json.dumps([
        {"user": "alex", "wallets": [{"label": "exodus", "address": USDC_CHECKSUM}]},
    ]), encoding="utf-8")

    entries = load_wallets([USDT_LOWER], str(tmp_path / "wallet-addresses"), str(tmp_path / "wallets.json"))

    assert [e.address for e in entries] == [USDT_CHECKSUM, USDC_CHECKSUM]
    assert entries[1].label == "exodus" and entries[1].user == "alex"


def test_load_wallets_tolerates_bad_json(tmp_path):
    (tmp_path / "wallets.json").write_text("{not json", encoding="utf-8")

    assert load_wallets((), str(tmp_path / "none"), str(tmp_path / "wallets.json")) == []
