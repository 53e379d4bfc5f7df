import json

import pytest

from webylib.asset import IssuedNamespace, WalletAsset
from webylib.hd import ChainCode, HdWallet
from webylib.recover import parse_decimal_to_wats, recover, sha256_hex_of_ascii
from webylib.recovery import (
    InvalidGapLimitError,
    RecoveryDecodeError,
    RecoveryServerError,
)
from webylib.server_client import Client, TransportError


class DemoAsset(WalletAsset):
    NAME = "demo"

    @classmethod
    def public_token_for_lookup(cls, secret_hex, namespace):
        return f"e1:public:{sha256_hex_of_ascii(secret_hex)}"

    @classmethod
    def extract_hash_from_response_key(cls, key):
        _, sep, rest = key.partition(":public:")
        if not sep or len(rest) != 64:
            return None
        return rest


class CollectibleAsset(DemoAsset):
    NAME = "collectible"
    SERVER_REPORTS_AMOUNT = False


class FakeServer:
    def __init__(self, entries=None, raw=None, extra=None):
        self.entries = entries or {}
        self.raw = raw
        self.extra = extra or {}
        self.calls = []

    def health_check(self, public_tokens):
        self.calls.append(list(public_tokens))
        if self.raw is not None:
            return self.raw
        results = {}
        for token in public_tokens:
            digest = DemoAsset.extract_hash_from_response_key(token)
            results[token] = self.entries.get(digest, {"spent": None, "amount": None})
        results.update(self.extra)
        return json.dumps({"status": "success", "results": results})


@pytest.fixture
def wallet():
    return HdWallet.from_master_secret(bytes([0x42]) * 32)


def _hash_at(wallet, chain, depth):
    return sha256_hex_of_ascii(wallet.derive_secret(chain, depth))


def _depths_in_call(wallet, chain, tokens, upto=100):
    wanted = {f"e1:public:{_hash_at(wallet, chain, d)}": d for d in range(upto)}
    return sorted(wanted[t] for t in tokens if t in wanted)


def test_parse_decimal_handles_production_shapes():
    assert parse_decimal_to_wats("1") == 100_000_000
    assert parse_decimal_to_wats("0.4") == 40_000_000
    assert parse_decimal_to_wats("195.3125") == 19_531_250_000
    assert parse_decimal_to_wats("0") == 0
    assert parse_decimal_to_wats("0.00000001") == 1


@pytest.mark.parametrize("text", ["", "abc", "1.234567890", ".5", "-", "1.2x"])
def test_parse_decimal_rejects_garbage(text):
    with pytest.raises(ValueError):
        parse_decimal_to_wats(text)


def test_parse_decimal_negative_and_overflow():
    assert parse_decimal_to_wats("-1") == -100_000_000
    with pytest.raises(ValueError):
        parse_decimal_to_wats("100000000000")


def test_sha256_hashes_ascii_bytes():
    s = "abcd1234abcd1234abcd1234abcd1234abcd1234abcd1234abcd1234abcd1234"
    h = sha256_hex_of_ascii(s)
    assert len(h) == 64
    assert sha256_hex_of_ascii("abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


def test_zero_gap_limit_rejected(wallet):
    with pytest.raises(InvalidGapLimitError):
        recover(FakeServer(), wallet, DemoAsset, None, 0, {})


def test_empty_history_scans_each_chain_once(wallet):
    server = FakeServer()
    report = recover(server, wallet, DemoAsset, None, 5, {})
    assert report.count() == 0
    assert report.last_used_depth == {}
    assert len(server.calls) == 4
    assert all(len(call) == 5 for call in server.calls)
    assert _depths_in_call(wallet, ChainCode.RECEIVE, server.calls[0]) == [0, 1, 2, 3, 4]
    assert _depths_in_call(wallet, ChainCode.MINING, server.calls[3]) == [0, 1, 2, 3, 4]


def test_recovers_unspent_output(wallet):
    digest = _hash_at(wallet, ChainCode.RECEIVE, 2)
    server = FakeServer({digest: {"spent": False, "amount": "0.4"}})
    report = recover(server, wallet, DemoAsset, None, 5)
    assert report.count() == 1
    out = report.recovered[0]
    assert out.secret_hex == wallet.derive_secret(ChainCode.RECEIVE, 2)
    assert out.hash == digest
    assert out.amount_wats == 40_000_000
    assert out.chain is ChainCode.RECEIVE
    assert out.depth == 2
    assert report.last_used_depth == {ChainCode.RECEIVE: 2}
    assert report.total_wats() == 40_000_000
    # Receive needs a second window after the hit; the others stop at once.
    assert len(server.calls) == 5
    assert _depths_in_call(wallet, ChainCode.RECEIVE, server.calls[1]) == [5, 6, 7, 8, 9]


def test_spent_output_marks_depth_used_but_is_not_recovered(wallet):
    spent = _hash_at(wallet, ChainCode.PAY, 3)
    unspent = _hash_at(wallet, ChainCode.PAY, 6)
    server = FakeServer(
        {
            spent: {"spent": True, "amount": None},
            unspent: {"spent": False, "amount": "1"},
        }
    )
    report = recover(server, wallet, DemoAsset, None, 5)
    assert [o.depth for o in report.recovered] == [6]
    assert report.last_used_depth == {ChainCode.PAY: 6}
    assert report.total_wats() == 100_000_000


def test_reported_depth_widens_search(wallet):
    server = FakeServer()
    recover(server, wallet, DemoAsset, None, 5, {ChainCode.CHANGE: 12})
    change_calls = [
        c for c in server.calls if _depths_in_call(wallet, ChainCode.CHANGE, c)
    ]
    assert [_depths_in_call(wallet, ChainCode.CHANGE, c)[0] for c in change_calls] == [
        0,
        5,
        10,
    ]
    assert len(server.calls) == 6


def test_missing_amount_is_decode_error(wallet):
    digest = _hash_at(wallet, ChainCode.RECEIVE, 0)
    server = FakeServer({digest: {"spent": False}})
    with pytest.raises(RecoveryDecodeError, match="without amount"):
        recover(server, wallet, DemoAsset, None, 3)


def test_malformed_amount_is_decode_error(wallet):
    digest = _hash_at(wallet, ChainCode.RECEIVE, 0)
    server = FakeServer({digest: {"spent": False, "amount": "abc"}})
    with pytest.raises(RecoveryDecodeError, match="amount"):
        recover(server, wallet, DemoAsset, None, 3)


def test_asset_without_amounts_records_none(wallet):
    digest = _hash_at(wallet, ChainCode.MINING, 1)
    server = FakeServer({digest: {"spent": False}})
    report = recover(server, wallet, CollectibleAsset, None, 3)
    assert report.count() == 1
    assert report.recovered[0].amount_wats is None
    assert report.total_wats() == 0


def test_malformed_json_is_decode_error(wallet):
    with pytest.raises(RecoveryDecodeError):
        recover(FakeServer(raw="not json"), wallet, DemoAsset, None, 3)


def test_missing_results_is_decode_error(wallet):
    with pytest.raises(RecoveryDecodeError, match="results"):
        recover(FakeServer(raw='{"status": "ok"}'), wallet, DemoAsset, None, 3)


def test_unrelated_response_keys_are_ignored(wallet):
    server = FakeServer(
        extra={
            "garbage": {"spent": False, "amount": "1"},
            "e1:public:" + "0" * 64: {"spent": False, "amount": "1"},
        }
    )
    report = recover(server, wallet, DemoAsset, None, 2)
    assert report.count() == 0
    assert len(server.calls) == 4


def test_namespace_travels_with_outputs(wallet):
    ns = IssuedNamespace("series-1", "AB")
    digest = _hash_at(wallet, ChainCode.RECEIVE, 0)
    server = FakeServer({digest: {"spent": False, "amount": "2"}})
    report = recover(server, wallet, DemoAsset, ns, 4)
    assert report.recovered[0].namespace == ns


def test_transport_error_aborts_recovery(wallet):
    client = Client("http://127.0.0.1:1")
    with pytest.raises(RecoveryServerError) as info:
        recover(client, wallet, DemoAsset, None, 2)
    assert info.value.chain == "RECEIVE"
    assert info.value.depth == 0
    assert isinstance(info.value.source, TransportError)