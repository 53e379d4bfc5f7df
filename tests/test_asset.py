import pytest

from webylib import hd
from webylib.asset import ChainCode, IssuedNamespace, WalletAsset


class DemoAsset(WalletAsset):
    NAME = "demo"

    @classmethod
    def public_token_for_lookup(cls, secret_hex, namespace):
        return f"e1:public:{secret_hex}:{namespace.contract_id}"

    @classmethod
    def extract_hash_from_response_key(cls, key):
        _, sep, rest = key.partition(":public:")
        if not sep:
            return None
        return rest.split(":", 1)[0]


class NoAmountAsset(DemoAsset):
    NAME = "no-amount"
    SERVER_REPORTS_AMOUNT = False


def test_issuer_fingerprint_is_lowercased():
    ns = IssuedNamespace("series-1", "ABCDEF0123")
    assert ns.issuer_fp == "abcdef0123"
    assert ns.contract_id == "series-1"


def test_namespace_equality_ignores_fingerprint_case():
    a = IssuedNamespace("c", "AbCd")
    b = IssuedNamespace("c", "abcd")
    assert a == b
    assert hash(a) == hash(b)
    assert len({a, b}) == 1


def test_namespace_is_immutable():
    ns = IssuedNamespace("c", "ab")
    with pytest.raises(AttributeError):
        ns.contract_id = "other"
    assert ns.contract_id == "c"
    assert ns.issuer_fp == "ab"


def test_non_ascii_fingerprint_characters_untouched():
    ns = IssuedNamespace("c", "ÄB")
    assert ns.issuer_fp == "Äb"


def test_wallet_asset_defaults_report_amount():
    assert WalletAsset.SERVER_REPORTS_AMOUNT is True
    assert DemoAsset.SERVER_REPORTS_AMOUNT is True
    assert NoAmountAsset.SERVER_REPORTS_AMOUNT is False
    ns = IssuedNamespace("c2", "AA")
    rendered = NoAmountAsset.public_token_for_lookup("b" * 64, ns)
    assert rendered == "e1:public:" + "b" * 64 + ":c2"


def test_incomplete_asset_cannot_be_instantiated():
    class Partial(WalletAsset):
        @classmethod
        def public_token_for_lookup(cls, secret_hex, namespace):
            return secret_hex

    with pytest.raises(TypeError):
        WalletAsset()
    with pytest.raises(TypeError):
        Partial()


def test_demo_asset_roundtrip_through_hooks():
    ns = IssuedNamespace("c1", "ff")
    rendered = DemoAsset.public_token_for_lookup("a" * 64, ns)
    assert DemoAsset.extract_hash_from_response_key(rendered) == "a" * 64
    assert DemoAsset.extract_hash_from_response_key("garbage") is None


def test_chain_code_is_reexported():
    assert ChainCode is hd.ChainCode
    assert ChainCode.MINING.as_u64() == 3