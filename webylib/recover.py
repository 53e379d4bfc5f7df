"""Asset-generic recovery of a wallet from its HD seed.

Each of the four chains is walked from depth 0 in ``gap_limit``-sized
batches. Every batch is sent to ``/api/v1/health_check``; entries the
server reports ``spent: false`` are recovered with the server's amount.
A batch with any known entry (spent or not) keeps the walk going; a chain
stops after a batch with no known entries once it has also passed the
depth the wallet remembers using. Server and transport errors abort the
whole recovery instead of being mistaken for the end of the history.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any

from webylib.hd import ChainCode, HdWallet
from webylib.recovery import (
    InvalidGapLimitError,
    RecoveredOutput,
    RecoveryDecodeError,
    RecoveryReport,
    RecoveryServerError,
)
from webylib.server_client import ClientError

__all__ = ["recover", "parse_decimal_to_wats", "sha256_hex_of_ascii"]

_SCALE = 100_000_000
_FRAC_DIGITS = 8
_I64_MAX = (1 << 63) - 1
_DIGITS = frozenset("0123456789")


def sha256_hex_of_ascii(s: str) -> str:
    """SHA256 over the bytes of ``s`` (not hex-decoded), as lower-case hex."""
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def _all_digits(text: str) -> bool:
    return all(c in _DIGITS for c in text)


def parse_decimal_to_wats(s: str) -> int:
    """Parse a decimal amount such as ``"195.3125"`` into wats (1e-8 units).

    Raises ValueError on malformed input, more than 8 fractional digits,
    or a value that does not fit a signed 64-bit integer.
    """
    text = s.strip()
    negative = text.startswith("-")
    body = text[1:] if negative else text
    whole_str, _, frac_str = body.partition(".")
    if not whole_str or not _all_digits(whole_str):
        raise ValueError(f"malformed whole part: {text!r}")
    if not _all_digits(frac_str):
        raise ValueError(f"malformed fractional part: {text!r}")
    if len(frac_str) > _FRAC_DIGITS:
        raise ValueError(f"more than 8 fractional digits: {text!r}")
    whole = int(whole_str)
    if whole > _I64_MAX:
        raise ValueError(f"whole part overflows i64: {text!r}")
    frac = int(frac_str.ljust(_FRAC_DIGITS, "0"))
    total = whole * _SCALE + frac
    if total > _I64_MAX:
        raise ValueError(f"amount overflows i64 wats: {text!r}")
    return -total if negative else total


def _parse_envelope(
    raw: str, chain: ChainCode, depth: int
) -> dict[str, tuple[bool | None, str | None]]:
    where = f"{chain.name}@{depth}"
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise RecoveryDecodeError(f"{where}: {exc}") from exc
    if not isinstance(data, dict):
        raise RecoveryDecodeError(f"{where}: expected a JSON object")
    if not isinstance(data.get("status", ""), str):
        raise RecoveryDecodeError(f"{where}: status is not a string")
    results = data.get("results")
    if not isinstance(results, dict):
        raise RecoveryDecodeError(f"{where}: missing field `results`")
    entries: dict[str, tuple[bool | None, str | None]] = {}
    for key, entry in results.items():
        if not isinstance(entry, dict):
            raise RecoveryDecodeError(f"{where}: entry {key!r} is not an object")
        spent = entry.get("spent")
        amount = entry.get("amount")
        if spent is not None and not isinstance(spent, bool):
            raise RecoveryDecodeError(f"{where}: entry {key!r} has non-boolean spent")
        if amount is not None and not isinstance(amount, str):
            raise RecoveryDecodeError(f"{where}: entry {key!r} has non-string amount")
        entries[key] = (spent, amount)
    return entries


def _scan_chain(
    client: Any,
    hd: HdWallet,
    asset: Any,
    namespace: Any,
    chain: ChainCode,
    gap_limit: int,
    reported_depth: int,
    report: RecoveryReport,
) -> None:
    current_depth = 0
    chain_max_used: int | None = None

    while True:
        by_hash: dict[str, tuple[str, int]] = {}
        publics: list[str] = []
        for depth in range(current_depth, current_depth + gap_limit):
            secret_hex = hd.derive_secret(chain, depth)
            publics.append(asset.public_token_for_lookup(secret_hex, namespace))
            by_hash[sha256_hex_of_ascii(secret_hex)] = (secret_hex, depth)

        try:
            raw = client.health_check(publics)
        except ClientError as exc:
            raise RecoveryServerError(chain.as_str(), current_depth, exc) from exc

        batch_had_hit = False
        for key, (spent, amount) in _parse_envelope(raw, chain, current_depth).items():
            digest = asset.extract_hash_from_response_key(key)
            if digest is None or digest not in by_hash:
                continue
            secret_hex, depth = by_hash[digest]
            if spent is not None:
                batch_had_hit = True
                chain_max_used = depth if chain_max_used is None else max(chain_max_used, depth)
            if spent is False:
                amount_wats: int | None = None
                if asset.SERVER_REPORTS_AMOUNT:
                    if amount is None:
                        raise RecoveryDecodeError(
                            f"{chain.name}@{depth}: server reported spent: false "
                            "without amount"
                        )
                    try:
                        amount_wats = parse_decimal_to_wats(amount)
                    except ValueError as exc:
                        raise RecoveryDecodeError(f"amount: {exc}") from exc
                report.recovered.append(
                    RecoveredOutput(
                        secret_hex=secret_hex,
                        hash=digest,
                        amount_wats=amount_wats,
                        chain=chain,
                        depth=depth,
                        namespace=namespace,
                    )
                )

        next_depth = current_depth + gap_limit
        if not batch_had_hit and next_depth > reported_depth:
            break
        current_depth = next_depth

    if chain_max_used is not None:
        report.last_used_depth[chain] = chain_max_used


def recover(
    client: Any,
    hd: HdWallet,
    asset: Any,
    namespace: Any,
    gap_limit: int,
    reported_depths: Mapping[ChainCode, int] | None = None,
) -> RecoveryReport:
    """Walk all four chains and collect every output the server reports unspent.

    ``client`` needs a ``health_check(public_tokens)`` method returning the raw
    response body; ``asset`` is a :class:`~webylib.asset.WalletAsset` class or
    instance. ``reported_depths`` widens the search on chains the wallet
    remembers using beyond the gap-limit reach.
    """
    if gap_limit <= 0:
        raise InvalidGapLimitError()
    reported = dict(reported_depths or {})
    report = RecoveryReport.empty()
    for chain in ChainCode:
        _scan_chain(
            client,
            hd,
            asset,
            namespace,
            chain,
            gap_limit,
            reported.get(chain, 0),
            report,
        )
    return report