"""Hierarchical derivation of wallet secrets over four fixed chains.

The derivation is wire-frozen::

    tag    = SHA256("webcashwalletv1")
    secret = SHA256(tag || tag || master_secret || chain_be64 || depth_be64)

A 32-byte master secret together with a ``(chain, depth)`` pair always
yields the same 32-byte derived secret.
"""

from __future__ import annotations

import hashlib
import re
import secrets
from enum import IntEnum

__all__ = ["HdError", "ChainCode", "HdWallet", "HDWallet"]

_TAG = hashlib.sha256(b"webcashwalletv1").digest()
_HEX_RE = re.compile(r"[0-9a-fA-F]*")
_SECRET_LEN = 32
_U64_MAX = (1 << 64) - 1


class HdError(ValueError):
    """Raised when a master secret is malformed."""


class ChainCode(IntEnum):
    """The four chain partitions; the numeric values are hashed on the wire."""

    RECEIVE = 0
    PAY = 1
    CHANGE = 2
    MINING = 3

    def as_u64(self) -> int:
        """Numeric chain code as it goes onto the wire."""
        return int(self)

    @classmethod
    def from_u64(cls, n: int) -> ChainCode | None:
        """Parse a numeric chain code; ``None`` for values outside 0-3."""
        try:
            return cls(n)
        except ValueError:
            return None

    def as_str(self) -> str:
        """Canonical upper-case name used as the chain-depth key."""
        return self.name


class HdWallet:
    """HD wallet over a 32-byte master secret."""

    __slots__ = ("_master_secret",)

    def __init__(self, master_secret: bytes) -> None:
        master_secret = bytes(master_secret)
        if len(master_secret) != _SECRET_LEN:
            raise HdError(
                f"invalid master secret hex: expected {_SECRET_LEN} bytes, "
                f"got {len(master_secret)}"
            )
        self._master_secret = master_secret

    @classmethod
    def from_master_secret(cls, master_secret: bytes) -> HdWallet:
        """Build from a 32-byte master secret."""
        return cls(master_secret)

    @classmethod
    def from_hex(cls, hex_str: str) -> HdWallet:
        """Build from a 64-character hex string (surrounding whitespace ignored)."""
        text = hex_str.strip()
        if not _HEX_RE.fullmatch(text):
            raise HdError("invalid master secret hex: decode: invalid character")
        if len(text) % 2:
            raise HdError("invalid master secret hex: decode: odd length")
        raw = bytes.fromhex(text)
        if len(raw) != _SECRET_LEN:
            raise HdError(
                f"invalid master secret hex: expected {_SECRET_LEN} bytes, got {len(raw)}"
            )
        return cls(raw)

    @classmethod
    def generate(cls) -> HdWallet:
        """Create a wallet with a fresh random master secret."""
        return cls(secrets.token_bytes(_SECRET_LEN))

    @property
    def master_secret(self) -> bytes:
        """Raw master secret bytes (sensitive)."""
        return self._master_secret

    @property
    def master_secret_hex(self) -> str:
        """Master secret as lower-case hex (for backup; sensitive)."""
        return self._master_secret.hex()

    def derive_secret(self, chain: ChainCode, depth: int) -> str:
        """Derive the secret at ``(chain, depth)`` as 64-character hex."""
        chain = ChainCode(chain)
        if not 0 <= depth <= _U64_MAX:
            raise ValueError(f"depth out of range: {depth}")
        h = hashlib.sha256()
        h.update(_TAG)
        h.update(_TAG)
        h.update(self._master_secret)
        h.update(chain.as_u64().to_bytes(8, "big"))
        h.update(depth.to_bytes(8, "big"))
        return h.hexdigest()

    def __repr__(self) -> str:
        return "HdWallet(<redacted>)"


HDWallet = HdWallet