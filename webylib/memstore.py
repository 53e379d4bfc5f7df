"""In-memory implementation of the wallet store."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Any

from webylib.store import BackendError, ConstraintError, Store

__all__ = ["UnspentEntry", "SpentHashEntry", "MemState", "MemStore"]

_EPOCH_ISO = "1970-01-01T00:00:00Z"


def _now_iso() -> str:
    # Timestamp granularity does not matter for the in-memory backend.
    return _EPOCH_ISO


@dataclass
class UnspentEntry:
    """One output the wallet has seen; ``spent`` flips after it is consumed."""

    secret_hash: bytes
    secret: str
    amount: int
    created_at: str
    spent: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "secret_hash": list(self.secret_hash),
            "secret": self.secret,
            "amount": self.amount,
            "created_at": self.created_at,
            "spent": self.spent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UnspentEntry:
        return cls(
            secret_hash=bytes(data["secret_hash"]),
            secret=str(data["secret"]),
            amount=int(data["amount"]),
            created_at=str(data["created_at"]),
            spent=bool(data["spent"]),
        )


@dataclass
class SpentHashEntry:
    """A hash recorded as already spent, with the time it was recorded."""

    hash: bytes
    spent_at: str

    def to_dict(self) -> dict[str, Any]:
        return {"hash": list(self.hash), "spent_at": self.spent_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SpentHashEntry:
        return cls(hash=bytes(data["hash"]), spent_at=str(data["spent_at"]))


@dataclass
class MemState:
    """Plain-data wallet state: the JSON on-disk shape and the unit of rollback."""

    meta: dict[str, str] = field(default_factory=dict)
    depths: dict[str, int] = field(default_factory=dict)
    unspent: list[UnspentEntry] = field(default_factory=list)
    spent_hashes: list[SpentHashEntry] = field(default_factory=list)

    def copy(self) -> MemState:
        """Independent copy of this state."""
        return MemState(
            meta=dict(self.meta),
            depths=dict(self.depths),
            unspent=[replace(e) for e in self.unspent],
            spent_hashes=[replace(e) for e in self.spent_hashes],
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation."""
        return {
            "meta": dict(self.meta),
            "depths": dict(self.depths),
            "unspent": [e.to_dict() for e in self.unspent],
            "spent_hashes": [e.to_dict() for e in self.spent_hashes],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemState:
        """Build a state from its JSON representation."""
        return cls(
            meta={str(k): str(v) for k, v in data["meta"].items()},
            depths={str(k): int(v) for k, v in data["depths"].items()},
            unspent=[UnspentEntry.from_dict(e) for e in data["unspent"]],
            spent_hashes=[SpentHashEntry.from_dict(e) for e in data["spent_hashes"]],
        )


class MemStore(Store):
    """Pure in-memory store."""

    def __init__(self, state: MemState | None = None) -> None:
        self._state = state if state is not None else MemState()
        self._lock = threading.Lock()

    def snapshot(self) -> MemState:
        """Copy of the current state."""
        with self._lock:
            return self._state.copy()

    def get_meta(self, key: str) -> str | None:
        with self._lock:
            return self._state.meta.get(key)

    def set_meta(self, key: str, value: str) -> None:
        with self._lock:
            self._state.meta[key] = value

    def get_all_meta(self) -> dict[str, str]:
        with self._lock:
            return dict(self._state.meta)

    def insert_output(self, secret_hash: bytes, secret: str, amount: int) -> None:
        secret_hash = bytes(secret_hash)
        with self._lock:
            if any(e.secret_hash == secret_hash for e in self._state.unspent):
                raise ConstraintError(
                    f"secret_hash already present: {secret_hash.hex()}"
                )
            self._state.unspent.append(
                UnspentEntry(secret_hash, secret, amount, _now_iso())
            )

    def mark_spent(self, secret_hash: bytes) -> None:
        secret_hash = bytes(secret_hash)
        with self._lock:
            for entry in self._state.unspent:
                if entry.secret_hash == secret_hash:
                    entry.spent = True

    def insert_spent_hash(self, digest: bytes) -> None:
        digest = bytes(digest)
        with self._lock:
            if not any(e.hash == digest for e in self._state.spent_hashes):
                self._state.spent_hashes.append(SpentHashEntry(digest, _now_iso()))

    def update_output_amount(self, secret_hash: bytes, new_amount: int) -> None:
        secret_hash = bytes(secret_hash)
        with self._lock:
            for entry in self._state.unspent:
                if entry.secret_hash == secret_hash and not entry.spent:
                    entry.amount = new_amount

    def get_unspent(self) -> list[tuple[str, int]]:
        with self._lock:
            rows = [(e.secret, e.amount) for e in self._state.unspent if not e.spent]
        return sorted(rows, key=lambda row: row[1], reverse=True)

    def get_unspent_full(self) -> list[tuple[str, int, str]]:
        with self._lock:
            return [
                (e.secret, e.amount, e.created_at)
                for e in self._state.unspent
                if not e.spent
            ]

    def get_all_outputs(self) -> list[tuple[str, int, str, int]]:
        with self._lock:
            return [
                (e.secret, e.amount, e.created_at, int(e.spent))
                for e in self._state.unspent
            ]

    def get_spent_hashes_with_time(self) -> list[tuple[bytes, str]]:
        with self._lock:
            return [(e.hash, e.spent_at) for e in self._state.spent_hashes]

    def count_outputs(self) -> int:
        with self._lock:
            return len(self._state.unspent)

    def count_unspent(self) -> int:
        with self._lock:
            return sum(1 for e in self._state.unspent if not e.spent)

    def count_spent_hashes(self) -> int:
        with self._lock:
            return len(self._state.spent_hashes)

    def sum_unspent(self) -> int:
        with self._lock:
            return sum(e.amount for e in self._state.unspent if not e.spent)

    def get_depth(self, chain: str) -> int:
        with self._lock:
            return self._state.depths.get(chain, 0)

    def set_depth(self, chain: str, depth: int) -> None:
        if depth < 0:
            raise BackendError(f"depth must be non-negative: {depth}")
        with self._lock:
            self._state.depths[chain] = depth

    def get_all_depths(self) -> dict[str, int]:
        with self._lock:
            return dict(self._state.depths)

    def clear_all(self) -> None:
        with self._lock:
            self._state = MemState()

    @contextmanager
    def atomic(self) -> Iterator[MemStore]:
        """Yield this store; restore the prior state if the block raises."""
        saved = self.snapshot()
        try:
            yield self
        except BaseException:
            with self._lock:
                self._state = saved
            raise