"""In-memory store that persists its whole state to a JSON file."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from webylib.memstore import MemState, MemStore
from webylib.store import BackendError, Store

__all__ = ["JsonStore"]


def _parse_state(text: str | bytes) -> MemState:
    try:
        return MemState.from_dict(json.loads(text))
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise BackendError(f"parse: {exc}") from exc


class JsonStore(Store):
    """A MemStore whose every mutation flushes the full state to ``path``.

    With ``path=None`` nothing is written; use :meth:`to_json` to get the state.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._inner = MemStore()
        self._path = Path(path) if path is not None else None

    @classmethod
    def open(cls, path: str | Path) -> JsonStore:
        """Load from ``path`` if it exists, otherwise start empty."""
        path = Path(path)
        store = cls(path)
        if path.exists():
            try:
                raw = path.read_bytes()
            except OSError as exc:
                raise BackendError(f"read: {exc}") from exc
            store._inner = MemStore(_parse_state(raw))
        return store

    @classmethod
    def from_json(cls, text: str, path: str | Path | None = None) -> JsonStore:
        """Build a store from a JSON string."""
        store = cls(path)
        store._inner = MemStore(_parse_state(text))
        return store

    @property
    def path(self) -> Path | None:
        """File the state is flushed to, if any."""
        return self._path

    def to_json(self) -> str:
        """Serialise the current state to a JSON string."""
        try:
            return json.dumps(self._inner.snapshot().to_dict())
        except (TypeError, ValueError) as exc:
            raise BackendError(f"encode: {exc}") from exc

    def _flush(self) -> None:
        if self._path is None:
            return
        text = self.to_json()
        parent = self._path.parent
        if str(parent) not in ("", "."):
            try:
                parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise BackendError(f"mkdir: {exc}") from exc
        try:
            self._path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise BackendError(f"write: {exc}") from exc

    def get_meta(self, key: str) -> str | None:
        return self._inner.get_meta(key)

    def set_meta(self, key: str, value: str) -> None:
        self._inner.set_meta(key, value)
        self._flush()

    def get_all_meta(self) -> dict[str, str]:
        return self._inner.get_all_meta()

    def insert_output(self, secret_hash: bytes, secret: str, amount: int) -> None:
        self._inner.insert_output(secret_hash, secret, amount)
        self._flush()

    def mark_spent(self, secret_hash: bytes) -> None:
        self._inner.mark_spent(secret_hash)
        self._flush()

    def insert_spent_hash(self, digest: bytes) -> None:
        self._inner.insert_spent_hash(digest)
        self._flush()

    def update_output_amount(self, secret_hash: bytes, new_amount: int) -> None:
        self._inner.update_output_amount(secret_hash, new_amount)
        self._flush()

    def get_unspent(self) -> list[tuple[str, int]]:
        return self._inner.get_unspent()

    def get_unspent_full(self) -> list[tuple[str, int, str]]:
        return self._inner.get_unspent_full()

    def get_all_outputs(self) -> list[tuple[str, int, str, int]]:
        return self._inner.get_all_outputs()

    def get_spent_hashes_with_time(self) -> list[tuple[bytes, str]]:
        return self._inner.get_spent_hashes_with_time()

    def count_outputs(self) -> int:
        return self._inner.count_outputs()

    def count_unspent(self) -> int:
        return self._inner.count_unspent()

    def count_spent_hashes(self) -> int:
        return self._inner.count_spent_hashes()

    def sum_unspent(self) -> int:
        return self._inner.sum_unspent()

    def get_depth(self, chain: str) -> int:
        return self._inner.get_depth(chain)

    def set_depth(self, chain: str, depth: int) -> None:
        self._inner.set_depth(chain, depth)
        self._flush()

    def get_all_depths(self) -> dict[str, int]:
        return self._inner.get_all_depths()

    def clear_all(self) -> None:
        self._inner.clear_all()
        self._flush()

    @contextmanager
    def atomic(self) -> Iterator[Store]:
        """Run a block of changes; write once on success, roll back on error."""
        with self._inner.atomic() as inner:
            yield inner
        self._flush()