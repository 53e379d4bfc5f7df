"""Storage interface shared by every wallet backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager


class StoreError(Exception):
    """Base class for storage failures."""

    _prefix = "storage error"

    def __str__(self) -> str:
        return f"{self._prefix}: {super().__str__()}"


class BackendError(StoreError):
    """The underlying backend (database, filesystem, ...) reported an error."""

    _prefix = "storage backend error"


class NotFoundError(StoreError):
    """A requested key or row does not exist."""

    _prefix = "not found"


class ConstraintError(StoreError):
    """A write was rejected by a uniqueness or similar constraint."""

    _prefix = "constraint violation"


class Store(ABC):
    """Minimal storage interface for the wallet engine."""

    @abstractmethod
    def get_meta(self, key: str) -> str | None:
        """Return the metadata value for ``key``, or ``None``."""

    @abstractmethod
    def set_meta(self, key: str, value: str) -> None:
        """Insert or overwrite a metadata value."""

    @abstractmethod
    def get_all_meta(self) -> dict[str, str]:
        """Return every metadata entry."""

    @abstractmethod
    def insert_output(self, secret_hash: bytes, secret: str, amount: int) -> None:
        """Record a new unspent output; raise ConstraintError on a duplicate hash."""

    @abstractmethod
    def mark_spent(self, secret_hash: bytes) -> None:
        """Mark the output with ``secret_hash`` as spent."""

    @abstractmethod
    def insert_spent_hash(self, digest: bytes) -> None:
        """Record a spent hash; repeated inserts are ignored."""

    @abstractmethod
    def update_output_amount(self, secret_hash: bytes, new_amount: int) -> None:
        """Change the amount of an unspent output."""

    @abstractmethod
    def get_unspent(self) -> list[tuple[str, int]]:
        """Return ``(secret, amount)`` of unspent outputs, largest amount first."""

    @abstractmethod
    def get_unspent_full(self) -> list[tuple[str, int, str]]:
        """Return ``(secret, amount, created_at)`` of unspent outputs."""

    @abstractmethod
    def get_all_outputs(self) -> list[tuple[str, int, str, int]]:
        """Return ``(secret, amount, created_at, spent)`` of every output."""

    @abstractmethod
    def get_spent_hashes_with_time(self) -> list[tuple[bytes, str]]:
        """Return ``(hash, spent_at)`` of every recorded spent hash."""

    @abstractmethod
    def count_outputs(self) -> int:
        """Number of outputs, spent or not."""

    @abstractmethod
    def count_unspent(self) -> int:
        """Number of unspent outputs."""

    @abstractmethod
    def count_spent_hashes(self) -> int:
        """Number of recorded spent hashes."""

    @abstractmethod
    def sum_unspent(self) -> int:
        """Sum of unspent output amounts."""

    @abstractmethod
    def get_depth(self, chain: str) -> int:
        """Depth recorded for ``chain``; 0 when absent."""

    @abstractmethod
    def set_depth(self, chain: str, depth: int) -> None:
        """Insert or overwrite the depth for ``chain``."""

    @abstractmethod
    def get_all_depths(self) -> dict[str, int]:
        """Return every recorded chain depth."""

    @abstractmethod
    def clear_all(self) -> None:
        """Remove all metadata, outputs, spent hashes and depths."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager[Store]:
        """Context manager yielding a store; changes are rolled back if the block raises."""