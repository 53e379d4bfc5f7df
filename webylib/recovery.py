"""Result and error types for wallet recovery."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from webylib.hd import ChainCode

__all__ = [
    "RecoveredOutput",
    "RecoveryReport",
    "RecoveryError",
    "RecoveryServerError",
    "RecoveryDecodeError",
    "InvalidGapLimitError",
]


@dataclass(frozen=True)
class RecoveredOutput:
    """One token the server reported as unspent under the wallet's seed.

    ``amount_wats`` is ``None`` for assets without amount semantics.
    """

    secret_hex: str
    hash: str
    amount_wats: int | None
    chain: ChainCode
    depth: int
    namespace: Any


@dataclass
class RecoveryReport:
    """Outcome of one recovery run.

    ``recovered`` lists unspent outputs in encounter order;
    ``last_used_depth`` maps each chain with hits to its highest used depth.
    """

    recovered: list[RecoveredOutput] = field(default_factory=list)
    last_used_depth: dict[ChainCode, int] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> RecoveryReport:
        """A report with nothing recovered."""
        return cls()

    def count(self) -> int:
        """Number of recovered outputs."""
        return len(self.recovered)

    def total_wats(self) -> int:
        """Sum of recovered amounts; outputs without an amount count as zero."""
        return sum(o.amount_wats for o in self.recovered if o.amount_wats is not None)


class RecoveryError(Exception):
    """Base class for recovery failures."""


class RecoveryServerError(RecoveryError):
    """A health-check request failed; recovery stops rather than truncating."""

    def __init__(self, chain: str, depth: int, source: Exception) -> None:
        super().__init__(f"recovery aborted on {chain} at depth {depth}: {source}")
        self.chain = chain
        self.depth = depth
        self.source = source


class RecoveryDecodeError(RecoveryError):
    """The server answered, but its response did not have the expected shape."""

    def __init__(self, message: str) -> None:
        super().__init__(f"malformed health_check response: {message}")
        self.detail = message


class InvalidGapLimitError(RecoveryError, ValueError):
    """The gap limit was not positive."""

    def __init__(self) -> None:
        super().__init__("gap_limit must be > 0")