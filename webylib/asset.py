"""The wallet's view of an asset family.

Wallet operations are written once and parameterised over a
:class:`WalletAsset`. The asset only has to say how to render a public
token for a ``/api/v1/health_check`` lookup and how to pull the hash back
out of a server response key.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar

from webylib.hd import ChainCode

__all__ = ["ChainCode", "IssuedNamespace", "WalletAsset"]

_ASCII_LOWER = str.maketrans(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz"
)


@dataclass(frozen=True)
class IssuedNamespace:
    """Storage and wire partition for issued assets.

    A contract or series identifier paired with the issuer's fingerprint.
    The fingerprint is normalised to lower-case ASCII hex.
    """

    contract_id: str
    issuer_fp: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "issuer_fp", self.issuer_fp.translate(_ASCII_LOWER))


class WalletAsset(ABC):
    """An asset family as wallet operations see it.

    Subclasses set :attr:`NAME` and implement the two class methods.
    :attr:`SERVER_REPORTS_AMOUNT` says whether the server's health-check
    response carries an ``amount`` for known tokens of this asset.
    """

    NAME: ClassVar[str] = ""
    SERVER_REPORTS_AMOUNT: ClassVar[bool] = True

    @classmethod
    @abstractmethod
    def public_token_for_lookup(cls, secret_hex: str, namespace: Any) -> str:
        """Render the public-form token a health-check lookup sends for ``secret_hex``."""

    @classmethod
    @abstractmethod
    def extract_hash_from_response_key(cls, key: str) -> str | None:
        """Return the 64-character hash hex in a response key, or ``None`` if it does not fit."""