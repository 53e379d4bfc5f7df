"""Asset-agnostic HTTP client for the webycash server family.

Every flavor speaks the same endpoint set (``/api/v1/replace``,
``/api/v1/health_check``, ``/api/v1/burn``, ``/api/v1/mining_report``,
``/api/v1/issue``, ``/api/v1/target``, ``/api/v1/stats``); only the token
wire format differs. The transport is a minimal blocking HTTP/1.1 client
over a plain TCP socket.
"""

from __future__ import annotations

import hashlib
import json
import socket
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

__all__ = [
    "HtlcLockRequest",
    "HtlcWitness",
    "HtlcLockEntry",
    "HtlcWitnessEntry",
    "ClientError",
    "HttpError",
    "TransportError",
    "EncodeError",
    "Client",
    "parse_response",
]

_READ_TIMEOUT_SECONDS = 15.0
_LEGALESE = {"terms": True}


def _sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class HtlcLockRequest:
    """Lock parameters for an output; the refund time is a delta from server-now."""

    committed_h_hex: str
    refund_after_seconds_from_now: int
    claim_owner_secret_hex: str
    refund_owner_secret_hex: str

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation."""
        return {
            "committed_h_hex": self.committed_h_hex,
            "refund_after_seconds_from_now": self.refund_after_seconds_from_now,
            "claim_owner_secret_hex": self.claim_owner_secret_hex,
            "refund_owner_secret_hex": self.refund_owner_secret_hex,
        }


@dataclass(frozen=True)
class HtlcWitness:
    """Claim-or-refund witness for a locked input."""

    output_owner_hash_hex: str
    provided_x_hex: str | None = None

    @classmethod
    def claim(cls, provided_x_hex: str, output_secret_hex: str) -> HtlcWitness:
        """Claim-path witness: the preimage plus the hash of the output secret."""
        return cls(
            output_owner_hash_hex=_sha256_hex(output_secret_hex),
            provided_x_hex=provided_x_hex,
        )

    @classmethod
    def refund(cls, output_secret_hex: str) -> HtlcWitness:
        """Refund-path witness: only the hash of the output secret."""
        return cls(output_owner_hash_hex=_sha256_hex(output_secret_hex))

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation; the preimage is omitted when absent."""
        data: dict[str, Any] = {}
        if self.provided_x_hex is not None:
            data["provided_x_hex"] = self.provided_x_hex
        data["output_owner_hash_hex"] = self.output_owner_hash_hex
        return data


@dataclass(frozen=True)
class HtlcLockEntry:
    """Pairs an index into ``new_webcashes`` with the lock to stamp on it."""

    output_index: int
    request: HtlcLockRequest

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation."""
        return {"output_index": self.output_index, "request": self.request.to_dict()}


@dataclass(frozen=True)
class HtlcWitnessEntry:
    """Pairs an index into ``webcashes`` with its witness."""

    input_index: int
    witness: HtlcWitness

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation."""
        return {"input_index": self.input_index, "witness": self.witness.to_dict()}


class ClientError(Exception):
    """Base class for failures talking to a server."""


class HttpError(ClientError):
    """The server answered with a non-2xx status."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"HTTP error: {status}: {body}")
        self.status = status
        self.body = body


class TransportError(ClientError):
    """Connecting, writing or reading failed before a status came back."""

    def __init__(self, message: str) -> None:
        super().__init__(f"transport error: {message}")
        self.detail = message


class EncodeError(ClientError):
    """The request body could not be encoded."""

    def __init__(self, message: str) -> None:
        super().__init__(f"body encode error: {message}")
        self.detail = message


def _encode_json(value: Any) -> str:
    try:
        return json.dumps(
            value, sort_keys=True, separators=(",", ":"), ensure_ascii=False
        )
    except (TypeError, ValueError) as exc:
        raise EncodeError(str(exc)) from exc


def parse_response(raw: str) -> tuple[int, str]:
    """Split a raw HTTP response into ``(status, body)``.

    The status is 0 when the status line is unreadable; the body is empty
    when there is no blank line separating it from the headers.
    """
    first_line = raw.split("\n", 1)[0].removesuffix("\r")
    parts = first_line.split()
    status = 0
    if len(parts) > 1:
        token = parts[1].removeprefix("+")
        if token.isascii() and token.isdigit() and int(token) <= 0xFFFF:
            status = int(token)
    index = raw.find("\r\n\r\n")
    body = "" if index < 0 else raw[index + 4 :]
    return status, body


def _split_host_port(host_port: str) -> tuple[str, int]:
    host, sep, port_text = host_port.rpartition(":")
    if not sep or not host or not (port_text.isascii() and port_text.isdigit()):
        raise OSError(f"invalid socket address: {host_port!r}")
    port = int(port_text)
    if port > 0xFFFF:
        raise OSError(f"invalid port: {port}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, port


def _http_send(
    url: str, method: str, body: bytes, extra: tuple[str, str] | None = None
) -> str:
    after = url.removeprefix("http://")
    host_port, sep, rest = after.partition("/")
    path = "/" + rest if sep else "/"
    host, port = _split_host_port(host_port)
    extra_header = ""
    if extra is not None and extra[1]:
        extra_header = f"{extra[0]}: {extra[1]}\r\n"
    head = (
        f"{method} {path} HTTP/1.1\r\n"
        f"Host: {host_port}\r\n"
        "Content-Type: application/json\r\n"
        f"Content-Length: {len(body)}\r\n"
        "Connection: close\r\n"
        f"{extra_header}\r\n"
    )
    with socket.create_connection((host, port), timeout=_READ_TIMEOUT_SECONDS) as sock:
        sock.sendall(head.encode("utf-8"))
        if body:
            sock.sendall(body)
        chunks = []
        while chunk := sock.recv(65536):
            chunks.append(chunk)
    return b"".join(chunks).decode("utf-8", errors="replace")


class Client:
    """HTTP client bound to one server base URL."""

    def __init__(self, base_url: str) -> None:
        self._base_url = base_url

    def __repr__(self) -> str:
        return f"Client({self._base_url!r})"

    @property
    def base_url(self) -> str:
        """The base URL exactly as given."""
        return self._base_url

    def endpoint(self, path: str) -> str:
        """Join ``path`` onto the base URL, dropping trailing slashes from the base."""
        return self._base_url.rstrip("/") + path

    def replace(self, inputs: Sequence[str], outputs: Sequence[str]) -> None:
        """``POST /api/v1/replace``: swap input tokens for output tokens."""
        body = {
            "webcashes": list(inputs),
            "new_webcashes": list(outputs),
            "legalese": _LEGALESE,
        }
        self._post(self.endpoint("/api/v1/replace"), _encode_json(body))

    def replace_with_htlc(
        self,
        inputs: Sequence[str],
        outputs: Sequence[str],
        htlc_locks: Sequence[HtlcLockEntry],
        htlc_witnesses: Sequence[HtlcWitnessEntry],
    ) -> None:
        """``POST /api/v1/replace`` with HTLC locks and witnesses attached."""
        body = {
            "webcashes": list(inputs),
            "new_webcashes": list(outputs),
            "legalese": _LEGALESE,
            "htlc_locks": [entry.to_dict() for entry in htlc_locks],
            "htlc_witnesses": [entry.to_dict() for entry in htlc_witnesses],
        }
        self._post(self.endpoint("/api/v1/replace"), _encode_json(body))

    def burn(self, secret_token: str) -> None:
        """``POST /api/v1/burn``: mark one secret permanently spent."""
        body = {"webcash": secret_token, "legalese": _LEGALESE}
        self._post(self.endpoint("/api/v1/burn"), _encode_json(body))

    def health_check(self, public_tokens: Sequence[str]) -> str:
        """``POST /api/v1/health_check`` with a bare array; returns the raw body."""
        return self._post(
            self.endpoint("/api/v1/health_check"), _encode_json(list(public_tokens))
        )

    def mining_report(self, preimage: str) -> None:
        """``POST /api/v1/mining_report``: submit a proof-of-work preimage."""
        body = {"preimage": preimage, "legalese": _LEGALESE}
        self._post(self.endpoint("/api/v1/mining_report"), _encode_json(body))

    def issue(self, body: bytes, sig_hex: str) -> None:
        """``POST /api/v1/issue`` with a detached issuer signature header."""
        try:
            text = bytes(body).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EncodeError(str(exc)) from exc
        self._post(
            self.endpoint("/api/v1/issue"), text, ("X-Issuer-Signature", sig_hex)
        )

    def target(self) -> str:
        """``GET /api/v1/target``: the current mining target."""
        return self._send(self.endpoint("/api/v1/target"), "GET", "")

    def stats(self) -> str:
        """``GET /api/v1/stats``: economy statistics."""
        return self._send(self.endpoint("/api/v1/stats"), "GET", "")

    def _post(
        self, url: str, body: str, extra: tuple[str, str] | None = None
    ) -> str:
        return self._send(url, "POST", body, extra)

    @staticmethod
    def _send(
        url: str, method: str, body: str, extra: tuple[str, str] | None = None
    ) -> str:
        try:
            raw = _http_send(url, method, body.encode("utf-8"), extra)
        except (OSError, UnicodeError) as exc:
            raise TransportError(str(exc)) from exc
        status, text = parse_response(raw)
        if not 200 <= status < 300:
            raise HttpError(status, text)
        return text