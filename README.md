# webylib

A Webcash wallet toolkit. It covers deterministic secret derivation, wallet storage, a small HTTP client for the webycash server family, and recovery of a wallet from its seed.

## Installation

```
pip install webylib
```

The library uses only the standard library. To run the tests, install the `test` extra (`pip install webylib[test]`).

## Deriving secrets

`webylib.hd.HdWallet` holds a 32-byte master secret. `derive_secret(chain, depth)` returns a 64-character hex string for a point on one of four chains: `RECEIVE`, `PAY`, `CHANGE` and `MINING`, the members of `webylib.hd.ChainCode`.

```python
from webylib.hd import ChainCode, HdWallet

wallet = HdWallet.generate()                         # fresh random seed
restored = HdWallet.from_hex(wallet.master_secret_hex)
derived = restored.derive_secret(ChainCode.RECEIVE, 0)
```

`master_secret` and `master_secret_hex` are read-only properties; treat their values as sensitive. Derivation uses this formula:

```
tag = SHA256("webcashwalletv1")
SHA256(tag || tag || master_secret || chain_be64 || depth_be64)
```

`from_hex` ignores surrounding whitespace and raises `HdError` (a `ValueError`) if the text is not hex or does not decode to 32 bytes. `ChainCode.from_u64(n)` returns `None` for values outside 0–3, and `ChainCode.as_str()` gives the upper-case chain name.

## Storage

Every backend implements the `webylib.store.Store` interface, which covers metadata, outputs, spent hashes and chain depths.

- `webylib.memstore.MemStore` keeps everything in memory.
- `webylib.jsonstore.JsonStore` is an in-memory store that writes its whole state to a JSON file after each change. `JsonStore.open(path)` loads an existing file; `from_json` and `to_json` convert to and from a string.
- `webylib.sqlitestore.SqliteStore` uses SQLite. Use `open(path)` for a file or `open_in_memory()` for a temporary database; it can also be used as a context manager that closes the connection.

```python
import hashlib

from webylib.sqlitestore import SqliteStore

store = SqliteStore.open_in_memory()
first = wallet.derive_secret(ChainCode.RECEIVE, 0)
second = wallet.derive_secret(ChainCode.RECEIVE, 1)
store.insert_output(hashlib.sha256(first.encode()).digest(), first, 100)
with store.atomic() as tx:
    tx.insert_output(hashlib.sha256(second.encode()).digest(), second, 250)
    tx.set_depth("RECEIVE", 2)
print(store.sum_unspent())   # 350
```

Make changes inside `atomic()` through the store it yields. If the block raises, all its changes are rolled back; `JsonStore` writes its file once, after the block succeeds.

`get_unspent()` lists unspent outputs largest amount first; `get_depth` returns 0 for a chain with no recorded depth; `insert_spent_hash` ignores repeats.

Errors are subclasses of `StoreError`:

- `ConstraintError` when an output's secret hash is already stored.
- `BackendError` for database, file or encoding failures.
- `NotFoundError` for missing records.

## Talking to a server

`webylib.server_client.Client` wraps these endpoints:

- `replace` and `replace_with_htlc` — `POST /api/v1/replace`
- `burn` — `POST /api/v1/burn`
- `health_check` — `POST /api/v1/health_check` (returns the raw body)
- `mining_report` — `POST /api/v1/mining_report`
- `issue` — `POST /api/v1/issue` with an `X-Issuer-Signature` header
- `target` — `GET /api/v1/target`
- `stats` — `GET /api/v1/stats`

```python
from webylib import ports
from webylib.server_client import Client

client = Client(ports.url(ports.SERVER_WEBCASH))   # http://localhost:8181
print(client.target())
```

Failures raise subclasses of `ClientError`:

- `HttpError` for a non-2xx status; it carries `status` and `body`.
- `TransportError` for connection, write or read failures.
- `EncodeError` when a request body cannot be encoded.

HTLC-locked replacements use `HtlcLockEntry` (with an `HtlcLockRequest`) and `HtlcWitnessEntry` (with an `HtlcWitness`, built by `HtlcWitness.claim` or `HtlcWitness.refund`). `parse_response(raw)` splits a raw HTTP response into status and body.

## Recovering a wallet

`webylib.recover.recover` walks all four chains in batches of `gap_limit` and asks the server's health check which derived secrets it knows. It returns a `webylib.recovery.RecoveryReport` with the unspent outputs found (`recovered`) and the highest used depth per chain (`last_used_depth`).

```python
from webylib.recover import recover

report = recover(client, wallet, asset, namespace, gap_limit=20, reported_depths={})
print(report.count(), report.total_wats())
```

`asset` is a `webylib.asset.WalletAsset` subclass (or instance) that defines how public lookup tokens are built and how hashes are read back from response keys. Issued assets can use `webylib.asset.IssuedNamespace` as their namespace. `reported_depths` widens the walk on chains the wallet remembers using.

Recovery never stops quietly partway through: server failures raise `RecoveryServerError`, malformed responses raise `RecoveryDecodeError`, and a gap limit below 1 raises `InvalidGapLimitError`. `parse_decimal_to_wats` and `sha256_hex_of_ascii` are available as helpers.

## What this package does not do

- It has no command-line tool; everything is used from Python.
- It ships no concrete `WalletAsset` flavors; callers supply their own.
- It has no higher-level wallet operations such as paying or inserting tokens, and recovery does not write its results to a store.
- The client speaks plain HTTP only; `https://` base URLs cannot be reached.