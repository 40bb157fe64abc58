"""
Shared fixtures: a fake NEAR JSON-RPC node served through httpx.MockTransport.

The fake decodes every signed transaction it receives, checks the ed25519
signature against the access keys it knows, and answers with canned
outcomes, so the whole invoker runs offline.
"""

from __future__ import annotations

import base64
import hashlib
import json
import os
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Union
from unittest.mock import patch

import base58
import httpx
import pytest

from marble.config import ENV_VARS, NetworkConfig
from marble.contract import ContractProxy, bind_contract, configure, register_key, resolve_account
from marble.sigil.keys import KeyPair, PublicKey

NETWORK_ID = "testnet"
NODE_URL = "https://rpc.testnet.near.org"
CONTRACT_ID = "marble.testnet"
SIGNER_ID = "viernear.testnet"
BLOCK_HASH = bytes(range(32))

MARBLE_VARS = set(ENV_VARS.values()) | {"NEAR_PRIVATE_KEY"}


@pytest.fixture(autouse=True)
def isolated_env():
    """Drop NEAR/Marble variables and undo anything load_dotenv adds."""
    env = {k: v for k, v in os.environ.items() if k not in MARBLE_VARS}
    with patch.dict(os.environ, env, clear=True):
        yield


# ============ Borsh decoding ============


class BorshReader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def take(self, size: int) -> bytes:
        chunk = self.data[self.pos : self.pos + size]
        if len(chunk) != size:
            raise ValueError("truncated Borsh payload")
        self.pos += size
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def u32(self) -> int:
        return struct.unpack("<I", self.take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self.take(8))[0]

    def u128(self) -> int:
        return int.from_bytes(self.take(16), "little")

    def bytes(self) -> bytes:
        return self.take(self.u32())

    def string(self) -> str:
        return self.bytes().decode("utf-8")


@dataclass
class DecodedTx:
    signer_id: str
    public_key: str
    nonce: int
    receiver_id: str
    block_hash: bytes
    method_name: str
    args: dict[str, Any]
    gas: int
    deposit: int
    signature: bytes
    hash: str
    signature_valid: bool


def decode_signed_tx(raw: bytes) -> DecodedTx:
    reader = BorshReader(raw)
    signer_id = reader.string()
    assert reader.u8() == 0
    public_key = PublicKey(reader.take(32))
    nonce = reader.u64()
    receiver_id = reader.string()
    block_hash = reader.take(32)
    assert reader.u32() == 1
    assert reader.u8() == 2
    method_name = reader.string()
    args = json.loads(reader.bytes())
    gas = reader.u64()
    deposit = reader.u128()
    body = raw[: reader.pos]
    assert reader.u8() == 0
    signature = reader.take(64)
    assert reader.pos == len(raw)

    digest = hashlib.sha256(body).digest()
    return DecodedTx(
        signer_id=signer_id,
        public_key=public_key.to_string(),
        nonce=nonce,
        receiver_id=receiver_id,
        block_hash=block_hash,
        method_name=method_name,
        args=args,
        gas=gas,
        deposit=deposit,
        signature=signature,
        hash=base58.b58encode(digest).decode("ascii"),
        signature_valid=public_key.verify(digest, signature),
    )


# ============ Fake node ============


class RpcFailure(Exception):
    def __init__(self, error: dict[str, Any]) -> None:
        super().__init__(error.get("cause", {}).get("name"))
        self.error = error


@dataclass
class Failure:
    """Execution failure to report in a transaction status."""
    detail: dict[str, Any]


def rpc_error(cause: str, data: Any = "", info: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    return {
        "name": "HANDLER_ERROR",
        "cause": {"name": cause, "info": info or {}},
        "code": -32000,
        "message": "Server error",
        "data": data,
    }


def _encode_value(value: Any) -> bytes:
    """Contract return bytes: ``bytes`` are sent as-is, anything else as JSON."""
    if value is None:
        return b""
    if isinstance(value, bytes):
        return value
    return json.dumps(value).encode("utf-8")


@dataclass
class FakeNearRpc:
    accounts: dict[str, dict[str, Any]] = field(default_factory=dict)
    access_keys: dict[tuple[str, str], int] = field(default_factory=dict)
    view_results: dict[str, Union[Any, Callable[[dict[str, Any]], Any]]] = field(default_factory=dict)
    call_results: dict[str, Any] = field(default_factory=dict)
    call_logs: dict[str, list[str]] = field(default_factory=dict)
    errors: dict[str, dict[str, Any]] = field(default_factory=dict)
    requests: list[dict[str, Any]] = field(default_factory=list)
    sent: list[DecodedTx] = field(default_factory=list)
    transactions: dict[str, dict[str, Any]] = field(default_factory=dict)
    transport_error: Optional[Exception] = None

    def add_account(self, account_id: str, amount: int = 10**25) -> None:
        self.accounts[account_id] = {
            "amount": str(amount),
            "locked": "0",
            "code_hash": "11111111111111111111111111111111",
            "storage_usage": 182,
            "storage_paid_at": 0,
            "block_height": 100,
            "block_hash": base58.b58encode(BLOCK_HASH).decode("ascii"),
        }

    def add_access_key(self, account_id: str, key_pair: KeyPair, nonce: int = 0) -> None:
        self.access_keys[(account_id, key_pair.public_key.to_string())] = nonce

    def fail_call(self, method_name: str, detail: dict[str, Any]) -> None:
        """Make change calls to ``method_name`` end in a Failure status."""
        self.call_results[method_name] = Failure(detail)

    def fail_rpc(self, key: str, cause: str, data: Any = "") -> None:
        """Answer the RPC method (or query request type) ``key`` with an error."""
        self.errors[key] = rpc_error(cause, data)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def rpc_methods(self) -> list[str]:
        """RPC method of each request, with queries listed by request type."""
        methods = []
        for request in self.requests:
            if request["method"] == "query":
                methods.append(request["params"]["request_type"])
            else:
                methods.append(request["method"])
        return methods

    # ------------------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        if self.transport_error is not None:
            raise self.transport_error

        method, params = payload["method"], payload["params"]
        key = params["request_type"] if method == "query" else method
        try:
            if key in self.errors:
                return self._error(payload, self.errors[key])
            result = getattr(self, "_" + key)(params)
        except RpcFailure as exc:
            return self._error(payload, exc.error)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    @staticmethod
    def _error(payload: dict[str, Any], error: dict[str, Any]) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": error})

    def _view_account(self, params: dict[str, Any]) -> dict[str, Any]:
        account_id = params["account_id"]
        if account_id not in self.accounts:
            raise RpcFailure(
                rpc_error(
                    "UNKNOWN_ACCOUNT",
                    f"account {account_id} does not exist while viewing",
                    {"requested_account_id": account_id},
                )
            )
        return self.accounts[account_id]

    def _view_access_key(self, params: dict[str, Any]) -> dict[str, Any]:
        entry = (params["account_id"], params["public_key"])
        if entry not in self.access_keys:
            raise RpcFailure(rpc_error("UNKNOWN_ACCESS_KEY", "access key does not exist"))
        return {
            "nonce": self.access_keys[entry],
            "permission": "FullAccess",
            "block_height": 100,
            "block_hash": base58.b58encode(BLOCK_HASH).decode("ascii"),
        }

    def _call_function(self, params: dict[str, Any]) -> dict[str, Any]:
        method_name = params["method_name"]
        if method_name not in self.view_results:
            raise RpcFailure(
                rpc_error(
                    "CONTRACT_EXECUTION_ERROR",
                    "wasm execution failed with error: MethodResolveError(MethodNotFound)",
                )
            )
        args = json.loads(base64.b64decode(params["args_base64"]) or b"{}")
        value = self.view_results[method_name]
        if callable(value):
            value = value(args)
        return {"result": list(_encode_value(value)), "logs": [], "block_height": 100}

    def _execute(self, params: list[str]) -> dict[str, Any]:
        tx = decode_signed_tx(base64.b64decode(params[0]))
        self.sent.append(tx)
        if not tx.signature_valid:
            raise RpcFailure(
                rpc_error(
                    "INVALID_TRANSACTION",
                    {"TxExecutionError": {"InvalidTxError": "InvalidSignature"}},
                )
            )
        entry = (tx.signer_id, tx.public_key)
        if entry not in self.access_keys:
            raise RpcFailure(
                rpc_error(
                    "INVALID_TRANSACTION",
                    {"TxExecutionError": {"InvalidTxError": {"InvalidAccessKeyError": {"AccessKeyNotFound": {"account_id": tx.signer_id, "public_key": tx.public_key}}}}},
                )
            )
        if tx.nonce <= self.access_keys[entry]:
            raise RpcFailure(
                rpc_error(
                    "INVALID_TRANSACTION",
                    {"TxExecutionError": {"InvalidTxError": {"InvalidNonce": {"tx_nonce": tx.nonce, "ak_nonce": self.access_keys[entry]}}}},
                )
            )
        self.access_keys[entry] = tx.nonce

        value = self.call_results.get(tx.method_name)
        if isinstance(value, Failure):
            status: dict[str, Any] = {"Failure": value.detail}
        elif value is None:
            status = {"SuccessValue": ""}
        else:
            status = {"SuccessValue": base64.b64encode(_encode_value(value)).decode("ascii")}

        result = {
            "status": status,
            "transaction": {
                "hash": tx.hash,
                "signer_id": tx.signer_id,
                "receiver_id": tx.receiver_id,
                "nonce": tx.nonce,
            },
            "transaction_outcome": {
                "id": tx.hash,
                "outcome": {"logs": [], "gas_burnt": 2428000000000},
            },
            "receipts_outcome": [
                {
                    "id": "receipt-1",
                    "outcome": {
                        "logs": list(self.call_logs.get(tx.method_name, [])),
                        "gas_burnt": 5000000000000,
                    },
                },
            ],
        }
        self.transactions[tx.hash] = result
        return result

    def _broadcast_tx_commit(self, params: list[str]) -> dict[str, Any]:
        return self._execute(params)

    def _broadcast_tx_async(self, params: list[str]) -> str:
        return self._execute(params)["transaction"]["hash"]

    def _tx(self, params: list[str]) -> dict[str, Any]:
        tx_hash, _sender = params
        if tx_hash not in self.transactions:
            raise RpcFailure(rpc_error("UNKNOWN_TRANSACTION", f"Transaction {tx_hash} doesn't exist"))
        return self.transactions[tx_hash]


# ============ Fixtures ============


@pytest.fixture()
def key_pair() -> KeyPair:
    return KeyPair.from_random()


@pytest.fixture()
def fake_rpc(key_pair: KeyPair) -> FakeNearRpc:
    fake = FakeNearRpc()
    fake.add_account(SIGNER_ID)
    fake.add_account(CONTRACT_ID)
    fake.add_access_key(SIGNER_ID, key_pair, nonce=41)
    return fake


@pytest.fixture()
def network_config() -> NetworkConfig:
    return NetworkConfig(
        network_id=NETWORK_ID,
        node_url=NODE_URL,
        wallet_url="https://wallet.testnet.near.org",
        app_name="Marble",
        contract_id=CONTRACT_ID,
        account_id=SIGNER_ID,
        explorer_url="https://explorer.testnet.near.org",
    )


@pytest.fixture()
def contract(fake_rpc: FakeNearRpc, network_config: NetworkConfig, key_pair: KeyPair) -> ContractProxy:
    connection = configure(network_config, transport=fake_rpc.transport())
    register_key(connection.key_store, NETWORK_ID, SIGNER_ID, key_pair.to_string())
    account = resolve_account(connection, SIGNER_ID)
    return bind_contract(account, CONTRACT_ID)


@pytest.fixture()
def env_file(tmp_path: Path) -> Path:
    return tmp_path / ".marble" / ".env"
