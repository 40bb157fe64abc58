"""
Transaction Builder - Build, sign, and send NEAR FunctionCall transactions.

Encoding and signing are delegated to ``py_near_primitives``: the
transaction is Borsh-serialized, hashed with SHA-256 and signed with the
signer's ed25519 key.  All gas is paid by the signer account.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import base58
from py_near_primitives import FunctionCallAction
from py_near_primitives import Transaction as NearTransaction

from ..errors import JsonRpcError, TransactionError
from ..sigil.keys import InMemorySigner, PublicKey
from ..utils import b64decode, json_bytes
from .rpc import JsonRpcProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FunctionCall:
    method_name: str
    args: bytes
    gas: int
    deposit: int

    def to_action(self) -> FunctionCallAction:
        return FunctionCallAction(self.method_name, self.args, self.gas, self.deposit)


@dataclass(frozen=True)
class Transaction:
    signer_id: str
    public_key: PublicKey
    nonce: int
    receiver_id: str
    block_hash: bytes
    actions: tuple[FunctionCall, ...]

    def to_primitive(self) -> NearTransaction:
        return NearTransaction(
            self.signer_id,
            self.public_key.data,
            self.nonce,
            self.receiver_id,
            self.block_hash,
            [action.to_action() for action in self.actions],
        )

    def get_hash(self) -> bytes:
        """SHA-256 of the Borsh-encoded transaction, the bytes that get signed."""
        return bytes(bytearray(self.to_primitive().get_hash()))


@dataclass(frozen=True)
class SignedTransaction:
    transaction: Transaction
    encoded: bytes
    hash: bytes

    @property
    def tx_hash(self) -> str:
        return base58.b58encode(self.hash).decode("ascii")

    @property
    def signature(self) -> bytes:
        # Borsh layout ends with the key type byte and the 64-byte signature
        return self.encoded[-64:]

    def serialize(self) -> bytes:
        return self.encoded


@dataclass
class FunctionCallOutcome:
    """
    Final outcome of a FunctionCall transaction.

    Attributes:
        tx_hash: base58 transaction hash
        value: Decoded return value of the call (None if empty)
        logs: Log lines from every receipt, in execution order
        gas_burnt: Total gas burnt by the transaction and its receipts
        raw: The RPC response the outcome was read from
    """
    tx_hash: str
    value: Any = None
    logs: list[str] = field(default_factory=list)
    gas_burnt: int = 0
    raw: dict[str, Any] = field(default_factory=dict)


def build_function_call_tx(
    provider: JsonRpcProvider,
    signer: InMemorySigner,
    network_id: str,
    signer_id: str,
    receiver_id: str,
    method_name: str,
    args: dict[str, Any],
    gas: int,
    deposit: int,
) -> Transaction:
    """
    Build an unsigned FunctionCall transaction.

    The nonce and the reference block hash are read from the signer's
    access key.

    Raises:
        MissingKeyError: If the signer has no key in the key store
        TransactionError: If the access key cannot be read from the network
    """
    public_key = signer.get_public_key(network_id, signer_id)
    try:
        access_key = provider.view_access_key(signer_id, public_key.to_string())
    except JsonRpcError as exc:
        raise TransactionError(
            f"Cannot read access key {public_key} for {signer_id}: {exc}",
            kind=exc.kind,
        ) from exc

    return Transaction(
        signer_id=signer_id,
        public_key=public_key,
        nonce=int(access_key["nonce"]) + 1,
        receiver_id=receiver_id,
        block_hash=base58.b58decode(access_key["block_hash"]),
        actions=(
            FunctionCall(
                method_name=method_name,
                args=json_bytes(args),
                gas=gas,
                deposit=deposit,
            ),
        ),
    )


def sign_transaction(
    tx: Transaction, signer: InMemorySigner, network_id: str
) -> SignedTransaction:
    key_pair = signer.get_key_pair(network_id, tx.signer_id)
    primitive = tx.to_primitive()
    encoded = bytes(bytearray(primitive.to_vec(key_pair.secret_key)))
    digest = bytes(bytearray(primitive.get_hash()))
    return SignedTransaction(transaction=tx, encoded=encoded, hash=digest)


def sign_and_send(
    provider: JsonRpcProvider, signed: SignedTransaction, wait: bool = True
) -> FunctionCallOutcome:
    """
    Send a signed transaction.

    Args:
        provider: RPC provider
        signed: Signed transaction
        wait: Whether to wait for the final outcome

    Returns:
        FunctionCallOutcome (only tx_hash is set when ``wait`` is False)

    Raises:
        TransactionError: If the node rejects the transaction or it fails
    """
    tx_hash = signed.tx_hash
    logger.info(
        "Sending %s -> %s.%s (tx %s)",
        signed.transaction.signer_id,
        signed.transaction.receiver_id,
        signed.transaction.actions[0].method_name,
        tx_hash,
    )
    try:
        if not wait:
            return FunctionCallOutcome(tx_hash=provider.broadcast_tx_async(signed.serialize()))
        result = provider.broadcast_tx_commit(signed.serialize())
    except JsonRpcError as exc:
        kind = exc.kind
        if isinstance(exc.data, dict):
            kind = failure_kind(exc.data)
        raise TransactionError(
            f"Transaction {tx_hash} rejected: {exc}",
            kind=kind,
            tx_hash=tx_hash,
            failure=exc.data,
        ) from exc

    return parse_outcome(result)


def send_function_call(
    provider: JsonRpcProvider,
    signer: InMemorySigner,
    network_id: str,
    signer_id: str,
    receiver_id: str,
    method_name: str,
    args: dict[str, Any],
    gas: int,
    deposit: int,
    wait: bool = True,
) -> FunctionCallOutcome:
    """Build, sign, and send a FunctionCall transaction."""
    tx = build_function_call_tx(
        provider, signer, network_id, signer_id, receiver_id, method_name, args, gas, deposit
    )
    return sign_and_send(provider, sign_transaction(tx, signer, network_id), wait=wait)


def parse_outcome(result: dict[str, Any]) -> FunctionCallOutcome:
    """
    Read a final execution outcome.

    Raises:
        TransactionError: If the transaction status is a Failure
    """
    tx_hash = result.get("transaction", {}).get("hash") or result.get(
        "transaction_outcome", {}
    ).get("id", "")
    outcomes = [result.get("transaction_outcome", {})] + list(result.get("receipts_outcome", []))
    logs: list[str] = []
    gas_burnt = 0
    for item in outcomes:
        outcome = item.get("outcome", {})
        logs.extend(outcome.get("logs", []))
        gas_burnt += int(outcome.get("gas_burnt", 0))

    status = result.get("status", {})
    if isinstance(status, dict) and "Failure" in status:
        failure = status["Failure"]
        raise TransactionError(
            f"Transaction {tx_hash} failed: {failure_message(failure)}",
            kind=failure_kind(failure),
            tx_hash=tx_hash,
            failure=failure,
        )
    if not isinstance(status, dict) or not (
        "SuccessValue" in status or "SuccessReceiptId" in status
    ):
        raise TransactionError(
            f"Transaction {tx_hash} has no final status: {status!r}",
            kind="NotFinal",
            tx_hash=tx_hash,
        )

    value = decode_result(status.get("SuccessValue", ""))
    for line in logs:
        logger.info("log: %s", line)
    return FunctionCallOutcome(
        tx_hash=tx_hash, value=value, logs=logs, gas_burnt=gas_burnt, raw=result
    )


def decode_result(value_b64: str) -> Any:
    """Decode a base64 SuccessValue with ``decode_return_bytes``."""
    if not value_b64:
        return None
    return decode_return_bytes(b64decode(value_b64))


def decode_return_bytes(raw: bytes) -> Any:
    """
    Decode a method's return bytes.

    UTF-8 JSON is parsed, other UTF-8 text is returned as ``str`` and
    anything else is returned unchanged as ``bytes``.
    """
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


_FAILURE_WRAPPERS = ("TxExecutionError", "InvalidTxError")


def failure_kind(failure: Any) -> str:
    """Name of the innermost failure variant, e.g. ``FunctionCallError``."""
    node = failure
    while isinstance(node, dict) and node:
        key, value = next(iter(node.items()))
        if key == "ActionError" and isinstance(value, dict):
            node = value.get("kind", value)
            continue
        if key in _FAILURE_WRAPPERS:
            node = value
            continue
        return key
    if isinstance(node, str) and node:
        return node
    return "UnknownFailure"


def failure_message(failure: Any) -> str:
    node = failure
    while isinstance(node, dict):
        if "kind" in node:
            node = node["kind"]
        elif len(node) == 1:
            node = next(iter(node.values()))
        else:
            break
    if isinstance(node, str):
        return node
    return json.dumps(failure)


def lookup_transaction(
    provider: JsonRpcProvider, tx_hash: str, sender_id: str
) -> FunctionCallOutcome:
    """
    Fetch the outcome of an already submitted transaction.

    Raises:
        TransactionError: If the transaction is unknown, not final, or failed
    """
    try:
        result = provider.tx_status(tx_hash, sender_id)
    except JsonRpcError as exc:
        raise TransactionError(
            f"Cannot look up transaction {tx_hash}: {exc}",
            kind=exc.kind,
            tx_hash=tx_hash,
        ) from exc
    return parse_outcome(result)
