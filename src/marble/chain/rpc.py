"""
JSON-RPC client for NEAR.

Lightweight alternative to a full SDK: uses httpx for HTTP.
Supports account and access key queries, view calls, and transaction
submission.  Error objects returned by the node are raised as JsonRpcError;
transport failures (httpx.HTTPError) propagate unchanged.
"""

from __future__ import annotations

import itertools
import json
import logging
from typing import Any, Optional

import httpx

from ..errors import JsonRpcError
from ..utils import b64encode, json_bytes

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
# broadcast_tx_commit blocks until the transaction reaches a final status
COMMIT_TIMEOUT = 60.0


class JsonRpcProvider:
    """
    NEAR JSON-RPC endpoint.

    Args:
        url: RPC endpoint URL
        timeout: Request timeout in seconds
        transport: Optional httpx transport (e.g. httpx.MockTransport)
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport
        self._ids = itertools.count(1)

    def send(self, method: str, params: Any, timeout: Optional[float] = None) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name (e.g., "query")
            params: RPC parameters (object or list)
            timeout: Override the provider timeout

        Returns:
            Result field from the RPC response

        Raises:
            JsonRpcError: If the node returned an error object
            httpx.HTTPError: On transport or HTTP status failures
        """
        request_id = next(self._ids)
        payload = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": method,
            "params": params,
        }
        logger.debug("RPC -> %s #%d %s", method, request_id, _summarize(params))

        with httpx.Client(
            timeout=timeout or self.timeout, transport=self._transport
        ) as client:
            response = client.post(self.url, json=payload)
            data = _json_body(response)
            if data is None or "error" not in data:
                response.raise_for_status()

        if data is None:
            raise JsonRpcError(method, {"name": "INVALID_RESPONSE", "data": response.text})
        if data.get("error"):
            logger.debug("RPC <- %s #%d error %s", method, request_id, data["error"])
            raise JsonRpcError(method, data["error"])

        logger.debug("RPC <- %s #%d ok", method, request_id)
        return data.get("result")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query(self, request_type: str, finality: str = "final", **params: Any) -> dict[str, Any]:
        """
        Run a ``query`` RPC.

        Older nodes report view failures inside the result as an ``error``
        string; those are raised as JsonRpcError as well.
        """
        body = {"request_type": request_type, "finality": finality, **params}
        result = self.send("query", body)
        if isinstance(result, dict) and result.get("error"):
            raise JsonRpcError(
                "query",
                {
                    "name": "HANDLER_ERROR",
                    "cause": {"name": _legacy_cause(result["error"])},
                    "data": result["error"],
                    "logs": result.get("logs", []),
                },
            )
        return result

    def view_account(self, account_id: str) -> dict[str, Any]:
        return self.query("view_account", account_id=account_id)

    def view_access_key(self, account_id: str, public_key: str) -> dict[str, Any]:
        return self.query("view_access_key", account_id=account_id, public_key=public_key)

    def call_function(
        self,
        contract_id: str,
        method_name: str,
        args: dict[str, Any],
        finality: str = "optimistic",
    ) -> dict[str, Any]:
        return self.query(
            "call_function",
            finality=finality,
            account_id=contract_id,
            method_name=method_name,
            args_base64=b64encode(json_bytes(args)),
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def broadcast_tx_commit(self, signed_tx: bytes) -> dict[str, Any]:
        """Submit a signed transaction and wait for its final outcome."""
        return self.send("broadcast_tx_commit", [b64encode(signed_tx)], timeout=COMMIT_TIMEOUT)

    def broadcast_tx_async(self, signed_tx: bytes) -> str:
        """Submit a signed transaction; returns its hash without waiting."""
        return self.send("broadcast_tx_async", [b64encode(signed_tx)])

    def tx_status(self, tx_hash: str, sender_id: str) -> dict[str, Any]:
        return self.send("tx", [tx_hash, sender_id])


def _json_body(response: httpx.Response) -> Optional[dict[str, Any]]:
    """The response envelope, or None when the body is not a JSON object."""
    if "json" not in response.headers.get("content-type", ""):
        return None
    try:
        data = response.json()
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _legacy_cause(message: str) -> str:
    lowered = message.lower()
    if "does not exist while viewing" in lowered or "unknown account" in lowered:
        return "UNKNOWN_ACCOUNT"
    if "access key" in lowered and "does not exist" in lowered:
        return "UNKNOWN_ACCESS_KEY"
    if "methodnotfound" in lowered.replace(" ", ""):
        return "METHOD_NOT_FOUND"
    return "CONTRACT_EXECUTION_ERROR"


def _summarize(params: Any) -> str:
    if isinstance(params, dict):
        return ", ".join(
            f"{k}={v}" for k, v in params.items() if k in ("request_type", "account_id", "method_name")
        )
    return f"{len(params)} param(s)"
