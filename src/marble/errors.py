"""
Error taxonomy for the Marble invoker.

Every error carries an ``exit_code`` used by the CLI when it terminates the
process.  Errors raised from RPC payloads keep the network's failure name in
``kind`` so callers can branch on it.
"""

from __future__ import annotations

from typing import Any, Optional


class MarbleError(Exception):
    exit_code: int = 1


class ConfigError(MarbleError, ValueError):
    exit_code = 2


class KeyFormatError(ConfigError):
    pass


class InvalidCallError(ConfigError):
    pass


class CallFileError(ConfigError):
    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class MissingKeyError(MarbleError):
    exit_code = 2


class UndeclaredMethodError(MarbleError, AttributeError):
    exit_code = 2


class JsonRpcError(MarbleError):
    """Raw error object returned by a NEAR JSON-RPC endpoint."""

    def __init__(self, method: str, error: dict[str, Any]) -> None:
        self.method = method
        self.error = error
        cause = error.get("cause") or {}
        self.name: str = error.get("name", "")
        self.cause_name: Optional[str] = cause.get("name")
        self.cause_info: dict[str, Any] = cause.get("info") or {}
        self.data: Any = error.get("data")
        detail = self.data if self.data is not None else error.get("message", "")
        super().__init__(f"RPC error in {method}: {self.kind}: {detail}")

    @property
    def kind(self) -> str:
        return self.cause_name or self.name or "UNKNOWN_ERROR"


class AccountResolutionError(MarbleError):
    exit_code = 3

    def __init__(self, account_id: str, message: str, kind: str = "UNKNOWN_ACCOUNT") -> None:
        super().__init__(message)
        self.account_id = account_id
        self.kind = kind


class TransactionError(MarbleError):
    exit_code = 4

    def __init__(
        self,
        message: str,
        kind: str,
        tx_hash: Optional[str] = None,
        failure: Any = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.tx_hash = tx_hash
        self.failure = failure


class QueryError(MarbleError):
    exit_code = 5

    def __init__(self, message: str, kind: str, logs: list[str] | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.logs = logs or []
