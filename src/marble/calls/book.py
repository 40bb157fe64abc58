"""
Call files.

A call file describes the contract call to run, so that choosing the
operation is a matter of input rather than of editing code.  It holds either
one call::

    {"method": "nft_tokens_for_owner", "args": {"account_id": "alice.testnet"}}

or a book of named calls, one of which is selected per run::

    {"default": "mint", "calls": {"mint": {...}, "buy": {...}}}

Deposits are given in yoctoNEAR (``deposit``) or in NEAR (``deposit_near``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ..errors import CallFileError
from ..utils import parse_deposit, parse_gas, parse_near_amount
from .schemas import CALL_SCHEMA, SchemaRegistry, load_json


@dataclass(frozen=True)
class CallSpec:
    method: str
    args: dict[str, Any] = field(default_factory=dict)
    gas: Optional[int] = None
    deposit: Optional[int] = None
    description: str = ""

    @property
    def has_attachments(self) -> bool:
        return self.gas is not None or self.deposit is not None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "CallSpec":
        """Build from an already schema-valid call object."""
        try:
            gas = parse_gas(payload["gas"]) if "gas" in payload else None
            if "deposit_near" in payload:
                deposit: Optional[int] = int(parse_near_amount(payload["deposit_near"]))
            elif "deposit" in payload:
                deposit = parse_deposit(payload["deposit"])
            else:
                deposit = None
        except ValueError as exc:
            raise CallFileError(f"Invalid call {payload.get('method')!r}: {exc}") from exc
        return cls(
            method=payload["method"],
            args=dict(payload.get("args", {})),
            gas=gas,
            deposit=deposit,
            description=payload.get("description", ""),
        )


@dataclass(frozen=True)
class CallBook:
    calls: dict[str, CallSpec]
    default: Optional[str] = None

    def select(self, name: Optional[str] = None) -> CallSpec:
        """
        Pick one call.

        Without ``name`` the book's default is used, or its only entry.

        Raises:
            CallFileError: If no call can be selected
        """
        name = name or self.default
        if name is None:
            if len(self.calls) == 1:
                return next(iter(self.calls.values()))
            raise CallFileError(
                f"Call file holds several calls; select one of: {', '.join(sorted(self.calls))}"
            )
        if name not in self.calls:
            raise CallFileError(
                f"No call named {name!r}; available: {', '.join(sorted(self.calls))}"
            )
        return self.calls[name]

    @classmethod
    def from_dict(
        cls, payload: Any, registry: SchemaRegistry | None = None
    ) -> "CallBook":
        registry = registry or SchemaRegistry.default()
        registry.validate_instance(payload, CALL_SCHEMA)
        if "calls" not in payload:
            return cls(calls={payload["method"]: CallSpec.from_dict(payload)})
        calls = {name: CallSpec.from_dict(call) for name, call in payload["calls"].items()}
        return cls(calls=calls, default=payload.get("default"))

    @classmethod
    def from_path(cls, path: Path, registry: SchemaRegistry | None = None) -> "CallBook":
        return cls.from_dict(load_json(path), registry=registry)


def load_call(path: Path, name: Optional[str] = None) -> CallSpec:
    """Load a call file and select one call from it."""
    return CallBook.from_path(path).select(name)
