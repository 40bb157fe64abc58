"""
Shared plumbing for CLI commands: configuration, session setup, output
and error reporting.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn, Optional

import click
import httpx

from ..config import NetworkConfig, load_config
from ..contract import (
    DEFAULT_CHANGE_METHODS,
    DEFAULT_VIEW_METHODS,
    EXTENDED_CHANGE_METHODS,
    EXTENDED_VIEW_METHODS,
    Account,
    Connection,
    ContractProxy,
    bind_contract,
    configure,
    register_key,
    resolve_account,
)
from ..errors import MarbleError, MissingKeyError
from ..sigil.keys import load_private_key
from ..utils import MAX_GAS, b64encode

# Gas attached to change calls that do not name any
DEFAULT_CALL_GAS = MAX_GAS


@dataclass
class CliState:
    """Options given to the top-level ``marble`` group."""
    network: Optional[str] = None
    node_url: Optional[str] = None
    contract_id: Optional[str] = None
    account_id: Optional[str] = None
    env_path: Optional[Path] = None
    extended: bool = False
    prompt_key: bool = False
    traceback: bool = False
    transport: Optional[httpx.BaseTransport] = None

    def method_sets(self) -> tuple[tuple[str, ...], tuple[str, ...]]:
        if self.extended:
            return EXTENDED_CHANGE_METHODS, EXTENDED_VIEW_METHODS
        return DEFAULT_CHANGE_METHODS, DEFAULT_VIEW_METHODS

    def load_config(
        self, require_account: bool = True, require_contract: bool = True
    ) -> NetworkConfig:
        return load_config(
            network=self.network,
            env_path=self.env_path,
            require_account=require_account,
            require_contract=require_contract,
            node_url=self.node_url,
            contract_id=self.contract_id,
            account_id=self.account_id,
        )


pass_state = click.make_pass_decorator(CliState, ensure=True)


def _signing_key(state: CliState) -> str:
    try:
        return load_private_key(state.env_path)
    except ValueError as exc:
        if state.prompt_key:
            return click.prompt("NEAR private key", hide_input=True, err=True)
        raise MissingKeyError(str(exc)) from exc


def open_session(state: CliState, need_key: bool) -> tuple[NetworkConfig, Connection, Account]:
    """
    Configure the connection, register the signing key and resolve the
    configured account.

    Args:
        state: CLI options
        need_key: Whether the session signs transactions.  Read-only
                  sessions never load a key.
    """
    config = state.load_config()
    connection = configure(config, transport=state.transport)
    if need_key:
        key = _signing_key(state)
        register_key(connection.key_store, config.network_id, config.account_id, key)
    account = resolve_account(connection, config.account_id)
    return config, connection, account


def open_contract(state: CliState, need_key: bool) -> tuple[NetworkConfig, ContractProxy]:
    config, _, account = open_session(state, need_key)
    change_methods, view_methods = state.method_sets()
    return config, bind_contract(account, config.contract_id, change_methods, view_methods)


def parse_args_option(args_json: Optional[str], args_file: Optional[Path]) -> dict[str, Any]:
    """Parse ``--args`` / ``--args-file`` into a JSON object."""
    if args_json and args_file:
        raise click.UsageError("Use either --args or --args-file, not both")
    raw = args_file.read_text(encoding="utf-8") if args_file else (args_json or "{}")
    try:
        args = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"Invalid JSON: {exc}", param_hint="--args") from exc
    if not isinstance(args, dict):
        raise click.BadParameter("Args must be a JSON object", param_hint="--args")
    return args


def echo_header(title: str, rows: list[tuple[str, Any]]) -> None:
    """Print a progress header to stderr, keeping stdout for the result."""
    click.echo(f"=== Marble {title} ===", err=True)
    for label, value in rows:
        click.echo(f"  {label + ':':<10} {value}", err=True)
    click.echo("", err=True)


def emit_result(value: Any) -> None:
    """
    Print a method result to stdout: strings raw, non-UTF-8 bytes as
    base64, everything else as JSON.
    """
    if isinstance(value, str):
        click.echo(value)
    elif isinstance(value, bytes):
        click.echo(b64encode(value))
    else:
        click.echo(json.dumps(value, indent=2, ensure_ascii=False))


def fail(state: CliState, exc: Exception) -> NoReturn:
    """Report ``exc`` on stderr and exit, or re-raise with --traceback."""
    if state.traceback:
        raise exc
    kind = getattr(exc, "kind", None)
    label = f"{type(exc).__name__}[{kind}]" if kind else type(exc).__name__
    click.secho(f"ERROR: {label}: {exc}", fg="red", err=True)
    exit_code = exc.exit_code if isinstance(exc, MarbleError) else 1
    sys.exit(exit_code)


HANDLED_ERRORS = (MarbleError, ValueError, httpx.HTTPError)
