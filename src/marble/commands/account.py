"""
Account - Show an account's on-chain state.
"""

from __future__ import annotations

from typing import Optional

import click

from ..contract import configure, resolve_account
from ..utils import format_near_amount
from .common import HANDLED_ERRORS, CliState, fail, pass_state


@click.command()
@click.argument("account_id", required=False)
@pass_state
def account(state: CliState, account_id: Optional[str]) -> None:
    """Show balance and storage of ACCOUNT_ID (default: the configured account)."""
    try:
        config = state.load_config(require_account=account_id is None, require_contract=False)
        connection = configure(config, transport=state.transport)
        resolved = resolve_account(connection, account_id or config.account_id)
    except HANDLED_ERRORS as exc:
        fail(state, exc)

    click.echo(f"  Account {resolved.account_id} ({config.network_id})")
    click.echo("  ─────────────────────────────")
    click.echo(f"  Balance:        {format_near_amount(resolved.amount)} NEAR")
    click.echo(f"  Locked:         {format_near_amount(resolved.locked)} NEAR")
    click.echo(f"  Storage:        {resolved.storage_usage} bytes")
    if resolved.code_hash and set(resolved.code_hash) != {"1"}:
        click.echo(f"  Code hash:      {resolved.code_hash}")
    else:
        click.echo("  Code hash:      (no contract deployed)")
