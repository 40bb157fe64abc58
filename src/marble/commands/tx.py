"""
Tx - Look up the outcome of a submitted transaction.

Useful after ``marble call --no-wait`` or when a call timed out while
waiting for its final status.
"""

from __future__ import annotations

from typing import Optional

import click

from ..chain.tx import lookup_transaction
from ..contract import configure
from .common import HANDLED_ERRORS, CliState, emit_result, fail, pass_state


@click.command()
@click.argument("tx_hash")
@click.option("--sender", default=None, help="Signer of the transaction (default: configured account)")
@pass_state
def tx(state: CliState, tx_hash: str, sender: Optional[str]) -> None:
    """Show the final outcome of transaction TX_HASH."""
    try:
        config = state.load_config(require_account=sender is None, require_contract=False)
        connection = configure(config, transport=state.transport)
        outcome = lookup_transaction(connection.provider, tx_hash, sender or config.account_id)
    except HANDLED_ERRORS as exc:
        fail(state, exc)

    click.echo(f"  TX: {outcome.tx_hash}", err=True)
    click.echo(f"  Gas burnt: {outcome.gas_burnt}", err=True)
    for line in outcome.logs:
        click.echo(f"  log: {line}", err=True)
    emit_result(outcome.value)
