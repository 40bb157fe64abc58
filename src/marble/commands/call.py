"""
Call - Send a change (mutating) call to the contract.

Signs a FunctionCall transaction with the configured account's key,
attaches gas and a deposit, and waits for the final outcome.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ..utils import format_near_amount, parse_near_amount
from .common import (
    DEFAULT_CALL_GAS,
    HANDLED_ERRORS,
    CliState,
    echo_header,
    emit_result,
    fail,
    open_contract,
    parse_args_option,
    pass_state,
)


@click.command()
@click.argument("method")
@click.option("--args", "args_json", default=None, help="Method args as a JSON object")
@click.option(
    "--args-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read method args from a JSON file",
)
@click.option("--gas", default=str(DEFAULT_CALL_GAS), show_default=True, help="Gas units, or e.g. 300Tgas")
@click.option("--deposit", default=None, help="Attached deposit in yoctoNEAR")
@click.option("--deposit-near", default=None, help="Attached deposit in NEAR, e.g. 0.00854")
@click.option("--no-wait", is_flag=True, help="Return the transaction hash without waiting")
@pass_state
def call(
    state: CliState,
    method: str,
    args_json: Optional[str],
    args_file: Optional[Path],
    gas: str,
    deposit: Optional[str],
    deposit_near: Optional[str],
    no_wait: bool,
) -> None:
    """
    Send a change call METHOD to the contract.

    The configured account signs and pays gas.  The method's return value
    is printed to stdout.
    """
    args = parse_args_option(args_json, args_file)
    if deposit and deposit_near:
        raise click.UsageError("Use either --deposit or --deposit-near, not both")

    try:
        if deposit_near:
            deposit = parse_near_amount(deposit_near)
        config, contract = open_contract(state, need_key=True)

        echo_header(
            "Call",
            [
                ("Signer", contract.account.account_id),
                ("Contract", contract.contract_id),
                ("Method", method),
                ("Args", args),
                ("Gas", gas),
                ("Deposit", f"{deposit or 0} yocto ({format_near_amount(deposit or 0)} NEAR)"),
            ],
        )

        outcome = contract.call_raw(method, args, gas=gas, deposit=deposit or 0, wait=not no_wait)
    except HANDLED_ERRORS as exc:
        fail(state, exc)

    click.echo(f"  TX: {outcome.tx_hash}", err=True)
    tx_url = config.tx_url(outcome.tx_hash)
    if tx_url:
        click.echo(f"  {tx_url}", err=True)
    if no_wait:
        return

    for line in outcome.logs:
        click.echo(f"  log: {line}", err=True)
    click.secho("SUCCESS: Transaction confirmed", fg="green", err=True)
    emit_result(outcome.value)
