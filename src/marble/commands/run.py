"""
Run - Execute the contract call described by a call file.

The call is a change call or a view call depending on which of the
contract's declared method sets its method belongs to.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import click

from ..contract import ContractProxy, invoke_mutating, invoke_readonly
from ..errors import InvalidCallError, UndeclaredMethodError
from ..calls.book import CallSpec, load_call
from .common import DEFAULT_CALL_GAS, HANDLED_ERRORS, CliState, echo_header, emit_result, fail, open_contract, pass_state


def execute_call(contract: ContractProxy, entry: CallSpec) -> Any:
    """
    Run ``entry`` against ``contract``.

    Raises:
        UndeclaredMethodError: If the method is in neither declared set
        InvalidCallError: If a view call carries gas or a deposit
    """
    if contract.is_change_method(entry.method):
        gas = entry.gas if entry.gas is not None else DEFAULT_CALL_GAS
        return invoke_mutating(contract, entry.method, entry.args, gas, entry.deposit or 0)
    if contract.is_view_method(entry.method):
        if entry.has_attachments:
            raise InvalidCallError(f"View method {entry.method!r} takes no gas or deposit")
        return invoke_readonly(contract, entry.method, entry.args)
    raise UndeclaredMethodError(
        f"{entry.method!r} is not a declared method of {contract.contract_id}"
    )


@click.command()
@click.argument("call_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--name", "-n", default=None, help="Name of the call to run from a call book")
@pass_state
def run(state: CliState, call_file: Path, name: Optional[str]) -> None:
    """
    Execute the call described by CALL_FILE.

    CALL_FILE holds one call or a book of named calls; pick one with --name.
    """
    try:
        entry = load_call(call_file, name)
        change_methods, _ = state.method_sets()
        _, contract = open_contract(state, need_key=entry.method in change_methods)

        rows: list[tuple[str, Any]] = [
            ("Contract", contract.contract_id),
            ("Method", entry.method),
            ("Args", entry.args),
        ]
        if entry.gas is not None:
            rows.append(("Gas", entry.gas))
        if entry.deposit is not None:
            rows.append(("Deposit", entry.deposit))
        echo_header("Run", rows)

        result = execute_call(contract, entry)
    except HANDLED_ERRORS as exc:
        fail(state, exc)

    emit_result(result)
