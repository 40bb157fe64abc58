"""
View - Run a read-only view call against the contract.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from .common import (
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
@pass_state
def view(
    state: CliState,
    method: str,
    args_json: Optional[str],
    args_file: Optional[Path],
) -> None:
    """Run the view method METHOD and print its result."""
    args = parse_args_option(args_json, args_file)

    try:
        _, contract = open_contract(state, need_key=False)
        echo_header(
            "View",
            [("Contract", contract.contract_id), ("Method", method), ("Args", args)],
        )
        result = contract.view(method, args)
    except HANDLED_ERRORS as exc:
        fail(state, exc)

    emit_result(result)
