"""
Marble CLI

Command-line interface for invoking the Marble NFT series contract on NEAR.

The signer is one NEAR account with an ed25519 key provisioned through
NEAR_PRIVATE_KEY (environment or ~/.marble/.env).  Which method runs, and
with which arguments, is chosen on the command line or in a call file.

Commands:
  call      - Send a change call (mint, buy, set price, ...)
  view      - Run a read-only view call
  run       - Execute the call described by a call file
  account   - Show an account's on-chain state
  tx        - Look up a transaction outcome
  keygen    - Generate an ed25519 key
  whoami    - Show the configured account and public key
  methods   - List the contract's declared methods
  info      - Show configuration
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import ENV_VARS, MARBLE_ENV
from .errors import ConfigError, KeyFormatError
from .sigil.keys import KeyPair, load_private_key
from .commands.common import CliState


# ============ Constants ============

VERSION = __version__


# ============ Banner ============


def _print_banner() -> None:
    border = click.style("  ◆ ═══════════════════════════════════════ ◆", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()
    click.echo(
        click.style("        M A R B L E", fg="bright_white", bold=True)
        + click.style(f"        v{VERSION}", dim=True)
    )
    click.secho("        ─── NEAR NFT Series Invoker ───", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo()


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="marble")
@click.option("--network", default=None, help=f"Network preset (${ENV_VARS['network_id']}, default testnet)")
@click.option("--node-url", default=None, help=f"RPC endpoint (${ENV_VARS['node_url']})")
@click.option("--contract", "contract_id", default=None, help=f"Contract account (${ENV_VARS['contract_id']})")
@click.option("--account", "account_id", default=None, help=f"Signer account (${ENV_VARS['account_id']})")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Load settings from this .env file instead of ~/.marble/.env",
)
@click.option("--extended", is_flag=True, help="Expose the extended contract method set")
@click.option("--prompt-key", is_flag=True, help="Prompt for the private key if none is configured")
@click.option("--traceback", is_flag=True, help="Re-raise errors with a full traceback")
@click.option("-v", "--verbose", count=True, help="Log progress (-v) or RPC traffic (-vv)")
@click.pass_context
def cli(
    ctx: click.Context,
    network: Optional[str],
    node_url: Optional[str],
    contract_id: Optional[str],
    account_id: Optional[str],
    env_file: Optional[Path],
    extended: bool,
    prompt_key: bool,
    traceback: bool,
    verbose: int,
) -> None:
    """Marble: NEAR NFT series contract invoker."""
    _configure_logging(verbose)

    state = ctx.ensure_object(CliState)
    state.network = network
    state.node_url = node_url
    state.contract_id = contract_id
    state.account_id = account_id
    state.env_path = env_file
    state.extended = extended
    state.prompt_key = prompt_key
    state.traceback = traceback

    if ctx.invoked_subcommand is None:
        _print_banner()
        click.echo(ctx.get_help())


# ============ Top-level Commands ============

from .commands.account import account
from .commands.call import call
from .commands.keygen import keygen
from .commands.run import run
from .commands.tx import tx
from .commands.view import view

cli.add_command(call)
cli.add_command(view)
cli.add_command(run)
cli.add_command(account)
cli.add_command(tx)
cli.add_command(keygen)


# ============ Identity ============


@cli.command()
@click.pass_obj
def whoami(state: CliState) -> None:
    """Show the configured account and its public key."""
    try:
        key_pair = KeyPair.from_string(load_private_key(state.env_path))
    except KeyFormatError as exc:
        click.secho(f"Invalid key: {exc}", fg="red", err=True)
        sys.exit(exc.exit_code)
    except ValueError:
        click.echo("No key found.")
        click.echo("Set NEAR_PRIVATE_KEY or run 'marble keygen'.")
        sys.exit(1)

    try:
        config = state.load_config(require_contract=False)
        click.echo(f"Account:    {config.account_id} ({config.network_id})")
    except ConfigError:
        click.echo("Account:    not configured")
    click.echo(f"Public key: {key_pair.public_key}")


# ============ Methods ============


@cli.command()
@click.pass_obj
def methods(state: CliState) -> None:
    """List the declared change and view methods."""
    change_methods, view_methods = state.method_sets()
    click.secho("Change methods (gas + deposit):", fg="cyan")
    for name in change_methods:
        click.echo(f"  {name}")
    click.secho("View methods:", fg="cyan")
    for name in view_methods:
        click.echo(f"  {name}")


# ============ Info ============


@cli.command()
@click.pass_obj
def info(state: CliState) -> None:
    """Show configuration."""
    _print_banner()

    click.secho("  Configuration ──────────────────────────", fg="cyan")
    click.echo()

    try:
        config = state.load_config(require_account=False, require_contract=False)
    except ConfigError as exc:
        click.secho(f"  {exc}", fg="yellow")
        click.echo()
        return

    rows = [
        ("Network:  ", config.network_id),
        ("RPC:      ", config.node_url),
        ("Wallet:   ", config.wallet_url),
        ("Contract: ", config.contract_id or "not set"),
        ("Account:  ", config.account_id or "not set"),
    ]
    for label, value in rows:
        click.echo(click.style(f"  {label}", dim=True) + click.style(value, fg="bright_white"))

    try:
        load_private_key(state.env_path)
        key_text = click.style("configured", fg="green")
    except ValueError:
        key_text = click.style("not configured", fg="yellow") + click.style(
            f"  (set NEAR_PRIVATE_KEY or edit {MARBLE_ENV})", dim=True
        )
    click.echo(click.style("  Key:      ", dim=True) + key_text)
    click.echo()


# ============ Entry Points ============


def main() -> None:
    """Marble CLI entry point."""
    # Ensure UTF-8 output on Windows (for Unicode box-drawing / symbols)
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass
    cli()


if __name__ == "__main__":
    main()
