"""
Keygen - Generate an ed25519 signing key.

The secret key is written to ~/.marble/.env as NEAR_PRIVATE_KEY; only the
public key is printed.  Add it to the account as a full access key before
sending change calls.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click

from ..config import MARBLE_ENV
from ..sigil.keys import generate_keypair, load_private_key, save_private_key


@click.command()
@click.option("--account", "account_id", default=None, help="Account id to record with the key")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to this .env file instead of ~/.marble/.env",
)
@click.option("--force", is_flag=True, help="Replace an existing key")
def keygen(account_id: Optional[str], env_file: Optional[Path], force: bool) -> None:
    """Generate an ed25519 key and save it to the .env file."""
    env_path = env_file or MARBLE_ENV

    if not force:
        try:
            load_private_key(env_path)
        except ValueError:
            pass
        else:
            click.secho(
                f"ERROR: A signing key is already configured (see {env_path}). "
                "Use --force to replace it.",
                fg="red",
                err=True,
            )
            sys.exit(1)

    secret_key, public_key = generate_keypair()
    saved = save_private_key(secret_key, account_id=account_id, env_path=env_path)

    click.secho("Key generated.", fg="green")
    click.echo(f"  Public key: {public_key}")
    if account_id:
        click.echo(f"  Account:    {account_id}")
    click.echo(f"  Saved to:   {saved}")
