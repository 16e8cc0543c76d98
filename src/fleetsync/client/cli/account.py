"""Account commands for the fleetsync CLI.

Commands:
- login: Store the server URL, username and auth token
- logout: Forget the auth token
"""

from __future__ import annotations

import sys

import click
from keyring.errors import KeyringError

from fleetsync.client.auth import delete_token, store_token
from fleetsync.client.cli.config import load_config, save_config


@click.command()
@click.option(
    "--server",
    required=True,
    help="Server URL (e.g., https://api.anyfleet.app).",
)
@click.option("--username", default=None, help="Username shown as content author.")
@click.option(
    "--token",
    prompt="Auth token",
    hide_input=True,
    help="Bearer token of the signed-in user.",
)
@click.option(
    "--check-health/--no-check-health",
    default=False,
    help="Check the server health endpoint before each sync.",
)
def login(server: str, username: str | None, token: str, check_health: bool) -> None:
    """Sign in to a content server.

    The token is stored in the OS keyring, never in the config file.
    """
    server_url = server.rstrip("/")
    try:
        store_token(server_url, token)
    except KeyringError as e:
        click.echo(f"Error: Could not store token in keyring: {e}", err=True)
        sys.exit(1)

    config = load_config()
    config["server_url"] = server_url
    config["check_health"] = check_health
    if username:
        config["username"] = username
    save_config(config)

    click.echo(f"Logged in to {server_url}")


@click.command()
def logout() -> None:
    """Forget the stored auth token."""
    config = load_config()
    server_url = config.get("server_url")
    if not server_url:
        click.echo("Not logged in.")
        return
    delete_token(server_url)
    click.echo(f"Logged out from {server_url}")
