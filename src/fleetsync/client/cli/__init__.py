"""Command-line interface for fleetsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- login: Sign in to a content server
- logout: Forget the stored auth token
- add: Add a library item
- list: List library items
- publish: Publish a library item
- unpublish: Make a library item private
- update: Push edits of a published item
- status: Show queue counts and sync status
- sync: Drain the sync queue once
- watch: Sync continuously
- retry: Retry a failed item
- history: List the sync operations of an item
- charter: Charter commands
"""

from __future__ import annotations

import logging

import click

from fleetsync.client.cli.account import login, logout
from fleetsync.client.cli.charter import charter
from fleetsync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_database_path,
    load_config,
    save_config,
)
from fleetsync.client.cli.content import add, list_items, publish, unpublish, update
from fleetsync.client.cli.sync import history, retry, status, sync, watch


@click.group()
@click.version_option(package_name="fleetsync")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """fleetsync - Offline-tolerant sync of library content."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Account commands
cli.add_command(login)
cli.add_command(logout)

# Library commands
cli.add_command(add)
cli.add_command(list_items)
cli.add_command(publish)
cli.add_command(unpublish)
cli.add_command(update)

# Sync commands
cli.add_command(status)
cli.add_command(sync)
cli.add_command(watch)
cli.add_command(retry)
cli.add_command(history)

# Charter commands
cli.add_command(charter)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_database_path",
    "load_config",
    "save_config",
]
