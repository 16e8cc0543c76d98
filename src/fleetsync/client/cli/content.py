"""Library content commands for the fleetsync CLI.

Commands:
- add: Add a library item from a JSON body
- list: List library items
- publish: Publish an item (validated, then queued)
- unpublish: Make an item private again
- update: Push edits of a published item
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from fleetsync.client.cli.context import SyncContext, open_context
from fleetsync.client.database import StoreError
from fleetsync.client.repository import LibraryItem
from fleetsync.client.sync import PublishError
from fleetsync.core.types import ContentType


def _load_item(ctx: SyncContext, content_id: str) -> LibraryItem:
    item = ctx.library.fetch_item(content_id)
    if item is None:
        click.echo(f"Error: No library item {content_id}", err=True)
        sys.exit(1)
    return item


def _drain(ctx: SyncContext) -> None:
    summary = ctx.engine.process_queue()
    click.echo(f"Synced: {summary.succeeded} succeeded, {summary.failed} failed")


@click.command("add")
@click.option("--title", required=True, help="Item title.")
@click.option(
    "--type",
    "content_type",
    type=click.Choice([t.value for t in ContentType]),
    required=True,
    help="Kind of content.",
)
@click.option("--description", default=None, help="Item description.")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable).")
@click.option("--language", default="en", show_default=True, help="Content language.")
@click.option(
    "--content-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file with the structured body.",
)
def add(
    title: str,
    content_type: str,
    description: str | None,
    tags: tuple[str, ...],
    language: str,
    content_file: Path | None,
) -> None:
    """Add an item to the local library."""
    content = {}
    if content_file is not None:
        try:
            content = json.loads(content_file.read_text())
        except json.JSONDecodeError as e:
            click.echo(f"Error: Invalid JSON in {content_file}: {e}", err=True)
            sys.exit(1)

    item = LibraryItem(
        title=title,
        content_type=ContentType(content_type),
        description=description,
        content=content,
        tags=list(tags),
        language=language,
    )
    with open_context() as ctx:
        ctx.library.save_item(item)
    click.echo(item.id)


@click.command("list")
def list_items() -> None:
    """List library items."""
    with open_context() as ctx:
        for item in ctx.library.list_items():
            click.echo(
                f"{item.id}  {item.content_type.value:<15} "
                f"{item.visibility.value:<8} {item.title}"
            )


@click.command()
@click.argument("content_id")
@click.option("--no-sync", is_flag=True, help="Only queue, do not drain now.")
def publish(content_id: str, no_sync: bool) -> None:
    """Publish a library item."""
    with open_context() as ctx:
        item = _load_item(ctx, content_id)
        try:
            ctx.visibility.publish_content(item)
        except (PublishError, StoreError) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        click.echo(f"Queued publish of '{item.title}' as {item.public_id}")
        if not no_sync:
            _drain(ctx)


@click.command()
@click.argument("content_id")
@click.option("--no-sync", is_flag=True, help="Only queue, do not drain now.")
def unpublish(content_id: str, no_sync: bool) -> None:
    """Make a published library item private."""
    with open_context() as ctx:
        item = _load_item(ctx, content_id)
        try:
            operation_id = ctx.visibility.unpublish_content(item)
        except (PublishError, StoreError) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        if operation_id is None:
            click.echo(f"'{item.title}' was not published.")
            return
        click.echo(f"Queued unpublish of '{item.title}'")
        if not no_sync:
            _drain(ctx)


@click.command()
@click.argument("content_id")
@click.option("--no-sync", is_flag=True, help="Only queue, do not drain now.")
def update(content_id: str, no_sync: bool) -> None:
    """Push local edits of a published item."""
    with open_context() as ctx:
        item = _load_item(ctx, content_id)
        try:
            ctx.visibility.publish_update(item)
        except (PublishError, StoreError) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        click.echo(f"Queued update of '{item.title}'")
        if not no_sync:
            _drain(ctx)
