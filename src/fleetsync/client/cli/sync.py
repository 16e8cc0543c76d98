"""Sync commands for the fleetsync CLI.

Commands:
- status: Show queue counts and per-item sync status
- sync: Drain the queue once and sync charters
- watch: Keep syncing on the adaptive timer until interrupted
- retry: Queue the failed operation of an item again
- history: List the queued operations of an item
"""

from __future__ import annotations

import logging
import sys
import time

import click

from fleetsync.client.cli.context import open_context
from fleetsync.client.database import StoreError
from fleetsync.client.sync import PublishError, SyncOperation, SyncSummary
from fleetsync.core.types import ContentSyncStatus

logger = logging.getLogger(__name__)


def _echo_summary(label: str, summary: SyncSummary) -> None:
    click.echo(
        f"{label}: {summary.attempted} attempted, "
        f"{summary.succeeded} succeeded, {summary.failed} failed"
    )


@click.command()
def status() -> None:
    """Show pending and failed operations and library sync status."""
    with open_context() as ctx:
        counts = ctx.engine.refresh_counts()
        click.echo(f"Pending operations: {counts.pending}")
        click.echo(f"Failed operations:  {counts.failed}")

        items = ctx.library.list_items()
        if not items:
            return
        click.echo("")
        for item in items:
            line = f"{item.id}  {item.sync_status.value:<8} {item.visibility.value:<8} {item.title}"
            if item.public_id:
                line += f"  [{item.public_id}]"
            click.echo(line)
            if item.sync_status == ContentSyncStatus.FAILED:
                latest = ctx.store.latest_for_content(item.id)
                if latest is not None and latest.last_error:
                    click.echo(f"    last error: {latest.last_error}")


@click.command()
@click.option("--pull/--no-pull", default=True, help="Also pull charters from the server.")
def sync(pull: bool) -> None:
    """Drain the sync queue once and sync charters."""
    with open_context() as ctx:
        _echo_summary("Content", ctx.engine.process_queue())
        if pull:
            _echo_summary("Charters", ctx.charters.sync_all())
        else:
            _echo_summary("Charters", ctx.charters.push_pending_charters())

        counts = ctx.engine.refresh_counts()
        if counts.pending or counts.failed:
            click.echo(f"{counts.pending} pending, {counts.failed} failed")


@click.command()
def watch() -> None:
    """Sync continuously until interrupted (Ctrl+C)."""
    with open_context() as ctx:
        ctx.charters.pull_my_charters()
        ctx.coordinator.start()
        ctx.coordinator.trigger_immediate_sync()
        click.echo("Watching for pending operations. Press Ctrl+C to stop.")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            click.echo("\nStopping...")
        logger.info(
            "Stopped with %d pending and %d failed operations",
            ctx.coordinator.pending_count,
            ctx.coordinator.failed_count,
        )


@click.command()
@click.argument("content_id")
@click.option("--no-sync", is_flag=True, help="Only queue, do not drain now.")
def retry(content_id: str, no_sync: bool) -> None:
    """Retry the failed sync of a library item."""
    with open_context() as ctx:
        try:
            operation_id = ctx.visibility.retry_sync(content_id)
        except (PublishError, StoreError) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        if operation_id is None:
            click.echo(f"Nothing to retry for {content_id}.")
            return
        click.echo(f"Queued operation #{operation_id}")
        if not no_sync:
            _echo_summary("Content", ctx.engine.process_queue())


def _operation_state(operation: SyncOperation, max_retries: int) -> str:
    if operation.synced_at is not None:
        return "synced"
    if operation.cancelled_at is not None:
        return "cancelled"
    if operation.failed_at is not None or operation.retry_count >= max_retries:
        return "failed"
    return "pending"


@click.command()
@click.argument("content_id")
def history(content_id: str) -> None:
    """List the sync operations queued for a library item."""
    with open_context() as ctx:
        operations = ctx.store.list_operations(content_id)
        if not operations:
            click.echo(f"No operations for {content_id}.")
            return
        for op in operations:
            state = _operation_state(op, ctx.engine.max_retries)
            line = f"#{op.id:<5} {op.kind.value:<15} {state:<9} retries={op.retry_count}"
            if op.last_error:
                line += f"  {op.last_error}"
            click.echo(line)
