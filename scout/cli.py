"""
Simple CLI to run scouts manually, initialise the database and start the scheduler.
"""
from __future__ import annotations

import json
import logging
from typing import Tuple

import click
from dotenv import load_dotenv

from scout import get_runtime
from scout.errors import ConfigError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool):
    load_dotenv()
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


@cli.command()
@click.argument("name")
@click.option("--group", "groups", multiple=True, help="Only run these groups (repeatable).")
def run(name: str, groups: Tuple[str, ...]):
    """Run one scout once and print its stats."""
    runtime = get_runtime()
    try:
        result = runtime.run(name, groups=list(groups) or None)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))


@cli.command("list")
def list_scouts():
    """List configured scouts."""
    for entry in get_runtime().describe():
        groups = f" groups={','.join(entry['groups'])}" if entry["groups"] else ""
        click.echo(f"{entry['name']}: cap={entry['daily_cap']} schedule={entry['schedule']}{groups}")


@cli.command("init-db")
def init_db():
    """Create the seen_posts and topics tables."""
    runtime = get_runtime()
    runtime.store.init_db()
    click.echo(f"Database ready at {runtime.settings.database_url}")


@cli.command()
def schedule():
    """Run every scout on its cron schedule (blocking)."""
    from scout.schedulers.aps import run_scheduler

    run_scheduler(get_runtime())


@cli.command()
@click.argument("message")
@click.option("--title", default=None, help="Send as a card with this title.")
def notify(message: str, title: str):
    """Send a standalone notification to the webhook."""
    request = {"type": "card", "title": title, "content": message} if title else {"type": "text", "message": message}
    try:
        ok = get_runtime().dispatcher.send_notification(request)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    if not ok:
        raise click.ClickException("Webhook rejected the notification")
    click.echo("sent")


if __name__ == "__main__":  # pragma: no cover
    cli()
