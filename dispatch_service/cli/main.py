"""Main CLI entry point for dispatch-service."""

import click

from dispatch_service import __version__
from dispatch_service.cli.commands import database, delivery, run
from dispatch_service.infra.logging.config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="dispatch-service")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Dispatch Service CLI - reliable event delivery to webhook endpoints.

    \b
    Commands:
      worker        Run the delivery engine until interrupted
      serve         Run the management API (engine in-process)
      drain         Publish one batch of pending outbox events
      sweep         Enqueue one batch of due deliveries
      replay        Reset a delivery to pending and attempt it again
      prune-outbox  Delete old published outbox events
      init-db       Create the database tables

    \b
    Quick Start:
      dispatch-service init-db
      dispatch-service worker
    """
    ctx.ensure_object(dict)


cli.add_command(run.worker)
cli.add_command(run.serve)
cli.add_command(delivery.drain)
cli.add_command(delivery.sweep)
cli.add_command(delivery.replay)
cli.add_command(delivery.prune_outbox)
cli.add_command(database.init_db)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
