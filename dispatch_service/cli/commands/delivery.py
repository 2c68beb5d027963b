"""One-shot delivery engine commands.

Each command connects to the broker without consuming, runs a single pass
and exits. They are useful from cron, after an outage, or while debugging.
"""

import sys
from uuid import UUID

import click

from dispatch_service.cli.utils import coro, error, info, success


async def _one_shot_runtime():
    from dispatch_service.runtime import DispatchRuntime

    try:
        runtime = DispatchRuntime.build(consume=False)
    except ValueError as e:
        error(f"Configuration error: {e}")
        sys.exit(1)

    try:
        await runtime.start(background=False)
    except ConnectionError as e:
        error(str(e))
        await runtime.stop()
        sys.exit(1)
    return runtime


@click.command(name="drain")
@coro
async def drain() -> None:
    """Publish one batch of pending outbox events."""
    runtime = await _one_shot_runtime()
    try:
        published = await runtime.outbox_processor.drain_once()
    finally:
        await runtime.stop()
    success(f"Published {published} outbox event(s)")


@click.command(name="sweep")
@coro
async def sweep() -> None:
    """Enqueue one batch of due deliveries."""
    runtime = await _one_shot_runtime()
    try:
        enqueued = await runtime.sweeper.sweep_once()
    finally:
        await runtime.stop()
    success(f"Enqueued {enqueued} due delivery(ies)")


@click.command(name="replay")
@click.argument("tenant_id")
@click.argument("delivery_id", type=click.UUID)
@coro
async def replay(tenant_id: str, delivery_id: UUID) -> None:
    """Reset a delivery to pending and request an attempt."""
    from dispatch_service.core.database.exceptions import NotFoundError

    runtime = await _one_shot_runtime()
    try:
        await runtime.replay(tenant_id, delivery_id)
    except NotFoundError:
        error(f"Delivery {delivery_id} not found for tenant {tenant_id}")
        sys.exit(1)
    finally:
        await runtime.stop()

    info(f"Delivery {delivery_id} reset to pending")
    success("Replay requested")


@click.command(name="prune-outbox")
@click.option(
    "--older-than-days",
    type=click.IntRange(min=0),
    default=7,
    show_default=True,
    help="Delete published events older than this many days",
)
@coro
async def prune_outbox(older_than_days: int) -> None:
    """Delete old published outbox events. Pending events are kept."""
    from dispatch_service.core.settings import get_db_settings
    from dispatch_service.infra.database.session import (
        create_engine_from_settings,
        create_session_factory,
        session_scope,
    )
    from dispatch_service.infra.events.outbox.repository import OutboxRepository

    db_settings = get_db_settings()
    if not db_settings.is_configured:
        error("Database is not configured (set DB_DATABASE_URL)")
        sys.exit(1)

    engine = create_engine_from_settings(db_settings)
    try:
        async with session_scope(create_session_factory(engine)) as session:
            deleted = await OutboxRepository().cleanup_published(session, older_than_days=older_than_days)
            await session.commit()
    finally:
        await engine.dispose()
    success(f"Pruned {deleted} published outbox event(s)")
