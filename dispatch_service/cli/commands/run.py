"""Long-running process commands: the delivery worker and the API server."""

import asyncio
import contextlib
import signal
import sys

import click

from dispatch_service.cli.utils import coro, error, header, info, success


@click.command(name="worker")
@coro
async def worker() -> None:
    """Run the delivery engine until interrupted.

    Consumes domain events and delivery-attempt messages, drains the outbox
    and sweeps due retries. Stops cleanly on SIGINT or SIGTERM.
    """
    from dispatch_service.runtime import DispatchRuntime

    header("Dispatch worker")

    try:
        runtime = DispatchRuntime.build()
    except ValueError as e:
        error(f"Configuration error: {e}")
        sys.exit(1)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on every platform's event loop
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

    try:
        await runtime.start()
    except ConnectionError as e:
        error(str(e))
        await runtime.stop()
        sys.exit(1)

    info(f"Consuming: {', '.join(runtime.subscribed_queues)}")
    success("Worker running, press Ctrl+C to stop")

    try:
        await stop_event.wait()
    finally:
        await runtime.stop()
        success("Worker stopped")


@click.command(name="serve")
@click.option("--host", default=None, help="Bind address (default: APP_HOST)")
@click.option("--port", default=None, type=int, help="Bind port (default: APP_PORT)")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload (development)")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the management API with the delivery engine in-process."""
    import uvicorn

    from dispatch_service.core.settings import get_app_settings

    app_settings = get_app_settings()
    bind_host = host or app_settings.host
    bind_port = port or app_settings.port

    header("Dispatch API server")
    info(f"Listening on http://{bind_host}:{bind_port}")

    uvicorn.run(
        "dispatch_service.app.main:create_app",
        factory=True,
        host=bind_host,
        port=bind_port,
        reload=reload,
        log_config=None,
    )
