"""Start/stop handle for in-process polling loops.

The outbox drain and the due-retry sweeper both repeat a pass on an
interval. ``PeriodicWorker`` owns the asyncio task, the stop signal and the
error handling; subclasses only implement ``run_once``.

Example:
    class Heartbeat(PeriodicWorker):
        async def run_once(self) -> int:
            logger.info("alive")
            return 0

    worker = Heartbeat(interval=5.0, name="heartbeat")
    await worker.start()
    ...
    await worker.stop()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

logger = logging.getLogger(__name__)


class PeriodicWorker:
    """Background loop that calls ``run_once`` every ``interval`` seconds.

    Stopping is immediate: the wait between passes listens on an
    ``asyncio.Event`` instead of sleeping, so ``stop()`` never waits out a
    full interval. A pass that is already running is allowed to finish.

    Attributes:
        interval: Seconds between passes when idle
        name: Label used in log records
    """

    def __init__(self, *, interval: float, name: str | None = None) -> None:
        if interval <= 0:
            msg = f"interval must be positive, got {interval}"
            raise ValueError(msg)
        self.interval = interval
        self.name = name or type(self).__name__

        self._task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def running(self) -> bool:
        """Whether the background loop is active."""
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        """Run a single pass.

        Returns:
            Number of items handled in this pass
        """
        raise NotImplementedError

    def next_delay(self, handled: int) -> float:
        """Seconds to wait before the next pass.

        Args:
            handled: Value returned by the pass that just finished
        """
        return self.interval

    async def start(self) -> None:
        """Start the background loop. Calling it twice is a no-op."""
        if self.running:
            logger.warning(
                "Periodic worker already running",
                extra={"worker": self.name, "operation": "periodic.start"},
            )
            return

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_loop(), name=self.name)
        logger.info(
            "Periodic worker started",
            extra={"worker": self.name, "interval": self.interval, "operation": "periodic.start"},
        )

    async def stop(self, timeout: float = 30.0) -> None:
        """Stop the loop, letting an in-flight pass finish within ``timeout``."""
        if self._task is None:
            return

        if self._stop_event is not None:
            self._stop_event.set()

        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except TimeoutError:
            logger.warning(
                "Periodic worker shutdown timed out, cancelling",
                extra={"worker": self.name, "operation": "periodic.stop"},
            )
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        finally:
            self._task = None
            self._stop_event = None

        logger.info(
            "Periodic worker stopped",
            extra={"worker": self.name, "operation": "periodic.stop"},
        )

    async def _run_loop(self) -> None:
        """Main loop: pass, wait, repeat until stopped."""
        stop_event = self._stop_event
        assert stop_event is not None

        while not stop_event.is_set():
            try:
                handled = await self.run_once()
                delay = self.next_delay(handled)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(
                    "Error in periodic worker pass",
                    extra={"worker": self.name, "operation": "periodic.run_once"},
                )
                # Back off on errors to avoid a tight error loop
                delay = self.interval * 2

            if delay <= 0:
                # More work is waiting; yield to other tasks and go again
                await asyncio.sleep(0)
                continue

            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=delay)


__all__ = ["PeriodicWorker"]
