"""In-process background loops."""

from dispatch_service.infra.tasks.periodic import PeriodicWorker

__all__ = ["PeriodicWorker"]
