"""Base service class for business logic."""

from __future__ import annotations

import logging

from dispatch_service.infra.logging import get_lazy_logger


class BaseService:
    """Base class for all service classes.

    Loggers:
        - self.logger: Standard logger for INFO/WARNING/ERROR (always evaluated)
        - self._lazy: Lazy logger for DEBUG (zero overhead when DEBUG disabled)

    Example:
        class EndpointAuditService(BaseService):
            def __init__(self, session: AsyncSession):
                super().__init__()
                self._session = session

            async def audit(self, tenant_id: str) -> None:
                self.logger.info("Auditing endpoints", extra={"tenant_id": tenant_id})
                self._lazy.debug(lambda: f"State: {expensive_computation()}")
    """

    def __init__(self) -> None:
        """Initialize base service with loggers."""
        class_name = self.__class__.__name__
        self.logger = logging.getLogger(class_name)
        self._lazy = get_lazy_logger(class_name)


__all__ = ["BaseService"]
