"""FastAPI dependencies shared by feature routers."""

from dispatch_service.core.dependencies.database import get_db_session
from dispatch_service.core.dependencies.runtime import get_metrics, get_runtime, get_scheduler
from dispatch_service.core.dependencies.tenant import TENANT_HEADER, get_tenant_id

__all__ = [
    "TENANT_HEADER",
    "get_db_session",
    "get_metrics",
    "get_runtime",
    "get_scheduler",
    "get_tenant_id",
]
