"""Database dependencies for FastAPI route handlers.

Route handlers get a request-scoped session from the runtime's session
factory. Background components (outbox processor, sweeper, worker) open
their own sessions from the same factory.

Usage:
    @router.get("/deliveries")
    async def list_deliveries(session: AsyncSession = Depends(get_db_session)):
        ...
"""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_service.core.dependencies.runtime import get_runtime


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession]:
    """FastAPI dependency for database session.

    Yields:
        Database session that is automatically closed after request.
    """
    runtime = get_runtime(request)
    async with runtime.session_factory() as session:
        yield session
