"""Database building blocks: declarative base, mixins, repository, errors."""

from dispatch_service.core.database.base import (
    NAMING_CONVENTION,
    Base,
    JSONType,
    TenantMixin,
    TimestampMixin,
    UUIDPKMixin,
    utcnow,
)
from dispatch_service.core.database.exceptions import NotFoundError, RepositoryError
from dispatch_service.core.database.repository import BaseRepository, SearchResult

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "JSONType",
    "NotFoundError",
    "RepositoryError",
    "SearchResult",
    "TenantMixin",
    "TimestampMixin",
    "UUIDPKMixin",
    "utcnow",
]
