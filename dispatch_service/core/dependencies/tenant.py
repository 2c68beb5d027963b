"""Tenant resolution for the management API.

The tenant is taken from the ``X-Tenant-ID`` header. Authentication of that
header is the responsibility of the gateway in front of this service.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Header

from dispatch_service.core.exceptions import UnauthorizedException

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"


def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header(alias=TENANT_HEADER)] = None,
) -> str:
    """Tenant of the current request.

    Raises:
        UnauthorizedException: If the header is missing or blank
    """
    tenant_id = (x_tenant_id or "").strip()
    if not tenant_id:
        logger.debug("Request without tenant header rejected")
        raise UnauthorizedException(detail=f"Missing {TENANT_HEADER} header")
    return tenant_id
