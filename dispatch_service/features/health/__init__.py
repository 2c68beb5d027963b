"""Health check feature module.

## Endpoints

- `/health` - Service status with the broker connection check
- `/health/live` - Liveness probe (process is up)
"""

from dispatch_service.features.health.router import router

__all__ = ["router"]
