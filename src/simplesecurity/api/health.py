"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running
and the user store is reachable.
"""

from fastapi import APIRouter, Depends

from simplesecurity import __version__
from simplesecurity.api.deps import get_provider
from simplesecurity.provider import SecurityProvider

router = APIRouter()


@router.get("/health")
async def health_check(provider: SecurityProvider = Depends(get_provider)):
    """Check server health and store connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await provider.ping()
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
