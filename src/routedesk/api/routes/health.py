"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_supabase_client():
    """Lazy import to avoid startup failures."""
    from ...db.supabase import get_supabase_client
    return get_supabase_client()


@router.get("/health/database", status_code=status.HTTP_200_OK)
def health_database() -> dict:
    """Check that the routes table can be queried."""
    client = _get_supabase_client()
    if client is None:
        return {"service": "supabase", "healthy": False, "error": "not configured"}
    try:
        client.table(settings.routes_table).select("id").limit(1).execute()
        return {"service": "supabase", "healthy": True}
    except Exception as e:
        return {"service": "supabase", "healthy": False, "error": str(e)}
