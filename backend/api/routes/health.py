"""Health check endpoints."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter

from infrastructure.config import get_settings
from services import get_connection_store, get_session_registry, get_trial_monitor

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}


@router.get("/health/services")
async def services_check():
    """Report the state of the in-process engines."""
    store = get_connection_store()
    return {
        "status": "healthy",
        "trial_monitor": "running" if get_trial_monitor().is_running else "stopped",
        "sessions": len(get_session_registry()),
        "connected_accounts": len(store.list_accounts()),
        "timestamp": datetime.now(UTC).isoformat(),
    }
