"""
Dashboard API routes.
"""

from fastapi import APIRouter

from api.dependencies import StoreDep
from api.schemas.integrations import DashboardMetricsResponse

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/metrics", response_model=DashboardMetricsResponse)
async def get_dashboard_metrics(store: StoreDep):
    """
    Totals across every connected provider.

    Returns sample data (is_live=false) until the first provider is connected.
    """
    return DashboardMetricsResponse.model_validate(store.dashboard_metrics())
