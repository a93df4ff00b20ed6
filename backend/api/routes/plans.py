"""
Plan catalogue API routes.
"""

from fastapi import APIRouter

from api.schemas.subscription import PlanListResponse, PlanResponse
from core.plans import plan_catalogue

router = APIRouter(prefix="/plans", tags=["Plans"])


@router.get("", response_model=PlanListResponse)
async def list_plans():
    """List every plan ordered by rank, trial plan first among equals."""
    return PlanListResponse(plans=[PlanResponse(**entry) for entry in plan_catalogue()])
