"""
Subscription and plan API schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Plan Schemas
# ============================================================================


class CapabilitiesResponse(BaseModel):
    """Capabilities unlocked by a plan."""

    dashboard: bool = False
    ad_manager: bool = False
    campaign_builder: bool = False
    creative_studio: bool = False
    agent_command_centre: bool = False
    advanced_analytics: bool = False
    integrations: bool = False
    priority_support: bool = False
    custom_integrations: bool = False
    api_access: bool = False
    team_members: int = Field(0, description="Seat limit, -1 for unlimited")

    model_config = ConfigDict(from_attributes=True)


class PlanResponse(BaseModel):
    """One entry of the plan catalogue."""

    plan: str
    name: str
    rank: int
    trial_only: bool
    features: List[str] = Field(default_factory=list)
    capabilities: CapabilitiesResponse


class PlanListResponse(BaseModel):
    """Plan catalogue ordered by rank."""

    plans: List[PlanResponse]


# ============================================================================
# Subscription Schemas
# ============================================================================


class SubscriptionUpdateRequest(BaseModel):
    """Upstream user data a subscription is derived from."""

    plan: Optional[str] = Field(None, max_length=50, description="Stored plan identifier")
    trial_ends_at: Optional[datetime] = Field(None, description="Trial expiry timestamp")
    account_type: Optional[str] = Field(None, max_length=50)


class SubscriptionResponse(BaseModel):
    """Subscription view for a user session."""

    user_id: str
    plan: str
    status: str
    is_trial: bool
    trial_ends_at: Optional[datetime] = None
    features: CapabilitiesResponse
    account_type: Optional[str] = None
    plan_display_name: str
    days_left: int = Field(..., ge=0, description="Whole days left in the trial")
    is_free_user: bool = Field(False, description="On the trial-only free tier")
    trial_expired: bool = Field(False, description="Trial end has passed")
    show_plan_selection: bool = Field(False, description="Whether the user must choose a plan")
    last_fetched: Optional[datetime] = None


class CapabilityCheckResponse(BaseModel):
    """Result of a single capability lookup."""

    capability: str
    granted: bool


class AccessCheckResponse(BaseModel):
    """Result of a plan-rank and/or page access check."""

    plan: Optional[str] = None
    page: Optional[str] = None
    allowed: bool
