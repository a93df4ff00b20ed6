"""
Subscription API routes.

Derives per-user subscriptions from upstream plan and trial data and answers
entitlement checks against them. Users are identified by an opaque id; the
caller is responsible for authenticating them.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from api.dependencies import EngineDep, RegistryDep, SessionDep
from api.schemas.subscription import (
    AccessCheckResponse,
    CapabilitiesResponse,
    CapabilityCheckResponse,
    SubscriptionResponse,
    SubscriptionUpdateRequest,
)
from core.domain.subscription import CapabilitySet
from services.subscription_engine import SubscriptionEngine, SubscriptionSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


def _to_response(session: SubscriptionSession, engine: SubscriptionEngine) -> SubscriptionResponse:
    sub = session.subscription
    return SubscriptionResponse(
        user_id=session.user_id,
        plan=sub.plan.value,
        status=sub.status.value,
        is_trial=sub.is_trial,
        trial_ends_at=sub.trial_ends_at,
        features=CapabilitiesResponse.model_validate(sub.features),
        account_type=sub.account_type,
        plan_display_name=engine.plan_display_name(sub),
        days_left=engine.days_left_in_trial(sub),
        is_free_user=engine.is_free_user(sub),
        trial_expired=engine.is_trial_expired(sub),
        show_plan_selection=session.show_plan_selection,
        last_fetched=session.last_fetched,
    )


# ============================================================================
# Subscription Lifecycle
# ============================================================================


@router.put("/{user_id}", response_model=SubscriptionResponse)
async def set_subscription(
    user_id: str,
    request: SubscriptionUpdateRequest,
    registry: RegistryDep,
    engine: EngineDep,
):
    """Derive a user's subscription from their stored plan and trial data."""
    session = registry.get_or_create(user_id)
    session.set_from_user(request.plan, request.trial_ends_at, request.account_type)
    logger.info(
        "Subscription set for user %s: %s (%s)",
        user_id,
        session.subscription.plan.value,
        session.subscription.status.value,
        extra={"user_id": user_id, "plan": session.subscription.plan.value},
    )
    return _to_response(session, engine)


@router.get("/{user_id}", response_model=SubscriptionResponse)
async def get_subscription(session: SessionDep, engine: EngineDep):
    """Get a user's subscription, re-checking the trial first."""
    session.check_trial_status()
    return _to_response(session, engine)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_subscription(user_id: str, registry: RegistryDep):
    """Forget a user's subscription session (e.g. on logout)."""
    if not registry.remove(user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No subscription for this user",
        )


@router.post("/{user_id}/plan-selection/dismiss", response_model=SubscriptionResponse)
async def dismiss_plan_selection(session: SessionDep, engine: EngineDep):
    """Hide the plan selection prompt."""
    session.dismiss_plan_selection()
    return _to_response(session, engine)


# ============================================================================
# Entitlement Checks
# ============================================================================


@router.get("/{user_id}/capabilities/{name}", response_model=CapabilityCheckResponse)
async def check_capability(name: str, session: SessionDep, engine: EngineDep):
    """Check a single capability. Accepts snake_case or camelCase names."""
    session.check_trial_status()
    return CapabilityCheckResponse(
        capability=CapabilitySet.resolve_name(name) or name,
        granted=engine.has_capability(session.subscription, name),
    )


@router.get("/{user_id}/access", response_model=AccessCheckResponse)
async def check_access(
    session: SessionDep,
    engine: EngineDep,
    plan: Optional[str] = Query(None, max_length=50, description="Minimum plan required"),
    page: Optional[str] = Query(None, max_length=50, description="Page to open"),
):
    """Check a minimum-plan requirement, page access, or both."""
    if plan is None and page is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide a plan or a page to check",
        )

    session.check_trial_status()
    sub = session.subscription
    allowed = True
    if plan is not None:
        allowed = allowed and engine.is_at_least(sub, plan)
    if page is not None:
        allowed = allowed and engine.can_access_page(sub, page)
    return AccessCheckResponse(plan=plan, page=page, allowed=allowed)
