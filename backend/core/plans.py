"""
Plan configuration for subscription tiers.

This module is the single source of truth for plan ranks and capabilities.
It lives in core/ so both service and API layers can import from it
without creating circular dependencies. Nothing outside this module should
compare plan identifiers as strings; use rank() and capabilities_of().
"""

from typing import Any, Optional

from core.domain.subscription import CapabilitySet, PlanTier

# Identifiers written by older releases for the 7-day trial
LEGACY_TRIAL_PLANS = frozenset({"free_trial"})

PLAN_RANKS: dict[PlanTier, int] = {
    PlanTier.NONE: 0,
    PlanTier.STARTER: 1,
    PlanTier.GROWTH: 2,
    PlanTier.FREE: 3,  # same rank as pro, for the trial duration only
    PlanTier.PRO: 3,
    PlanTier.ENTERPRISE: 4,
}

PLAN_FEATURES: dict[PlanTier, CapabilitySet] = {
    PlanTier.NONE: CapabilitySet(),
    PlanTier.FREE: CapabilitySet(
        dashboard=True,
        ad_manager=True,
        campaign_builder=True,
        creative_studio=True,
        agent_command_centre=True,
        advanced_analytics=True,
        integrations=True,
        priority_support=False,
        custom_integrations=False,
        api_access=True,
        team_members=3,
    ),
    PlanTier.STARTER: CapabilitySet(
        dashboard=True,
        ad_manager=True,
        integrations=True,
        team_members=2,
    ),
    PlanTier.GROWTH: CapabilitySet(
        dashboard=True,
        ad_manager=True,
        campaign_builder=True,
        creative_studio=True,
        integrations=True,
        api_access=True,
        team_members=5,
    ),
    PlanTier.PRO: CapabilitySet(
        dashboard=True,
        ad_manager=True,
        campaign_builder=True,
        creative_studio=True,
        agent_command_centre=True,
        advanced_analytics=True,
        integrations=True,
        priority_support=True,
        custom_integrations=True,
        api_access=True,
        team_members=10,
    ),
    PlanTier.ENTERPRISE: CapabilitySet(
        dashboard=True,
        ad_manager=True,
        campaign_builder=True,
        creative_studio=True,
        agent_command_centre=True,
        advanced_analytics=True,
        integrations=True,
        priority_support=True,
        custom_integrations=True,
        api_access=True,
        team_members=-1,
    ),
}

PLAN_DISPLAY_NAMES: dict[PlanTier, str] = {
    PlanTier.NONE: "No Plan",
    PlanTier.FREE: "Free Plan",
    PlanTier.STARTER: "Starter",
    PlanTier.GROWTH: "Growth",
    PlanTier.PRO: "Pro",
    PlanTier.ENTERPRISE: "Enterprise",
}

# Marketing copy shown next to each plan in the plan selection flow
PLANS: dict[str, dict[str, Any]] = {
    PlanTier.FREE.value: {
        "name": PLAN_DISPLAY_NAMES[PlanTier.FREE],
        "trial_only": True,
        "features": [
            "7-day trial with full access",
            "Agent Command Centre",
            "Advanced analytics",
            "Up to 3 team members",
        ],
    },
    PlanTier.STARTER.value: {
        "name": PLAN_DISPLAY_NAMES[PlanTier.STARTER],
        "trial_only": False,
        "features": [
            "Unified dashboard",
            "Ad Manager",
            "All integrations",
            "Up to 2 team members",
        ],
    },
    PlanTier.GROWTH.value: {
        "name": PLAN_DISPLAY_NAMES[PlanTier.GROWTH],
        "trial_only": False,
        "features": [
            "Everything in Starter",
            "Campaign Builder",
            "Creative Studio",
            "API access",
            "Up to 5 team members",
        ],
    },
    PlanTier.PRO.value: {
        "name": PLAN_DISPLAY_NAMES[PlanTier.PRO],
        "trial_only": False,
        "features": [
            "Everything in Growth",
            "Agent Command Centre",
            "Advanced analytics",
            "Priority support",
            "Custom integrations",
            "Up to 10 team members",
        ],
    },
    PlanTier.ENTERPRISE.value: {
        "name": PLAN_DISPLAY_NAMES[PlanTier.ENTERPRISE],
        "trial_only": False,
        "features": [
            "Everything in Pro",
            "Unlimited team members",
            "Dedicated support",
        ],
    },
}


def parse_plan(raw: Any) -> Optional[PlanTier]:
    """Return the PlanTier for a raw identifier, or None when unrecognized."""
    if isinstance(raw, PlanTier):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        return PlanTier(raw.strip().lower())
    except ValueError:
        return None


def is_legacy_trial(raw: Any) -> bool:
    """Check whether *raw* is a trial identifier from an older release."""
    return isinstance(raw, str) and raw.strip().lower() in LEGACY_TRIAL_PLANS


def rank(plan: Any) -> int:
    """Rank of a plan; unknown identifiers rank as `none`."""
    tier = parse_plan(plan) or PlanTier.NONE
    return PLAN_RANKS[tier]


def capabilities_of(plan: Any) -> CapabilitySet:
    """Capabilities of a plan; unknown identifiers get the all-false `none` set."""
    tier = parse_plan(plan) or PlanTier.NONE
    return PLAN_FEATURES[tier]


def display_name(plan: Any) -> str:
    tier = parse_plan(plan) or PlanTier.NONE
    return PLAN_DISPLAY_NAMES[tier]


def plan_catalogue() -> list[dict[str, Any]]:
    """Purchasable and trial plans ordered by rank, for the plan selection flow."""
    catalogue = []
    for tier in sorted(PLANS, key=lambda p: (rank(p), p != PlanTier.FREE.value)):
        entry = PLANS[tier]
        catalogue.append(
            {
                "plan": tier,
                "name": entry["name"],
                "rank": rank(tier),
                "trial_only": entry["trial_only"],
                "features": list(entry["features"]),
                "capabilities": capabilities_of(tier).to_dict(),
            }
        )
    return catalogue
