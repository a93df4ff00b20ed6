"""Subscription domain entities."""
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import StrEnum
from typing import Any, Optional


class PlanTier(StrEnum):
    """Plan identifiers, ordered by rank in core.plans (not by string value)."""
    NONE = "none"
    STARTER = "starter"
    GROWTH = "growth"
    FREE = "free"  # trial-only tier
    PRO = "pro"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(StrEnum):
    """Lifecycle status of a derived subscription."""
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    EXPIRED = "expired"
    NONE = "none"


# camelCase names used by the dashboard front-end
CAPABILITY_ALIASES = {
    "adManager": "ad_manager",
    "campaignBuilder": "campaign_builder",
    "creativeStudio": "creative_studio",
    "agentCommandCentre": "agent_command_centre",
    "advancedAnalytics": "advanced_analytics",
    "prioritySupport": "priority_support",
    "customIntegrations": "custom_integrations",
    "teamMembers": "team_members",
    "apiAccess": "api_access",
}


@dataclass(frozen=True)
class CapabilitySet:
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

    # -1 means unlimited
    team_members: int = 0

    @classmethod
    def names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @staticmethod
    def resolve_name(name: str) -> Optional[str]:
        """Map a snake_case or camelCase capability name to the field name."""
        if not isinstance(name, str):
            return None
        name = CAPABILITY_ALIASES.get(name, name)
        return name if name in CapabilitySet.names() else None

    def get(self, name: str) -> bool | int | None:
        """Return the capability value, or None for an unknown name."""
        resolved = self.resolve_name(name)
        if resolved is None:
            return None
        return getattr(self, resolved)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Subscription:
    """Subscription view derived from a user's plan and trial data."""

    plan: PlanTier = PlanTier.NONE
    status: SubscriptionStatus = SubscriptionStatus.NONE
    is_trial: bool = False
    trial_ends_at: Optional[datetime] = None
    features: CapabilitySet = field(default_factory=CapabilitySet)
    account_type: Optional[str] = None

    @property
    def is_expired(self) -> bool:
        return self.status == SubscriptionStatus.EXPIRED

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain, JSON-friendly dictionary."""
        return {
            "plan": self.plan.value,
            "status": self.status.value,
            "is_trial": self.is_trial,
            "trial_ends_at": self.trial_ends_at.isoformat() if self.trial_ends_at else None,
            "features": self.features.to_dict(),
            "account_type": self.account_type,
        }
