# Domain Entities
# Pure business objects with no external dependencies
from .integration import (
    AccountStatus,
    ConnectedAccount,
    DashboardTotals,
    IntegrationStatus,
    OAuthStateToken,
    PlatformMetrics,
    SyncHealth,
    SyncJob,
    SyncJobStatus,
)
from .subscription import CapabilitySet, PlanTier, Subscription, SubscriptionStatus

__all__ = [
    "PlanTier",
    "SubscriptionStatus",
    "CapabilitySet",
    "Subscription",
    "AccountStatus",
    "SyncHealth",
    "SyncJobStatus",
    "ConnectedAccount",
    "PlatformMetrics",
    "SyncJob",
    "OAuthStateToken",
    "DashboardTotals",
    "IntegrationStatus",
]
