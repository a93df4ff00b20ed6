"""
API request and response schemas.
"""

from .integrations import (
    AccountListResponse,
    ConnectedAccountResponse,
    ConnectResponse,
    DashboardMetricsResponse,
    IntegrationListResponse,
    IntegrationStatusResponse,
    PlatformMetricsResponse,
    SyncJobListResponse,
    SyncJobResponse,
)
from .subscription import (
    AccessCheckResponse,
    CapabilitiesResponse,
    CapabilityCheckResponse,
    PlanListResponse,
    PlanResponse,
    SubscriptionResponse,
    SubscriptionUpdateRequest,
)

__all__ = [
    "AccessCheckResponse",
    "AccountListResponse",
    "CapabilitiesResponse",
    "CapabilityCheckResponse",
    "ConnectedAccountResponse",
    "ConnectResponse",
    "DashboardMetricsResponse",
    "IntegrationListResponse",
    "IntegrationStatusResponse",
    "PlanListResponse",
    "PlanResponse",
    "PlatformMetricsResponse",
    "SubscriptionResponse",
    "SubscriptionUpdateRequest",
    "SyncJobListResponse",
    "SyncJobResponse",
]
