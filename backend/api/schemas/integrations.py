"""
Integration and dashboard metrics API schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Connection Schemas
# ============================================================================


class ConnectResponse(BaseModel):
    """Response containing the provider authorization URL."""

    provider: str
    auth_url: str = Field(..., description="Provider OAuth authorization URL")
    state: str = Field(..., description="OAuth state parameter for security")


class ConnectedAccountResponse(BaseModel):
    """Connected provider account."""

    id: str
    provider: str
    account_id: str
    account_name: str
    email: Optional[str] = None
    status: str
    connected_at: datetime
    last_sync: Optional[datetime] = None
    sync_status: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class AccountListResponse(BaseModel):
    """List of connected accounts."""

    accounts: List[ConnectedAccountResponse]
    total: int


class IntegrationStatusResponse(BaseModel):
    """Connection status of one registered provider."""

    provider: str
    name: str
    icon: str
    category: str
    status: str = Field(..., description="connected or not_connected")
    connected_at: Optional[datetime] = None
    last_sync: Optional[datetime] = None
    health: Optional[str] = None
    account_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class IntegrationListResponse(BaseModel):
    """Every registered provider, connected or not."""

    integrations: List[IntegrationStatusResponse]
    connected_count: int
    connected_providers: List[str] = Field(
        default_factory=list, description="Providers with at least one account, in connect order"
    )


# ============================================================================
# Metrics Schemas
# ============================================================================


class PlatformMetricsResponse(BaseModel):
    """Latest metrics snapshot for one provider."""

    provider: str
    spend: float
    revenue: float
    conversions: int
    impressions: int
    clicks: int
    roas: float
    ctr: float
    cpa: float
    currency: str
    last_updated: datetime

    model_config = ConfigDict(from_attributes=True)


class SyncJobResponse(BaseModel):
    """One recorded sync run."""

    id: str
    provider: str
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    records_processed: int = 0
    errors: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class SyncJobListResponse(BaseModel):
    """Sync history for a provider, oldest first."""

    provider: str
    jobs: List[SyncJobResponse]


class DashboardMetricsResponse(BaseModel):
    """Totals across every connected provider."""

    total_spend: float
    total_revenue: float
    conversions: int
    roas: float
    avg_cpa: float
    impressions: int
    clicks: int
    is_live: bool = Field(..., description="False when showing sample data")
    connected_platforms: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
