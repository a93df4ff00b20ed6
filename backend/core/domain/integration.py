"""Integration domain entities: connected accounts, metrics snapshots, sync jobs."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class AccountStatus(StrEnum):
    """Connection state of a third-party account."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    EXPIRED = "expired"
    SYNCING = "syncing"
    ERROR = "error"


class SyncHealth(StrEnum):
    """Health of the most recent sync."""

    HEALTHY = "healthy"
    DELAYED = "delayed"
    ERROR = "error"


class SyncJobStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class ConnectedAccount:
    """A linked account on an external provider."""

    id: str
    provider: str
    account_id: str
    account_name: str
    status: AccountStatus
    connected_at: datetime
    email: str | None = None
    last_sync: datetime | None = None
    sync_status: SyncHealth | None = None
    permissions: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary format."""
        return {
            "id": self.id,
            "provider": self.provider,
            "account_id": self.account_id,
            "account_name": self.account_name,
            "email": self.email,
            "status": self.status.value,
            "connected_at": _iso(self.connected_at),
            "last_sync": _iso(self.last_sync),
            "sync_status": self.sync_status.value if self.sync_status else None,
            "permissions": list(self.permissions),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class PlatformMetrics:
    """Current performance snapshot for one provider (not a time series)."""

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

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "spend": self.spend,
            "revenue": self.revenue,
            "conversions": self.conversions,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "roas": self.roas,
            "ctr": self.ctr,
            "cpa": self.cpa,
            "currency": self.currency,
            "last_updated": _iso(self.last_updated),
        }


@dataclass(frozen=True)
class SyncJob:
    """Record of one sync attempt for a provider."""

    id: str
    provider: str
    status: SyncJobStatus
    started_at: datetime
    completed_at: datetime | None = None
    records_processed: int = 0
    errors: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "provider": self.provider,
            "status": self.status.value,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "records_processed": self.records_processed,
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class OAuthStateToken:
    """Single-use correlation token for an OAuth round trip."""

    state: str
    provider: str
    issued_at: datetime


@dataclass(frozen=True)
class DashboardTotals:
    """Dashboard-level totals across every connected provider."""

    total_spend: float
    total_revenue: float
    conversions: int
    roas: float
    avg_cpa: float
    impressions: int
    clicks: int
    is_live: bool
    connected_platforms: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_spend": self.total_spend,
            "total_revenue": self.total_revenue,
            "conversions": self.conversions,
            "roas": self.roas,
            "avg_cpa": self.avg_cpa,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "is_live": self.is_live,
            "connected_platforms": list(self.connected_platforms),
        }


@dataclass(frozen=True)
class IntegrationStatus:
    """Per-provider row for the integrations page, connected or not."""

    provider: str
    name: str
    icon: str
    category: str
    status: str  # connected | not_connected
    connected_at: datetime | None = None
    last_sync: datetime | None = None
    health: str | None = None
    account_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "name": self.name,
            "icon": self.icon,
            "category": self.category,
            "status": self.status,
            "connected_at": _iso(self.connected_at),
            "last_sync": _iso(self.last_sync),
            "health": self.health,
            "account_id": self.account_id,
        }
