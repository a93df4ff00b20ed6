"""
Connection Store.

Keyed, in-memory storage of connected accounts, OAuth state tokens, sync
jobs and per-provider metrics snapshots. Account status changes go through
an explicit transition table and always replace the whole record.

Design notes:
- Instances are constructed with an injected clock and random source so
  tests can pin time and seed account ids and simulated metrics.
- connect() and sync() are coroutines: they sit on the network edge where a
  real implementation would call the provider's API.
- Syncs of the same provider are serialized with a per-provider lock; if
  several are queued, the last one to complete owns the stored snapshot.
- OAuth token exchange is simulated; no provider tokens are stored.
"""

import asyncio
import logging
import random
import secrets
import string
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import datetime
from typing import Any, Optional

from adapters.integrations import (
    InvalidTransitionError,
    descriptor_of,
    is_registered,
    registered_providers,
)
from core.clock import Clock, utc_now
from core.domain.integration import (
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
from services.metrics_aggregator import aggregate, simulate_metrics

logger = logging.getLogger(__name__)

MetricsFetcher = Callable[[str], Awaitable[PlatformMetrics]]

ALLOWED_TRANSITIONS: dict[AccountStatus, frozenset[AccountStatus]] = {
    AccountStatus.CONNECTED: frozenset(
        {AccountStatus.SYNCING, AccountStatus.EXPIRED, AccountStatus.ERROR, AccountStatus.DISCONNECTED}
    ),
    AccountStatus.SYNCING: frozenset(
        {AccountStatus.CONNECTED, AccountStatus.ERROR, AccountStatus.DISCONNECTED}
    ),
    AccountStatus.ERROR: frozenset({AccountStatus.SYNCING, AccountStatus.DISCONNECTED}),
    AccountStatus.EXPIRED: frozenset({AccountStatus.DISCONNECTED}),
    AccountStatus.DISCONNECTED: frozenset(),
}

# Accounts in these states can be refreshed; expired ones need a new connect
SYNCABLE_STATUSES = frozenset({AccountStatus.CONNECTED, AccountStatus.ERROR})

_ALNUM = string.ascii_lowercase + string.digits


def _random_token(rng: random.Random, length: int) -> str:
    return "".join(rng.choice(_ALNUM) for _ in range(length))


# Provider-shaped external account identifiers
_ACCOUNT_ID_FORMATS: dict[str, Callable[[random.Random], str]] = {
    "google_ads": lambda r: f"{r.randint(100, 999)}-{r.randint(100, 999)}-{r.randint(1000, 9999)}",
    "meta_ads": lambda r: f"act_{r.randint(1_000_000_000, 9_999_999_999)}",
    "tiktok_ads": lambda r: str(r.randint(1_000_000_000, 9_999_999_999)),
    "linkedin_ads": lambda r: str(r.randint(100_000_000, 999_999_999)),
    "shopify": lambda r: f"{_random_token(r, 8)}.myshopify.com",
    "stripe": lambda r: f"acct_{_random_token(r, 16)}",
    "ga4": lambda r: str(r.randint(100_000_000, 999_999_999)),
    "mailchimp": lambda r: _random_token(r, 8),
    "hubspot": lambda r: str(r.randint(10_000_000, 99_999_999)),
}

_ACCOUNT_NAMES = {
    "google_ads": "Acme Corp - Google Ads",
    "meta_ads": "Acme Corp Business Account",
    "tiktok_ads": "Acme Corp TikTok",
    "linkedin_ads": "Acme Corporation Ads",
    "shopify": "acme-store",
    "stripe": "Acme Inc.",
    "ga4": "Acme Corp - GA4 Property",
    "mailchimp": "Acme Marketing List",
    "hubspot": "Acme CRM",
}


class ConnectionStore:
    """In-memory store for provider connections and their metrics."""

    def __init__(
        self,
        clock: Clock = utc_now,
        rng: Optional[random.Random] = None,
        state_ttl_seconds: int = 600,
        max_states: int = 1000,
        metrics_fetcher: Optional[MetricsFetcher] = None,
        variance: float = 0.15,
        currency: str = "USD",
        history_limit: int = 50,
    ) -> None:
        self._clock = clock
        self._rng = rng or random.Random()
        self._state_ttl = state_ttl_seconds
        self._max_states = max_states
        self._variance = variance
        self._currency = currency
        self._history_limit = history_limit
        self._fetch_metrics: MetricsFetcher = metrics_fetcher or self._simulate

        self._accounts: dict[str, ConnectedAccount] = {}
        self._metrics: dict[str, PlatformMetrics] = {}
        self._sync_jobs: dict[str, list[SyncJob]] = {}
        self._states: dict[str, OAuthStateToken] = {}
        self._sync_locks: dict[str, asyncio.Lock] = {}

    # ── OAuth state ──────────────────────────────────────────────────────────

    def issue_state(self, provider: str) -> Optional[str]:
        """Mint a single-use state token for a connect flow.

        Returns None for unregistered providers.
        """
        if not is_registered(provider):
            logger.warning("Refusing to issue OAuth state for unknown provider %r", provider)
            return None

        self._prune_states()
        state = secrets.token_urlsafe(32)
        self._states[state] = OAuthStateToken(state=state, provider=provider, issued_at=self._clock())
        return state

    def consume_state(self, state: str) -> Optional[str]:
        """Validate and consume a state token. Returns the provider or None.

        The token is deleted whatever the outcome, so it can never be replayed.
        """
        token = self._states.pop(state, None)
        if token is None:
            return None
        if self._is_stale(token, self._clock()):
            logger.info("Rejected stale OAuth state for %s", token.provider, extra={"provider": token.provider})
            return None
        return token.provider

    def _is_stale(self, token: OAuthStateToken, now: datetime) -> bool:
        return (now - token.issued_at).total_seconds() > self._state_ttl

    def _prune_states(self) -> None:
        """Drop expired tokens and enforce the size cap (oldest first)."""
        now = self._clock()
        for key in [k for k, t in self._states.items() if self._is_stale(t, now)]:
            del self._states[key]
        if len(self._states) >= self._max_states:
            oldest = sorted(self._states, key=lambda k: self._states[k].issued_at)
            for key in oldest[: len(self._states) - self._max_states + 1]:
                del self._states[key]

    # ── Connections ──────────────────────────────────────────────────────────

    async def connect(
        self,
        provider: str,
        auth_code: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[ConnectedAccount]:
        """
        Connect a provider account and run its initial sync.

        Args:
            provider: Registered provider identifier
            auth_code: Authorization code from the OAuth callback
            metadata: Free-form data kept on the account (e.g. shop domain)

        Returns:
            The connected account after its initial sync, or None if the
            provider is unknown or no authorization code was supplied
        """
        if not is_registered(provider):
            logger.warning("Refusing to connect unknown provider %r", provider)
            return None
        if not auth_code:
            logger.warning("Refusing to connect %s without an authorization code", provider)
            return None

        descriptor = descriptor_of(provider)
        metadata = dict(metadata or {})
        account_id = self._external_account_id(provider, metadata)
        account = ConnectedAccount(
            id=self._new_id(),
            provider=provider,
            account_id=account_id,
            account_name=_ACCOUNT_NAMES.get(provider, f"{descriptor.name} Account"),
            email=f"user@{provider.replace('_', '')}.com",
            status=AccountStatus.CONNECTED,
            connected_at=self._clock(),
            permissions=descriptor.scopes,
            metadata=metadata,
        )
        self._accounts[account.id] = account
        logger.info(
            "Connected %s account %s",
            descriptor.name,
            account_id,
            extra={"provider": provider, "account_id": account.id},
        )

        await self.sync(provider)
        return self._accounts.get(account.id)

    def disconnect(self, account_id: str) -> bool:
        """
        Remove an account. False if unknown.

        The provider's metrics snapshot is dropped with its last account.
        """
        account = self._accounts.get(account_id)
        if account is None:
            return False

        self._transition(account_id, AccountStatus.DISCONNECTED)
        del self._accounts[account_id]
        if not self.accounts_for(account.provider):
            self._metrics.pop(account.provider, None)
        logger.info(
            "Disconnected %s account %s",
            account.provider,
            account.account_id,
            extra={"provider": account.provider, "account_id": account_id},
        )
        return True

    def mark_expired(self, account_id: str) -> bool:
        """Flag a connected account whose provider token was revoked or lapsed."""
        account = self._accounts.get(account_id)
        if account is None or account.status != AccountStatus.CONNECTED:
            return False
        self._transition(account_id, AccountStatus.EXPIRED)
        logger.info(
            "Access for %s account %s expired",
            account.provider,
            account.account_id,
            extra={"provider": account.provider, "account_id": account_id},
        )
        return True

    # ── Sync ─────────────────────────────────────────────────────────────────

    async def sync(self, provider: str) -> Optional[PlatformMetrics]:
        """
        Refresh the metrics snapshot for a provider.

        Returns None, without side effects, when no connected account exists
        for the provider. On fetch failure the previous snapshot is kept, the
        accounts are flagged as errored and None is returned.
        """
        # Queue behind an in-flight sync; bail out early when nothing is linked
        if not any(
            a.provider == provider and a.status in SYNCABLE_STATUSES | {AccountStatus.SYNCING}
            for a in self._accounts.values()
        ):
            return None

        async with self._lock_for(provider):
            account_ids = self._syncable_ids(provider)
            if not account_ids:
                return None

            started_at = self._clock()
            for account_id in account_ids:
                self._transition(account_id, AccountStatus.SYNCING)

            try:
                metrics = await self._fetch_metrics(provider)
            except Exception as e:
                logger.error(
                    "Sync failed for %s: %s", provider, e, exc_info=True, extra={"provider": provider}
                )
                for account_id in account_ids:
                    if account_id in self._accounts:
                        self._transition(account_id, AccountStatus.ERROR, sync_status=SyncHealth.ERROR)
                self._record_job(provider, SyncJobStatus.FAILED, started_at, errors=(str(e),))
                return None

            remaining = [a for a in account_ids if a in self._accounts]
            if not remaining:
                # Disconnected while the fetch was in flight
                self._record_job(
                    provider,
                    SyncJobStatus.FAILED,
                    started_at,
                    errors=("account disconnected during sync",),
                )
                return None

            self._metrics[provider] = metrics
            synced_at = self._clock()
            for account_id in remaining:
                self._transition(
                    account_id,
                    AccountStatus.CONNECTED,
                    last_sync=synced_at,
                    sync_status=SyncHealth.HEALTHY,
                )
            self._record_job(provider, SyncJobStatus.COMPLETED, started_at, records_processed=1)
            logger.info("Synced %s metrics", provider, extra={"provider": provider})
            return metrics

    async def _simulate(self, provider: str) -> PlatformMetrics:
        return simulate_metrics(
            provider,
            self._rng,
            self._clock(),
            variance=self._variance,
            currency=self._currency,
        )

    def _lock_for(self, provider: str) -> asyncio.Lock:
        lock = self._sync_locks.get(provider)
        if lock is None:
            lock = self._sync_locks[provider] = asyncio.Lock()
        return lock

    def _syncable_ids(self, provider: str) -> list[str]:
        return [
            a.id
            for a in self._accounts.values()
            if a.provider == provider and a.status in SYNCABLE_STATUSES
        ]

    def _record_job(
        self,
        provider: str,
        status: SyncJobStatus,
        started_at: datetime,
        records_processed: int = 0,
        errors: tuple[str, ...] = (),
    ) -> SyncJob:
        job = SyncJob(
            id=self._new_id(),
            provider=provider,
            status=status,
            started_at=started_at,
            completed_at=self._clock(),
            records_processed=records_processed,
            errors=errors,
        )
        history = self._sync_jobs.setdefault(provider, [])
        history.append(job)
        del history[: -self._history_limit]
        return job

    # ── State machine ────────────────────────────────────────────────────────

    def _transition(self, account_id: str, target: AccountStatus, **changes: Any) -> ConnectedAccount:
        current = self._accounts[account_id]
        if target not in ALLOWED_TRANSITIONS[current.status]:
            raise InvalidTransitionError(account_id, current.status.value, target.value)
        updated = replace(current, status=target, **changes)
        self._accounts[account_id] = updated
        logger.debug("Account %s: %s -> %s", account_id, current.status.value, target.value)
        return updated

    # ── Queries ──────────────────────────────────────────────────────────────

    def list_accounts(self) -> list[ConnectedAccount]:
        """All accounts, in the order they were connected."""
        return list(self._accounts.values())

    def accounts_for(self, provider: str) -> list[ConnectedAccount]:
        return [a for a in self._accounts.values() if a.provider == provider]

    def account_for(self, provider: str) -> Optional[ConnectedAccount]:
        """The oldest account for a provider, if any."""
        return next((a for a in self._accounts.values() if a.provider == provider), None)

    def get_account(self, account_id: str) -> Optional[ConnectedAccount]:
        return self._accounts.get(account_id)

    def is_connected(self, provider: str) -> bool:
        return any(
            a.provider == provider and a.status == AccountStatus.CONNECTED
            for a in self._accounts.values()
        )

    def connected_providers(self) -> list[str]:
        """Distinct providers with at least one account, in connect order."""
        return list(dict.fromkeys(a.provider for a in self._accounts.values()))

    def metrics_for(self, provider: str) -> Optional[PlatformMetrics]:
        return self._metrics.get(provider)

    def all_metrics(self) -> list[PlatformMetrics]:
        return list(self._metrics.values())

    def sync_jobs(self, provider: str) -> list[SyncJob]:
        """Sync history for a provider, oldest first."""
        return list(self._sync_jobs.get(provider, ()))

    def dashboard_metrics(self) -> DashboardTotals:
        return aggregate(self._metrics.values())

    def integration_statuses(self) -> list[IntegrationStatus]:
        """One row per registered provider, connected or not."""
        statuses = []
        for provider in registered_providers():
            descriptor = descriptor_of(provider)
            # Prefer a healthy connection over an older lapsed one
            account = next(
                (a for a in self.accounts_for(provider) if a.status == AccountStatus.CONNECTED),
                None,
            ) or self.account_for(provider)
            if account is None:
                statuses.append(
                    IntegrationStatus(
                        provider=provider,
                        name=descriptor.name,
                        icon=descriptor.icon,
                        category=descriptor.category.value,
                        status="not_connected",
                    )
                )
                continue

            if account.status in (AccountStatus.ERROR, AccountStatus.EXPIRED):
                health = SyncHealth.ERROR.value
            else:
                health = (account.sync_status or SyncHealth.HEALTHY).value
            statuses.append(
                IntegrationStatus(
                    provider=provider,
                    name=descriptor.name,
                    icon=descriptor.icon,
                    category=descriptor.category.value,
                    status="connected",
                    connected_at=account.connected_at,
                    last_sync=account.last_sync,
                    health=health,
                    account_id=account.account_id,
                )
            )
        return statuses

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _new_id(self) -> str:
        return str(uuid.UUID(int=self._rng.getrandbits(128), version=4))

    def _external_account_id(self, provider: str, metadata: dict[str, Any]) -> str:
        if provider == "shopify" and metadata.get("shop"):
            return f"{str(metadata['shop']).removesuffix('.myshopify.com')}.myshopify.com"
        make = _ACCOUNT_ID_FORMATS.get(provider)
        if make is None:
            return f"{provider}_{_random_token(self._rng, 10)}"
        return make(self._rng)
