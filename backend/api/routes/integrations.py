"""
Integration API routes.

OAuth connect flow, manual syncs and per-provider metrics for marketing
platform integrations.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from adapters.integrations import (
    ProviderConfigError,
    build_authorization_url,
    descriptor_of,
)
from api.dependencies import ProviderDep, StoreDep
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.integrations import (
    AccountListResponse,
    ConnectedAccountResponse,
    ConnectResponse,
    IntegrationListResponse,
    IntegrationStatusResponse,
    PlatformMetricsResponse,
    SyncJobListResponse,
    SyncJobResponse,
)
from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["Integrations"])


# ============================================================================
# Status
# ============================================================================


@router.get("", response_model=IntegrationListResponse)
async def list_integrations(store: StoreDep):
    """List every registered provider with its connection status."""
    statuses = [IntegrationStatusResponse.model_validate(s) for s in store.integration_statuses()]
    connected = store.connected_providers()
    return IntegrationListResponse(
        integrations=statuses,
        connected_count=len(connected),
        connected_providers=connected,
    )


@router.get("/accounts", response_model=AccountListResponse)
async def list_accounts(store: StoreDep):
    """List connected accounts in the order they were connected."""
    accounts = [ConnectedAccountResponse.model_validate(a) for a in store.list_accounts()]
    return AccountListResponse(accounts=accounts, total=len(accounts))


@router.delete("/accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def disconnect_account(account_id: str, store: StoreDep):
    """Disconnect an account and drop its provider's metrics."""
    if not store.disconnect(account_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Account not found",
        )


# ============================================================================
# OAuth Flow
# ============================================================================


@router.get("/{provider}/connect", response_model=ConnectResponse)
@limiter.limit(get_rate_limit("oauth_connect"))
async def start_connect(
    request: Request,
    provider: ProviderDep,
    store: StoreDep,
    shop: Optional[str] = Query(None, max_length=255, description="Shop domain (Shopify only)"),
):
    """Start the OAuth flow: issue a state token and return the authorization URL."""
    descriptor = descriptor_of(provider)
    if descriptor.requires_shop and not shop:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{descriptor.name} requires a shop domain",
        )

    client_id = settings.client_id_for(provider)
    if not client_id:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{descriptor.name} integration is not configured",
        )

    state = store.issue_state(provider)
    try:
        auth_url = build_authorization_url(
            provider,
            state=state,
            client_id=client_id,
            redirect_uri=settings.integration_redirect_uri.format(provider=provider),
            shop=shop,
        )
    except ProviderConfigError as e:
        store.consume_state(state)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ConnectResponse(provider=provider, auth_url=auth_url, state=state)


@router.get("/{provider}/callback", response_model=ConnectedAccountResponse)
@limiter.limit(get_rate_limit("oauth_callback"))
async def oauth_callback(
    request: Request,
    provider: ProviderDep,
    store: StoreDep,
    code: Optional[str] = Query(None, max_length=2048),
    state: Optional[str] = Query(None, max_length=512),
    shop: Optional[str] = Query(None, max_length=255),
    error: Optional[str] = Query(None, max_length=255),
):
    """
    OAuth callback: validate the state token and connect the account.

    The state is consumed on first use whatever the outcome.
    """
    if state:
        state_provider = store.consume_state(state)
    else:
        state_provider = None

    if error:
        logger.info("OAuth authorization denied for %s: %s", provider, error, extra={"provider": provider})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Authorization failed: {error}",
        )

    if state_provider is None or state_provider != provider:
        logger.warning("Rejected OAuth callback for %s: invalid state", provider, extra={"provider": provider})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or expired OAuth state",
        )

    if not code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing authorization code",
        )

    metadata = {"shop": shop} if shop else None
    account = await store.connect(provider, code, metadata)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not connect account",
        )
    return ConnectedAccountResponse.model_validate(account)


# ============================================================================
# Sync & Metrics
# ============================================================================


@router.post("/{provider}/sync", response_model=PlatformMetricsResponse)
@limiter.limit(get_rate_limit("sync"))
async def sync_provider(request: Request, provider: ProviderDep, store: StoreDep):
    """Refresh the provider's metrics snapshot."""
    metrics = await store.sync(provider)
    if metrics is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No connected account to sync",
        )
    return PlatformMetricsResponse.model_validate(metrics)


@router.get("/{provider}/metrics", response_model=PlatformMetricsResponse)
async def get_provider_metrics(provider: ProviderDep, store: StoreDep):
    """Get the latest metrics snapshot for a provider."""
    metrics = store.metrics_for(provider)
    if metrics is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No metrics for this provider",
        )
    return PlatformMetricsResponse.model_validate(metrics)


@router.get("/{provider}/sync-jobs", response_model=SyncJobListResponse)
async def list_sync_jobs(provider: ProviderDep, store: StoreDep):
    """Sync history for a provider, oldest first."""
    return SyncJobListResponse(
        provider=provider,
        jobs=[SyncJobResponse.model_validate(j) for j in store.sync_jobs(provider)],
    )
