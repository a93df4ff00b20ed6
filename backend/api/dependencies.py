"""
API dependencies for the subscription and integration engines.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status

from adapters.integrations import is_registered
from services import (
    ConnectionStore,
    SessionRegistry,
    SubscriptionEngine,
    get_connection_store,
    get_session_registry,
    get_subscription_engine,
)
from services.subscription_engine import SubscriptionSession

EngineDep = Annotated[SubscriptionEngine, Depends(get_subscription_engine)]
RegistryDep = Annotated[SessionRegistry, Depends(get_session_registry)]
StoreDep = Annotated[ConnectionStore, Depends(get_connection_store)]


def get_existing_session(user_id: str, registry: RegistryDep) -> SubscriptionSession:
    """
    Dependency to look up a user's subscription session.

    Raises 404 when no subscription has been derived for the user yet.
    """
    session = registry.get(user_id)
    if session is None or session.subscription is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No subscription for this user",
        )
    return session


def require_registered_provider(provider: str) -> str:
    """Dependency rejecting provider identifiers missing from the registry."""
    if not is_registered(provider):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown provider: {provider}",
        )
    return provider


SessionDep = Annotated[SubscriptionSession, Depends(get_existing_session)]
ProviderDep = Annotated[str, Depends(require_registered_provider)]
