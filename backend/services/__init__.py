"""
Service layer for business logic.
"""

import random
from functools import lru_cache

from infrastructure.config.settings import settings
from services.connection_store import ConnectionStore
from services.subscription_engine import SessionRegistry, SubscriptionEngine
from services.trial_monitor import TrialMonitor


@lru_cache
def get_subscription_engine() -> SubscriptionEngine:
    """
    Get singleton subscription engine instance.

    Returns:
        SubscriptionEngine using the configured trial length
    """
    return SubscriptionEngine(trial_days=settings.trial_length_days)


@lru_cache
def get_session_registry() -> SessionRegistry:
    """Get the process-wide registry of subscription sessions."""
    return SessionRegistry(get_subscription_engine())


@lru_cache
def get_trial_monitor() -> TrialMonitor:
    return TrialMonitor(
        get_session_registry(),
        check_interval=settings.trial_check_interval_seconds,
    )


@lru_cache
def get_connection_store() -> ConnectionStore:
    """
    Get singleton connection store instance.

    Returns:
        ConnectionStore configured from settings
    """
    return ConnectionStore(
        rng=random.Random(),
        state_ttl_seconds=settings.oauth_state_ttl_seconds,
        max_states=settings.oauth_max_states,
        variance=settings.metrics_variance,
        currency=settings.metrics_currency,
        history_limit=settings.sync_history_limit,
    )


__all__ = [
    "ConnectionStore",
    "SessionRegistry",
    "SubscriptionEngine",
    "TrialMonitor",
    "get_connection_store",
    "get_session_registry",
    "get_subscription_engine",
    "get_trial_monitor",
]
