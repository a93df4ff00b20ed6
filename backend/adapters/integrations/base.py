"""
Base data structures and exceptions for marketing platform integrations.

Provides the provider descriptor record and the exception hierarchy shared
by the provider registry and the connection store.
"""

from dataclasses import dataclass
from enum import StrEnum


class ProviderCategory(StrEnum):
    """Broad kind of platform; drives the shape of simulated metrics."""

    ADS = "ads"
    COMMERCE = "commerce"
    ANALYTICS = "analytics"
    EMAIL = "email"
    CRM = "crm"


@dataclass(frozen=True)
class ProviderDescriptor:
    """Static OAuth and display metadata for one provider."""

    provider: str
    name: str
    icon: str
    category: ProviderCategory
    scopes: tuple[str, ...]
    auth_url: str
    token_url: str

    @property
    def requires_shop(self) -> bool:
        """Shopify endpoints are per-store and need the shop domain filled in."""
        return "{shop}" in self.auth_url

    def to_dict(self) -> dict:
        """Convert descriptor to dictionary format."""
        return {
            "provider": self.provider,
            "name": self.name,
            "icon": self.icon,
            "category": self.category.value,
            "scopes": list(self.scopes),
            "auth_url": self.auth_url,
            "token_url": self.token_url,
        }


# Custom Exceptions
class IntegrationError(Exception):
    """Base exception for integration errors."""

    pass


class ProviderNotFoundError(IntegrationError):
    """Raised when a provider identifier is not in the registry."""

    def __init__(self, provider: str):
        super().__init__(f"Unknown provider: {provider}")
        self.provider = provider


class ProviderConfigError(IntegrationError):
    """Raised when a provider cannot be used with the current configuration."""

    pass


class InvalidTransitionError(IntegrationError):
    """Raised when an account status change is not allowed by the state machine."""

    def __init__(self, account_id: str, current: str, target: str):
        super().__init__(f"Account {account_id}: cannot go from {current} to {target}")
        self.account_id = account_id
        self.current = current
        self.target = target
