"""
Marketing platform integrations.

Registry of ad, commerce, analytics, email and CRM providers with their
OAuth metadata.
"""

from .base import (
    IntegrationError,
    InvalidTransitionError,
    ProviderCategory,
    ProviderConfigError,
    ProviderDescriptor,
    ProviderNotFoundError,
)
from .providers import (
    PROVIDERS,
    build_authorization_url,
    descriptor_of,
    is_registered,
    registered_providers,
)

__all__ = [
    # Records and enums
    "ProviderCategory",
    "ProviderDescriptor",
    # Exceptions
    "IntegrationError",
    "ProviderNotFoundError",
    "ProviderConfigError",
    "InvalidTransitionError",
    # Registry
    "PROVIDERS",
    "descriptor_of",
    "is_registered",
    "registered_providers",
    "build_authorization_url",
]
