"""
Provider registry for marketing platform integrations.

Static OAuth descriptors for every supported platform. All mutating
integration operations check this registry first and refuse to act on
unregistered providers.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from .base import (
    ProviderCategory,
    ProviderConfigError,
    ProviderDescriptor,
    ProviderNotFoundError,
)

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

_DESCRIPTORS = (
    ProviderDescriptor(
        provider="google_ads",
        name="Google Ads",
        icon="fab fa-google",
        category=ProviderCategory.ADS,
        scopes=(
            "https://www.googleapis.com/auth/adwords",
            "https://www.googleapis.com/auth/userinfo.email",
        ),
        auth_url=GOOGLE_AUTH_URL,
        token_url=GOOGLE_TOKEN_URL,
    ),
    ProviderDescriptor(
        provider="meta_ads",
        name="Meta Ads",
        icon="fab fa-meta",
        category=ProviderCategory.ADS,
        scopes=("ads_read", "ads_management", "business_management", "pages_read_engagement"),
        auth_url="https://www.facebook.com/v18.0/dialog/oauth",
        token_url="https://graph.facebook.com/v18.0/oauth/access_token",
    ),
    ProviderDescriptor(
        provider="tiktok_ads",
        name="TikTok Ads",
        icon="fab fa-tiktok",
        category=ProviderCategory.ADS,
        scopes=("advertiser.read", "campaign.read", "report.read"),
        auth_url="https://ads.tiktok.com/marketing_api/auth",
        token_url="https://business-api.tiktok.com/open_api/v1.3/oauth2/access_token/",
    ),
    ProviderDescriptor(
        provider="linkedin_ads",
        name="LinkedIn Ads",
        icon="fab fa-linkedin",
        category=ProviderCategory.ADS,
        scopes=("r_ads", "r_ads_reporting", "rw_ads"),
        auth_url="https://www.linkedin.com/oauth/v2/authorization",
        token_url="https://www.linkedin.com/oauth/v2/accessToken",
    ),
    ProviderDescriptor(
        provider="shopify",
        name="Shopify",
        icon="fab fa-shopify",
        category=ProviderCategory.COMMERCE,
        scopes=("read_orders", "read_products", "read_customers", "read_analytics"),
        auth_url="https://{shop}.myshopify.com/admin/oauth/authorize",
        token_url="https://{shop}.myshopify.com/admin/oauth/access_token",
    ),
    ProviderDescriptor(
        provider="stripe",
        name="Stripe",
        icon="fab fa-stripe",
        category=ProviderCategory.COMMERCE,
        scopes=("read_only",),
        auth_url="https://connect.stripe.com/oauth/authorize",
        token_url="https://connect.stripe.com/oauth/token",
    ),
    ProviderDescriptor(
        provider="ga4",
        name="Google Analytics 4",
        icon="fas fa-chart-simple",
        category=ProviderCategory.ANALYTICS,
        scopes=("https://www.googleapis.com/auth/analytics.readonly",),
        auth_url=GOOGLE_AUTH_URL,
        token_url=GOOGLE_TOKEN_URL,
    ),
    ProviderDescriptor(
        provider="mailchimp",
        name="Mailchimp",
        icon="fab fa-mailchimp",
        category=ProviderCategory.EMAIL,
        scopes=(),
        auth_url="https://login.mailchimp.com/oauth2/authorize",
        token_url="https://login.mailchimp.com/oauth2/token",
    ),
    ProviderDescriptor(
        provider="hubspot",
        name="HubSpot",
        icon="fab fa-hubspot",
        category=ProviderCategory.CRM,
        scopes=("crm.objects.contacts.read", "crm.objects.deals.read", "marketing-email"),
        auth_url="https://app.hubspot.com/oauth/authorize",
        token_url="https://api.hubapi.com/oauth/v1/token",
    ),
)

PROVIDERS: dict[str, ProviderDescriptor] = {d.provider: d for d in _DESCRIPTORS}


def is_registered(provider: str) -> bool:
    return provider in PROVIDERS


def registered_providers() -> list[str]:
    """Provider identifiers in registry order."""
    return list(PROVIDERS)


def descriptor_of(provider: str) -> ProviderDescriptor:
    """
    Look up a provider descriptor.

    Raises:
        ProviderNotFoundError: If the provider is not registered
    """
    descriptor = PROVIDERS.get(provider)
    if descriptor is None:
        raise ProviderNotFoundError(provider)
    return descriptor


def build_authorization_url(
    provider: str,
    state: str,
    client_id: Optional[str],
    redirect_uri: str,
    shop: Optional[str] = None,
) -> str:
    """
    Build an OAuth 2.0 authorization-code URL for a provider.

    Args:
        provider: Registered provider identifier
        state: Single-use state token for CSRF protection
        client_id: OAuth client id registered with the provider
        redirect_uri: Callback URL registered with the provider
        shop: Shop subdomain, required for Shopify

    Returns:
        Authorization URL to redirect the user to

    Raises:
        ProviderNotFoundError: If the provider is not registered
        ProviderConfigError: If the client id or shop is missing
    """
    descriptor = descriptor_of(provider)
    if not client_id:
        raise ProviderConfigError(f"{descriptor.name} OAuth client id is not configured")

    auth_url = descriptor.auth_url
    if descriptor.requires_shop:
        if not shop:
            raise ProviderConfigError(f"{descriptor.name} requires a shop domain")
        auth_url = auth_url.format(shop=shop.removesuffix(".myshopify.com"))

    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "state": state,
    }
    if descriptor.scopes:
        params["scope"] = " ".join(descriptor.scopes)

    logger.info("Generated %s OAuth authorization URL", descriptor.name)
    return f"{auth_url}?{urlencode(params)}"
