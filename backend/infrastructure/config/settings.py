"""Application settings and configuration."""
import json
import logging
from functools import lru_cache
from typing import Optional
from urllib.parse import urlparse

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_LOCALHOST_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "OWNLAY Engine"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"  # development, staging, production

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1

    # CORS - stored as str to prevent pydantic-settings auto-JSON-parse failures
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list, stripping trailing slashes."""
        v = self.cors_origins.strip()
        if v.startswith("["):
            try:
                origins = json.loads(v)
                return [o.rstrip("/") for o in origins]
            except json.JSONDecodeError:
                pass
        return [origin.strip().strip("'\"").rstrip("/") for origin in v.split(",") if origin.strip()]

    # Subscriptions / trials
    trial_length_days: int = 7
    trial_check_interval_seconds: int = 60

    # OAuth state handling
    oauth_state_ttl_seconds: int = 600
    oauth_max_states: int = 1000

    # Metrics simulation and sync bookkeeping
    metrics_variance: float = 0.15
    metrics_currency: str = "USD"
    sync_history_limit: int = 50

    @field_validator("metrics_variance")
    @classmethod
    def check_variance(cls, v: float) -> float:
        if not 0 <= v < 1:
            raise ValueError("METRICS_VARIANCE must be in [0, 1)")
        return v

    # OAuth client registrations (one per provider)
    integration_redirect_uri: str = "http://localhost:8000/api/v1/integrations/{provider}/callback"
    google_client_id: Optional[str] = None  # google_ads and ga4
    meta_app_id: Optional[str] = None
    tiktok_app_id: Optional[str] = None
    linkedin_client_id: Optional[str] = None
    shopify_client_id: Optional[str] = None
    stripe_client_id: Optional[str] = None
    mailchimp_client_id: Optional[str] = None
    hubspot_client_id: Optional[str] = None

    def client_id_for(self, provider: str) -> Optional[str]:
        """OAuth client id registered for *provider*, if configured."""
        return {
            "google_ads": self.google_client_id,
            "ga4": self.google_client_id,
            "meta_ads": self.meta_app_id,
            "tiktok_ads": self.tiktok_app_id,
            "linkedin_ads": self.linkedin_client_id,
            "shopify": self.shopify_client_id,
            "stripe": self.stripe_client_id,
            "mailchimp": self.mailchimp_client_id,
            "hubspot": self.hubspot_client_id,
        }.get(provider)

    # Error tracking
    sentry_dsn: Optional[str] = None

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == "development"

    def validate_production_secrets(self) -> None:
        """Validate production-only configuration.

        Called automatically by get_settings(). OAuth redirect URIs must be
        https:// non-localhost in production.
        """
        if not self.is_production:
            return

        parsed = urlparse(self.integration_redirect_uri)
        if parsed.scheme != "https" or (parsed.hostname or "") in _LOCALHOST_HOSTS:
            raise ValueError(
                "INTEGRATION_REDIRECT_URI must be an https:// non-localhost URL in production "
                f"(got: {self.integration_redirect_uri!r})"
            )

        if self.debug:
            logger.warning("DEBUG is enabled in production; API docs and verbose logs are exposed")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Automatically validates production configuration; the app will refuse
    to start otherwise.
    """
    s = Settings()
    s.validate_production_secrets()
    return s


# Global settings instance
settings = get_settings()
