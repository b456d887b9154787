"""
staybook.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (JWT secret, Stripe keys).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="STAYBOOK_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "staybook"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "staybook"
    jwt_audience: str = "staybook-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    access_token_ttl_minutes: int = 60 * 24

    # First super admin, created at startup when both are set.
    super_admin_email: str | None = None
    super_admin_password: str | None = Field(default=None, repr=False)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./staybook.db"

    # Job worker (arq)
    redis_url: str = "redis://localhost:6379/0"

    # Stripe
    stripe_secret_key: str = Field(default="", repr=False)
    stripe_webhook_secret: str = Field(default="", repr=False)
    stripe_connect_country: str = "US"
    stripe_onboarding_refresh_url: str = "http://localhost:3000/stripe/refresh"
    stripe_onboarding_return_url: str = "http://localhost:3000/stripe/return"
    checkout_success_url: str = "http://localhost:3000/checkout/success"
    checkout_cancel_url: str = "http://localhost:3000/checkout/cancel"
    default_currency: str = "usd"

    # Fee policy (percent values: 15 means 15%)
    hotel_commission_percent: int = 15
    hotel_vat_percent: int = 5
    service_platform_percent: int = 10

    # Tiered stay discounts
    weekly_discount_min_nights: int = 7
    monthly_discount_min_nights: int = 28

    # Expiry windows
    pending_booking_ttl_minutes: int = 30
    provider_accept_window_hours: int = 24

    # Object storage (S3 compatible)
    storage_bucket: str = "staybook-media"
    storage_endpoint_url: str | None = None
    storage_public_base_url: str | None = None
    storage_region: str = "auto"
    storage_access_key_id: str = Field(default="", repr=False)
    storage_secret_access_key: str = Field(default="", repr=False)

    # Push notifications
    firebase_credentials_file: str | None = None

    # Airbnb iCal import
    calendar_sync_timeout_seconds: float = 15.0

    popular_hotels_limit: int = 4


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()
