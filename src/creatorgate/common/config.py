"""Creatorgate configuration via pydantic-settings."""

import warnings
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_DEFAULTS = {
    "api_key": "insecure-service-key-change-me",
    "super_admin_key": "insecure-super-admin-key-change-me",
}


class CreatorgateSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CREATORGATE_")

    environment: str = "development"

    # Database
    db_url: str = "sqlite+aiosqlite:///./data/creatorgate.db"

    # API
    api_title: str = "Creatorgate"
    api_version: str = "0.1.0"
    api_key: str = "insecure-service-key-change-me"
    super_admin_key: str = "insecure-super-admin-key-change-me"
    host: str = "0.0.0.0"
    port: int = 8080
    api_prefix: str = ""
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    log_level: str = "INFO"

    # Quota accounting
    reset_period_days: int = 30

    # Redirect targets handed back with gate denials
    sign_in_url: str = "/auth"
    upgrade_url: str = "/pricing"

    # Generative-language API
    generation_api_url: str = "https://generativelanguage.googleapis.com/v1beta"
    generation_api_key: str = ""
    generation_model: str = "gemini-1.5-flash"
    generation_timeout: float = 30.0

    # Stripe webhook
    stripe_webhook_secret: str = ""
    stripe_signature_tolerance: int = 300  # seconds

    def validate_for_production(self) -> None:
        """Raise if insecure defaults are used in non-development environments."""
        insecure_fields = [
            field
            for field, default in _INSECURE_DEFAULTS.items()
            if getattr(self, field) == default
        ]

        if self.environment != "development" and insecure_fields:
            env_vars = ", ".join(f"CREATORGATE_{f.upper()}" for f in insecure_fields)
            raise RuntimeError(
                f"Insecure default values detected in '{self.environment}' environment. "
                f"Set these environment variables to secure values: {env_vars}. "
                "Generate secrets with: python -c \"import secrets; print(secrets.token_urlsafe(48))\""
            )

        if self.environment != "development" and not self.stripe_webhook_secret:
            raise RuntimeError(
                "CREATORGATE_STRIPE_WEBHOOK_SECRET must be set outside development; "
                "unsigned webhooks would let anyone change subscription tiers"
            )

        if insecure_fields:
            warnings.warn(
                "Using insecure default keys — set CREATORGATE_API_KEY and "
                "CREATORGATE_SUPER_ADMIN_KEY for production",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> CreatorgateSettings:
    settings = CreatorgateSettings()
    settings.validate_for_production()
    return settings
