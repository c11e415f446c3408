"""
Configuration Management for TRIAD3

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Hosted database, auth and edge-function configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        extra="ignore"
    )

    url: str = Field(
        ...,
        description="Project URL, e.g. https://xyz.supabase.co"
    )
    anon_key: str = Field(
        ...,
        description="Public anon key sent as the apikey header"
    )

    @field_validator('url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Endpoints are joined with a leading slash."""
        return v.rstrip("/")

    @property
    def rest_url(self) -> str:
        return f"{self.url}/rest/v1"

    @property
    def auth_url(self) -> str:
        return f"{self.url}/auth/v1"

    @property
    def functions_url(self) -> str:
        return f"{self.url}/functions/v1"


class ResendSettings(BaseSettings):
    """Transactional email provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RESEND_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Resend API key"
    )
    api_url: str = Field(
        default="https://api.resend.com/emails",
        description="Resend send-email endpoint"
    )
    from_address: str = Field(
        default="TRIAD3 <onboarding@resend.dev>",
        description="Sender shown on outgoing emails"
    )


class EmailHookSettings(BaseSettings):
    """Signed auth-hook configuration for the confirmation email."""

    model_config = SettingsConfigDict(
        env_prefix="SEND_EMAIL_HOOK_",
        extra="ignore"
    )

    secret: str = Field(
        ...,
        min_length=1,
        description="Standard Webhooks secret, e.g. v1,whsec_<base64>"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    app_url: str = Field(
        default="http://localhost:8501/",
        description="Public URL of the web app, used in emails and redirects"
    )

    # Subscription cache
    subscription_refresh_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Interval between entitlement re-queries"
    )
    subscription_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single entitlement query"
    )

    # Remote calls
    request_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout for record store, auth and email calls"
    )

    # Validation thresholds
    max_amount_brl: float = Field(
        default=1_000_000_000.0,
        description="Maximum reasonable amount on any form (sanity check)"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def supabase(self) -> SupabaseSettings:
        return SupabaseSettings()

    @property
    def resend(self) -> ResendSettings:
        return ResendSettings()

    @property
    def email_hook(self) -> EmailHookSettings:
        return EmailHookSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    "<name>_error" entries for the ones that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("supabase", "resend", "email_hook", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
