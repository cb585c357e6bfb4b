"""
Settings for the dashboard API, read from the environment (and ``.env``).

Each concern has its own settings class with flat env names
(``MONGODB_URI``, ``MONTHLY_TEST_KEY_QUOTA`` ...). AppSettings composes them
after validation so the app factory and the worker share one object, and
tests can pass any sub-config explicitly.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class _EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


class DatabaseSettings(_EnvSettings):
    mongodb_uri: str
    db_name: str = "kazadi-dashboard"


class RedisSettings(_EnvSettings):
    # unset means reveal entries are kept in MongoDB
    redis_uri: Optional[str] = None


class UpstreamSettings(_EnvSettings):
    # tried in order; a transport failure moves on to the next base
    securepay_base_urls: list[str] = Field(
        default_factory=lambda: ["https://kazadi-securepay-api-production.up.railway.app"],
        min_length=1,
    )
    securepay_timeout_seconds: float = Field(default=15.0, gt=0)

    alias_email_domain: str = "falub.ca"
    api_key_prefix: str = "kazadi-sk-"


class KeyPolicySettings(_EnvSettings):
    test_key_ttl_seconds: int = Field(default=3600, gt=0)
    monthly_test_key_quota: int = Field(default=3, ge=0)

    reveal_ttl_seconds: int = Field(default=900, gt=0)
    # advisory; the dashboard hides the plaintext after this long
    reveal_display_seconds: int = Field(default=20, gt=0)

    min_client_secret_length: int = Field(default=6, ge=1)

    # 0 disables the in-process sweeper
    expiry_sweep_interval_seconds: int = Field(default=300, ge=0)

    @model_validator(mode="after")
    def _display_fits_reveal_window(self) -> "KeyPolicySettings":
        if self.reveal_display_seconds > self.reveal_ttl_seconds:
            raise ValueError("reveal_display_seconds cannot exceed reveal_ttl_seconds")
        return self


class LoggingSettings(_EnvSettings):
    log_level: str = "INFO"
    log_format: str = "console"  # json in production


class SentrySettings(_EnvSettings):
    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(_EnvSettings):
    env: str = "development"
    app_name: str = "Kazadi SecurePay Dashboard"

    # the dashboard SPA; credentials are allowed
    cors_origins: list[str] = ["http://localhost:3000"]

    # ignored in production, where the docs UI is off
    docs_url: Optional[str] = "/docs"

    db: Optional[DatabaseSettings] = None
    redis: Optional[RedisSettings] = None
    upstream: Optional[UpstreamSettings] = None
    key_policy: Optional[KeyPolicySettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _load_missing_sub_configs(self) -> "AppSettings":
        self.db = self.db or DatabaseSettings()
        self.redis = self.redis or RedisSettings()
        self.upstream = self.upstream or UpstreamSettings()
        self.key_policy = self.key_policy or KeyPolicySettings()
        self.logging = self.logging or LoggingSettings()
        self.sentry = self.sentry or SentrySettings()
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
