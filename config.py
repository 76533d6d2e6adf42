"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).
Sub-configs are composed into AppSettings by a model validator so every
section reads the same env/dotenv source.
"""

from __future__ import annotations

from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "adtrack"


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Optional — without Redis the dashboard stats are computed on every call
    redis_uri: Optional[str] = None
    stats_cache_ttl_seconds: int = 15
    stats_cache_stale_ttl_seconds: int = 120


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Checked only when set; empty accepts tokens without iss / aud claims
    jwt_issuer: str = ""
    jwt_audience: str = ""

    # RS256 public key (preferred); only verification happens in this service
    jwt_public_key: str = ""

    # HS256 fallback (used when no RS256 key is configured)
    jwt_secret: str = ""

    @property
    def use_rs256(self) -> bool:
        return bool(self.jwt_public_key)


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production

    # Sampling rates (0.0–1.0)
    sample_rate_track: float = 0.05
    sample_rate_stats: float = 0.20


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class TrackingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Wall-clock zone used for bucket labels, daily counters and log keys
    reference_timezone: str = "Asia/Seoul"

    owner_lock_timeout_seconds: float = 5.0
    owner_lock_ttl_seconds: int = 30
    owner_lock_poll_seconds: float = 0.05

    ad_seq_attempts: int = 5
    # first try + one retry on a log-key collision
    log_seq_attempts: int = 2

    @field_validator("reference_timezone", mode="after")
    @classmethod
    def _validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {v}") from e
        return v

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.reference_timezone)


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_name: str = "adtrack"

    # CORS — all origins, credentials allowed
    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    redis: Optional[RedisSettings] = None
    jwt: Optional[JWTSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None
    tracking: Optional[TrackingSettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.redis is None:
            self.redis = RedisSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()
        if self.tracking is None:
            self.tracking = TrackingSettings()
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
