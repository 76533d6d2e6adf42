"""Unit tests for AppSettings and sub-configs."""

from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError as PydanticValidationError

from config import (
    AppSettings,
    DatabaseSettings,
    JWTSettings,
    RedisSettings,
    TrackingSettings,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def with_mongo(monkeypatch):
    """Set the required MONGODB_URI so AppSettings can be instantiated."""
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
    return monkeypatch


# ---------------------------------------------------------------------------
# DatabaseSettings
# ---------------------------------------------------------------------------


class TestDatabaseSettings:
    def test_loads_mongodb_uri(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
        assert DatabaseSettings().mongodb_uri == "mongodb://localhost:27017/"

    def test_default_db_name(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
        monkeypatch.delenv("DB_NAME", raising=False)
        assert DatabaseSettings().db_name == "adtrack"

    def test_missing_mongodb_uri_raises(self, monkeypatch):
        monkeypatch.delenv("MONGODB_URI", raising=False)
        with pytest.raises(PydanticValidationError):
            DatabaseSettings()


# ---------------------------------------------------------------------------
# RedisSettings
# ---------------------------------------------------------------------------


class TestRedisSettings:
    def test_redis_uri_optional(self, monkeypatch):
        monkeypatch.delenv("REDIS_URI", raising=False)
        assert RedisSettings().redis_uri is None

    def test_stats_cache_ttls(self, monkeypatch):
        monkeypatch.setenv("STATS_CACHE_TTL_SECONDS", "30")
        monkeypatch.delenv("STATS_CACHE_STALE_TTL_SECONDS", raising=False)
        s = RedisSettings()
        assert s.stats_cache_ttl_seconds == 30
        assert s.stats_cache_stale_ttl_seconds == 120


# ---------------------------------------------------------------------------
# JWTSettings
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "public_key, expected",
    [("-----BEGIN PUBLIC KEY-----", True), (None, False)],
    ids=["public_key_present", "public_key_absent"],
)
def test_jwt_use_rs256(monkeypatch, public_key, expected):
    if public_key:
        monkeypatch.setenv("JWT_PUBLIC_KEY", public_key)
    else:
        monkeypatch.delenv("JWT_PUBLIC_KEY", raising=False)
    assert JWTSettings().use_rs256 is expected


# ---------------------------------------------------------------------------
# TrackingSettings
# ---------------------------------------------------------------------------


class TestTrackingSettings:
    def test_defaults(self, monkeypatch):
        for var in (
            "REFERENCE_TIMEZONE",
            "OWNER_LOCK_TIMEOUT_SECONDS",
            "AD_SEQ_ATTEMPTS",
            "LOG_SEQ_ATTEMPTS",
        ):
            monkeypatch.delenv(var, raising=False)
        s = TrackingSettings()
        assert s.reference_timezone == "Asia/Seoul"
        assert s.owner_lock_timeout_seconds == 5.0
        assert s.ad_seq_attempts == 5
        assert s.log_seq_attempts == 2
        assert s.tz == ZoneInfo("Asia/Seoul")

    def test_custom_timezone(self, monkeypatch):
        monkeypatch.setenv("REFERENCE_TIMEZONE", "Europe/Berlin")
        assert TrackingSettings().tz == ZoneInfo("Europe/Berlin")

    def test_unknown_timezone_rejected(self, monkeypatch):
        monkeypatch.setenv("REFERENCE_TIMEZONE", "Mars/Olympus_Mons")
        with pytest.raises(PydanticValidationError, match="unknown timezone"):
            TrackingSettings()


# ---------------------------------------------------------------------------
# AppSettings
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "env, expected",
    [("production", True), ("development", False)],
    ids=["production", "development"],
)
def test_is_production(with_mongo, env, expected):
    with_mongo.setenv("ENV", env)
    assert AppSettings().is_production is expected


class TestAppSettings:
    def test_sub_configs_populated(self, with_mongo):
        s = AppSettings()
        for attr in ("db", "redis", "jwt", "logging", "sentry", "tracking"):
            assert getattr(s, attr) is not None, f"sub-config '{attr}' is None"

    def test_cors_origins_default(self, with_mongo):
        with_mongo.delenv("CORS_ORIGINS", raising=False)
        assert AppSettings().cors_origins == ["*"]

    def test_explicit_sub_config_kept(self, with_mongo):
        tracking = TrackingSettings(reference_timezone="UTC")
        s = AppSettings(tracking=tracking)
        assert s.tracking.reference_timezone == "UTC"
