"""Tests for environment-driven settings."""

import logging
from datetime import timedelta

import pytest

from authflow.config import Settings, normalize_database_url
from authflow.logging_config import setup_logging


def test_from_env_requires_secret_key(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(RuntimeError):
        Settings.from_env()


def test_access_ttl_depends_on_environment():
    assert Settings(secret_key="s", environment="production").access_token_ttl == timedelta(minutes=5)
    assert Settings(secret_key="s", environment="development").access_token_ttl == timedelta(days=1)


def test_from_env_reads_overrides(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "s")
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30")
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db/auth")

    settings = Settings.from_env()

    assert settings.is_production
    assert settings.access_token_ttl == timedelta(minutes=30)
    assert settings.refresh_token_ttl == timedelta(days=14)
    assert settings.otp_ttl == timedelta(minutes=5)
    assert settings.reset_token_ttl == timedelta(hours=2)
    assert settings.allowed_origins == ["http://a.test", "http://b.test"]
    assert settings.database_url == "postgresql://u:p@db/auth"


def test_bad_integer_rejected(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "s")
    monkeypatch.setenv("BCRYPT_ROUNDS", "many")
    with pytest.raises(RuntimeError):
        Settings.from_env()


def test_normalize_database_url_leaves_others_alone():
    assert normalize_database_url("sqlite://") == "sqlite://"


def test_sql_echo_from_env(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "s")
    monkeypatch.setenv("SQL_ECHO", "true")
    assert Settings.from_env().sql_echo is True
    monkeypatch.delenv("SQL_ECHO")
    assert Settings.from_env().sql_echo is False


def test_setup_logging_follows_settings():
    sql_logger = logging.getLogger("sqlalchemy.engine")
    previous = sql_logger.level
    try:
        setup_logging(Settings(secret_key="s", log_level="DEBUG", sql_echo=True))
        assert sql_logger.level == logging.INFO
        assert logging.getLogger("authflow").level == logging.DEBUG

        setup_logging(Settings(secret_key="s"))
        assert sql_logger.level == logging.WARNING
        assert logging.getLogger("authflow").level == logging.INFO
    finally:
        sql_logger.setLevel(previous)
