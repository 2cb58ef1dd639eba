"""Tests for settings parsing."""

from decimal import Decimal

from bursar.config import Settings, parse_comma_list


def test_parse_comma_list():
    assert parse_comma_list(None, ["a"]) == ["a"]
    assert parse_comma_list(["x"], ["a"]) == ["x"]
    assert parse_comma_list(" x, ,y ", ["a"]) == ["x", "y"]


def test_cors_origins_from_env(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://finance.example.edu,https://admin.example.edu")

    settings = Settings()

    assert settings.cors_origins == ["https://finance.example.edu", "https://admin.example.edu"]


def test_cache_and_currency_defaults(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)

    settings = Settings(_env_file=None)

    assert settings.redis_url is None
    assert settings.list_cache_ttl_seconds == 300
    assert settings.dashboard_cache_ttl_seconds == 600
    assert settings.default_currency_rate == Decimal("50")
    assert settings.local_currency == "EGP"
    assert settings.report_min_year == 2020
    assert settings.report_max_years_back == 5


def test_environment_alias(monkeypatch):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.delenv("ENVIRONMENT", raising=False)

    assert Settings(_env_file=None).environment == "production"
