from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.config import Settings


def test_cors_origins_accepts_csv_and_strips_trailing_slash(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example/, https://b.example")

    s = Settings()

    assert s.cors_origins == ["https://a.example", "https://b.example"]


def test_cors_origins_accepts_json_list(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", '["https://a.example"]')

    assert Settings().cors_origins == ["https://a.example"]


def test_postgres_urls_use_psycopg_driver(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db:5432/mediation")

    assert Settings().database_url == "postgresql+psycopg://u:p@db:5432/mediation"


def test_business_rule_overrides(monkeypatch):
    monkeypatch.setenv("QUOTE_EXPIRY_HOURS", "48")
    monkeypatch.setenv("PAYMENT_AMOUNT_TOLERANCE", "0.05")

    s = Settings()

    assert s.quote_expiry_hours == 48
    assert s.payment_amount_tolerance == Decimal("0.05")


def test_quote_expiry_must_be_positive(monkeypatch):
    monkeypatch.setenv("QUOTE_EXPIRY_HOURS", "0")

    with pytest.raises(ValidationError):
        Settings()


def test_production_rejects_sqlite(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("CORS_ORIGINS", "https://app.example")

    with pytest.raises(ValidationError):
        Settings()
