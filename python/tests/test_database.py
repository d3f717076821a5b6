"""
Unit tests for database models, schema and connection handling.

Tests the SQLAlchemy ORM models, the session provider and the repositories
against an in-memory SQLite database.
"""

import pytest
from decimal import Decimal

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import text

from registry.connection import DatabaseSettings, UnitOfWork, create_retry_decorator
from registry.models import (
    BlacklistedClient,
    BlacklistReport,
    Category,
    FraudType,
    PhoneNumber,
    RiskLevel,
    slugify,
)
from registry.repositories import (
    ClientRepository,
    PhoneNumberRepository,
    ProtectedFieldError,
    ReferenceNotFoundError,
    ReferenceRepository,
)
from sqlalchemy.exc import OperationalError


class TestSlugify:
    """Tests for reference-data slug generation."""

    def test_slugify_basic(self):
        assert slugify("Shipping & Logistics") == "shipping-logistics"
        assert slugify("Non Payment") == "non-payment"

    def test_slugify_accents(self):
        assert slugify("Telecomunicación") == "telecomunicacion"

    def test_slugify_punctuation(self):
        assert slugify("E-commerce") == "e-commerce"
        assert slugify("  Other  ") == "other"

    def test_slugify_empty(self):
        assert slugify("") == ""


class TestEnums:

    def test_risk_level_values(self):
        assert RiskLevel.LOW.value == "LOW"
        assert RiskLevel.MEDIUM.value == "MEDIUM"
        assert RiskLevel.HIGH.value == "HIGH"
        assert RiskLevel.CRITICAL.value == "CRITICAL"


class TestModelAttributes:
    """Tests to verify model attributes and structure."""

    def test_client_has_required_columns(self):
        assert BlacklistedClient.__tablename__ == "blacklisted_clients"

        column_names = [c.key for c in BlacklistedClient.__mapper__.columns]
        required_columns = [
            'id', 'category_id', 'name', 'email', 'phone', 'tax_id',
            'country_code', 'currency', 'reports_count', 'trust_score',
            'risk_level', 'risk_factors', 'total_debt', 'created_at', 'updated_at'
        ]
        for col in required_columns:
            assert col in column_names, f"Missing column: {col}"

    def test_report_has_required_columns(self):
        assert BlacklistReport.__tablename__ == "blacklist_reports"

        column_names = [c.key for c in BlacklistReport.__mapper__.columns]
        required_columns = [
            'id', 'client_id', 'company_id', 'debt_amount', 'currency',
            'incident_date', 'fraud_type_id', 'additional_info', 'created_at'
        ]
        for col in required_columns:
            assert col in column_names, f"Missing column: {col}"

    def test_client_relationships(self):
        relationships = BlacklistedClient.__mapper__.relationships.keys()
        for rel in ['category', 'reports', 'phone_numbers']:
            assert rel in relationships, f"Missing relationship: {rel}"

    def test_report_relationships(self):
        relationships = BlacklistReport.__mapper__.relationships.keys()
        for rel in ['client', 'company', 'fraud_type']:
            assert rel in relationships, f"Missing relationship: {rel}"


class TestClientDefaults:

    def test_new_client_defaults(self, session, refs):
        client = ClientRepository(session).create({
            "category_id": refs["category_id"],
            "name": "Ana Ruiz",
            "email": "ana@example.com",
            "phone": "5512345678",
        })

        assert client.reports_count == 1
        assert client.trust_score == 100
        assert client.risk_level == RiskLevel.LOW
        assert client.risk_factors == []
        assert client.total_debt == Decimal("0.00")
        assert client.created_at is not None

    def test_risk_badge(self):
        assert BlacklistedClient(risk_level=RiskLevel.HIGH).risk_badge == "HIGH"
        assert BlacklistedClient(risk_level="CRITICAL").risk_badge == "CRITICAL"
        assert BlacklistedClient(risk_level="BOGUS").risk_badge == "UNKNOWN"

    def test_repr(self):
        client = BlacklistedClient(id=7, email="x@example.com", reports_count=2, trust_score=70)
        assert "x@example.com" in repr(client)


class TestRepositories:

    def test_create_rejects_derived_fields(self, session, refs):
        with pytest.raises(ProtectedFieldError):
            ClientRepository(session).create({
                "category_id": refs["category_id"],
                "name": "Ana Ruiz",
                "email": "ana@example.com",
                "phone": "5512345678",
                "trust_score": 100,
            })

    def test_increment_reports_count(self, session, refs):
        repo = ClientRepository(session)
        client = repo.create({
            "category_id": refs["category_id"],
            "name": "Ana Ruiz",
            "email": "ana@example.com",
            "phone": "5512345678",
        })

        repo.increment_reports_count(client)
        repo.increment_reports_count(client)

        assert client.reports_count == 3

    def test_find_by_email_or_phone(self, session, refs):
        repo = ClientRepository(session)
        client = repo.create({
            "category_id": refs["category_id"],
            "name": "Ana Ruiz",
            "email": "ana@example.com",
            "phone": "5512345678",
        })

        assert repo.find_by_email_or_phone("ana@example.com", "0000", lock=True).id == client.id
        assert repo.find_by_email_or_phone("nobody@example.com", "5512345678").id == client.id
        assert repo.find_by_email_or_phone("nobody@example.com", "0000") is None

    def test_add_phone_if_missing(self, session, refs):
        client = ClientRepository(session).create({
            "category_id": refs["category_id"],
            "name": "Ana Ruiz",
            "email": "ana@example.com",
            "phone": "5512345678",
        })
        phones = PhoneNumberRepository(session)

        assert phones.add_if_missing(client.id, "5512345678", refs["company_id"]) is not None
        assert phones.add_if_missing(client.id, "5512345678", refs["company_id"]) is None
        assert phones.add_if_missing(client.id, "55 1234 5678", refs["company_id"]) is not None
        assert phones.count_for_client(client.id) == 2

    def test_reference_lookups(self, session, refs):
        repo = ReferenceRepository(session)

        assert repo.require_category(refs["category_id"]).slug == "shipping-logistics"
        with pytest.raises(ReferenceNotFoundError):
            repo.require_category(9999)
        with pytest.raises(ReferenceNotFoundError):
            repo.require_category(None)
        with pytest.raises(ReferenceNotFoundError):
            repo.require_fraud_type(9999)

    def test_get_or_create_by_slug(self, session, refs):
        repo = ReferenceRepository(session)

        existing, created = repo.get_or_create_by_slug(Category, "shipping-logistics", {"name": "Shipping"})
        assert created is False
        assert existing.id == refs["category_id"]

        fraud_type, created = repo.get_or_create_by_slug(
            FraudType, "return-fraud", {"name": "Return Fraud", "description": "Abused returns"}
        )
        assert created is True
        assert fraud_type.is_active is True
        assert len(repo.list_fraud_types()) == 4


class TestSessionProvider:

    def test_session_scope_commits(self, provider, refs):
        with provider.session_scope() as session:
            session.add(Category(name="Healthcare", slug="healthcare"))

        with provider.session_scope() as session:
            assert len(ReferenceRepository(session).list_categories()) == 3

    def test_session_scope_rolls_back(self, provider, refs):
        with pytest.raises(ValueError):
            with provider.session_scope() as session:
                session.add(Category(name="Healthcare", slug="healthcare"))
                session.flush()
                raise ValueError("boom")

        with provider.session_scope() as session:
            assert len(ReferenceRepository(session).list_categories()) == 2

    def test_unit_of_work_requires_commit(self, provider, refs):
        with provider.get_unit_of_work() as uow:
            uow.session.add(Category(name="Education", slug="education"))
            uow.session.flush()

        with provider.get_unit_of_work() as uow:
            assert len(ReferenceRepository(uow.session).list_categories()) == 2

    def test_unit_of_work_outside_context(self, provider):
        uow = UnitOfWork(provider.session_factory)
        with pytest.raises(RuntimeError):
            uow.session

    def test_health_check(self, provider):
        assert provider.health_check() is True

    def test_raw_sql(self, provider):
        with provider.session_scope() as session:
            assert session.execute(text("SELECT 1")).scalar() == 1


class TestSettings:

    def test_url_from_fields(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = DatabaseSettings(host="db", port=5433, database="reg", user="u", password="p")
        assert settings.get_url() == "postgresql+psycopg2://u:p@db:5433/reg"

    def test_database_url_overrides(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///registry.db")
        assert DatabaseSettings().get_url() == "sqlite:///registry.db"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DB_HOST", "pg.internal")
        monkeypatch.setenv("DB_PORT", "6543")
        monkeypatch.setenv("DB_POOL_SIZE", "9")
        settings = DatabaseSettings.from_env()
        assert settings.host == "pg.internal"
        assert settings.port == 6543
        assert settings.pool_size == 9


class TestRetry:

    def test_operational_error_is_retried(self):
        calls = []
        retry_fast = create_retry_decorator(max_attempts=3, min_wait=0, max_wait=0)

        @retry_fast
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise OperationalError("SELECT 1", {}, Exception("connection reset"))
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3

    def test_other_errors_are_not_retried(self):
        calls = []
        retry_fast = create_retry_decorator(max_attempts=3, min_wait=0, max_wait=0)

        @retry_fast
        def broken():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            broken()
        assert len(calls) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
