"""
Shared fixtures: an in-memory SQLite registry with reference data.
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from registry.connection import create_test_provider
from registry.models import Category, Company, FraudType


@pytest.fixture
def provider():
    """Session provider over a fresh in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    provider = create_test_provider(engine=engine)
    provider.init()
    provider.create_tables()
    yield provider
    provider.close()


@pytest.fixture
def refs(provider):
    """Two companies, two categories and three fraud types; returns their ids."""
    with provider.session_scope() as session:
        acme = Company(name="Acme Logistics", email="ops@acme.example", country_code="MX", currency="MXN")
        globex = Company(name="Globex Retail", email="risk@globex.example", country_code="US", currency="USD")
        shipping = Category(name="Shipping & Logistics", slug="shipping-logistics")
        ecommerce = Category(name="E-commerce", slug="e-commerce")
        fraud_types = [
            FraudType(name="Non Payment", slug="non-payment"),
            FraudType(name="Chargeback Fraud", slug="chargeback-fraud"),
            FraudType(name="Identity Theft", slug="identity-theft"),
        ]
        session.add_all([acme, globex, shipping, ecommerce, *fraud_types])
        session.flush()

        return {
            "company_id": acme.id,
            "other_company_id": globex.id,
            "category_id": shipping.id,
            "other_category_id": ecommerce.id,
            "fraud_type_ids": [ft.id for ft in fraud_types],
        }


@pytest.fixture
def session(provider, refs):
    """Transactional session, committed when the test finishes."""
    with provider.session_scope() as session:
        yield session


@pytest.fixture
def make_submission(refs):
    """Factory for report submissions against the seeded reference data."""
    def _make(**overrides):
        submission = {
            "category_id": refs["category_id"],
            "name": "Juan Perez",
            "email": "juan.perez@example.com",
            "phone": "3331234567",
            "city": "Guadalajara",
            "state": "Jalisco",
            "country_code": "MX",
        }
        submission.update(overrides)
        return submission
    return _make
