#!/usr/bin/env python3
"""
Initial Data Loading Script for the Blacklist Registry

Loads reference data into the database:
- Business categories
- Fraud types
- A sample member company (optional, for development)

Running it again only adds what is missing.

Usage:
    python load_initial_data.py [--with-samples]
"""

import sys
import argparse
import logging
from pathlib import Path

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent))

from sqlalchemy import select

from registry.connection import init_db, close_db
from registry.models import Category, Company, FraudType, slugify
from registry.repositories import ReferenceRepository

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


CATEGORIES = [
    {"name": "Shipping & Logistics", "description": "Shipping companies, courier services, freight"},
    {"name": "E-commerce", "description": "Online stores, marketplaces, retail"},
    {"name": "Financial Services", "description": "Banks, lenders, payment processors"},
    {"name": "Professional Services", "description": "Consultants, agencies, freelancers"},
    {"name": "Real Estate", "description": "Property rentals, sales, management"},
    {"name": "Telecommunications", "description": "Phone, internet, cable services"},
    {"name": "Hospitality", "description": "Hotels, restaurants, travel"},
    {"name": "Healthcare", "description": "Medical services, clinics, pharmacies"},
    {"name": "Education", "description": "Schools, courses, training"},
    {"name": "Other", "description": "Other business categories"},
]

FRAUD_TYPES = [
    {"name": "Non Payment", "description": "Customer did not pay for products or services"},
    {"name": "Chargeback Fraud", "description": "Customer initiated chargeback after receiving product/service"},
    {"name": "Fake Information", "description": "Customer provided false personal or business information"},
    {"name": "Stolen Credit Card", "description": "Customer used stolen or unauthorized credit card"},
    {"name": "Package Theft", "description": "Customer claimed non-delivery or package theft fraudulently"},
    {"name": "Identity Theft", "description": "Customer used stolen identity to make purchases"},
    {"name": "Address Fraud", "description": "Customer provided false or misleading address information"},
    {"name": "Return Fraud", "description": "Customer abused return policy or returned damaged/fake items"},
    {"name": "Account Takeover", "description": "Customer account was compromised and used fraudulently"},
    {"name": "Multiple Disputes", "description": "Customer has pattern of excessive disputes or complaints"},
    {"name": "Other", "description": "Other type of fraud not listed above"},
]

SAMPLE_COMPANY = {
    "name": "Sample Logistics SA de CV",
    "email": "registry@sample-logistics.example",
    "country_code": "MX",
    "currency": "MXN",
}


def _load_by_slug(session, model, items, label):
    refs = ReferenceRepository(session)
    created = 0
    for item in items:
        _, was_created = refs.get_or_create_by_slug(model, slugify(item["name"]), dict(item))
        if was_created:
            created += 1
            logger.info(f"Created {label}: {item['name']}")
        else:
            logger.info(f"{label.capitalize()} already exists: {item['name']}")
    return created


def load_categories(session):
    """Load default business categories."""
    return _load_by_slug(session, Category, CATEGORIES, "category")


def load_fraud_types(session):
    """Load default fraud types."""
    return _load_by_slug(session, FraudType, FRAUD_TYPES, "fraud type")


def load_sample_company(session):
    """Load a sample member company for development/testing."""
    existing = session.execute(
        select(Company).where(Company.email == SAMPLE_COMPANY["email"])
    ).scalars().first()
    if existing:
        logger.info(f"Sample company already exists: {existing.name}")
        return 0

    session.add(Company(**SAMPLE_COMPANY))
    session.flush()
    logger.info(f"Created sample company: {SAMPLE_COMPANY['name']}")
    return 1


def main():
    parser = argparse.ArgumentParser(description="Load initial data into the Blacklist Registry database")
    parser.add_argument("--with-samples", action="store_true", help="Include a sample company for development")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    logger.info("=" * 50)
    logger.info("Blacklist Registry Initial Data Loading")
    logger.info("=" * 50)

    try:
        db = init_db()

        with db.session_scope() as session:
            logger.info("[1/3] Loading categories...")
            categories_created = load_categories(session)
            logger.info(f"Categories created: {categories_created}")

            logger.info("[2/3] Loading fraud types...")
            fraud_types_created = load_fraud_types(session)
            logger.info(f"Fraud types created: {fraud_types_created}")

            if args.with_samples:
                logger.info("[3/3] Loading sample company...")
                samples_created = load_sample_company(session)
                logger.info(f"Sample companies created: {samples_created}")
            else:
                logger.info("[3/3] Skipping sample company (use --with-samples to include)")

        logger.info("=" * 50)
        logger.info("Initial data loading complete!")
        logger.info("=" * 50)
    except Exception as e:
        logger.error(f"Error loading initial data: {e}")
        raise
    finally:
        close_db()


if __name__ == "__main__":
    main()
