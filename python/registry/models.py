"""
SQLAlchemy ORM Models for the Blacklist Registry

Tables:
1. companies - Member companies that report and query clients
2. categories - Business categories a client was reported under
3. fraud_types - Lookup table of fraud patterns
4. blacklisted_clients - Core client table, carries the derived trust score fields
5. blacklist_reports - One row per report submitted by a company
6. phone_numbers - Phone numbers seen for a client, with the reporting company

The derived fields on blacklisted_clients (trust_score, risk_level,
risk_factors, total_debt) are written only by the trust score engine.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import (
    Boolean, Date, DateTime, Enum, ForeignKey, Index, Integer, JSON,
    Numeric, String, Text, CheckConstraint
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship
from sqlalchemy.sql import func

# Base class for all models
Base = declarative_base()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================
# ENUMS
# ============================================

class RiskLevel(str, PyEnum):
    """Categorical risk derived from the trust score"""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# ============================================
# MIXIN CLASSES
# ============================================

class TimestampMixin:
    """Mixin for created_at and updated_at timestamps"""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
        nullable=False
    )


# ============================================
# REFERENCE MODELS
# ============================================

class Company(Base, TimestampMixin):
    """
    A member company of the registry.

    Companies submit reports about clients and own the reports they submit.
    """
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    # ISO 3166-1 alpha-2 / ISO 4217
    country_code: Mapped[str] = mapped_column(String(2), nullable=False, default="MX", index=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MXN")

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    reports: Mapped[List["BlacklistReport"]] = relationship(
        "BlacklistReport",
        back_populates="company",
        lazy="dynamic"
    )

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name='{self.name}')>"


class Category(Base, TimestampMixin):
    """Business category (Shipping & Logistics, E-commerce, ...)"""
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, slug='{self.slug}')>"


class FraudType(Base, TimestampMixin):
    """Fraud pattern a report can be filed under (Non Payment, Chargeback Fraud, ...)"""
    __tablename__ = "fraud_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<FraudType(id={self.id}, slug='{self.slug}')>"


# ============================================
# CORE REGISTRY MODELS
# ============================================

class BlacklistedClient(Base, TimestampMixin):
    """
    A client reported by one or more companies.

    A client is resolved by email OR phone, so several reports submitted with
    different emails can land on the same row if they share a phone number.
    """
    __tablename__ = "blacklisted_clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Identity
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    tax_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)

    # Address
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    country_code: Mapped[Optional[str]] = mapped_column(String(2), nullable=True, index=True)
    currency: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Incremented once per report submission, never recomputed from row count
    reports_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Derived by the trust score engine
    trust_score: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    risk_level: Mapped[RiskLevel] = mapped_column(
        Enum(RiskLevel, name="risk_level"),
        default=RiskLevel.LOW,
        nullable=False,
        index=True
    )
    risk_factors: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    total_debt: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        default=Decimal("0.00"),
        nullable=False
    )

    # Relationships
    category: Mapped[Optional["Category"]] = relationship("Category")
    reports: Mapped[List["BlacklistReport"]] = relationship(
        "BlacklistReport",
        back_populates="client",
        cascade="all, delete-orphan",
        lazy="dynamic"
    )
    phone_numbers: Mapped[List["PhoneNumber"]] = relationship(
        "PhoneNumber",
        back_populates="client",
        cascade="all, delete-orphan",
        lazy="dynamic"
    )

    __table_args__ = (
        Index('ix_client_email_phone', 'email', 'phone'),
        Index('ix_client_reports_count', 'reports_count'),
        CheckConstraint('trust_score >= 0 AND trust_score <= 100', name='ck_trust_score_range'),
    )

    @property
    def risk_badge(self) -> str:
        if isinstance(self.risk_level, RiskLevel):
            return self.risk_level.value
        if self.risk_level in RiskLevel.__members__:
            return self.risk_level
        return "UNKNOWN"

    def __repr__(self) -> str:
        return (
            f"<BlacklistedClient(id={self.id}, email='{self.email}', "
            f"reports={self.reports_count}, score={self.trust_score})>"
        )


class BlacklistReport(Base, TimestampMixin):
    """
    A single report about a client submitted by a company.

    Creating, updating or deleting a report is what triggers a recalculation
    of the client's trust score.
    """
    __tablename__ = "blacklist_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("blacklisted_clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    company_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    debt_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    # ISO 4217; NULL is treated as USD
    currency: Mapped[Optional[str]] = mapped_column(String(3), nullable=True, index=True)
    incident_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    fraud_type_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("fraud_types.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    additional_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    client: Mapped["BlacklistedClient"] = relationship(
        "BlacklistedClient",
        back_populates="reports"
    )
    company: Mapped["Company"] = relationship(
        "Company",
        back_populates="reports"
    )
    fraud_type: Mapped[Optional["FraudType"]] = relationship("FraudType")

    __table_args__ = (
        Index('ix_report_client_created', 'client_id', 'created_at'),
        Index('ix_report_client_company', 'client_id', 'company_id'),
        CheckConstraint('debt_amount IS NULL OR debt_amount >= 0', name='ck_debt_non_negative'),
    )

    def __repr__(self) -> str:
        return f"<BlacklistReport(id={self.id}, client_id={self.client_id}, company_id={self.company_id})>"


class PhoneNumber(Base, TimestampMixin):
    """
    Phone numbers observed for a client.

    The reporting flow inserts a row only when the exact phone string is not
    already recorded for the client; there is no unique constraint.
    """
    __tablename__ = "phone_numbers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("blacklisted_clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    reported_by_company_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True
    )

    client: Mapped["BlacklistedClient"] = relationship(
        "BlacklistedClient",
        back_populates="phone_numbers"
    )
    reported_by_company: Mapped[Optional["Company"]] = relationship("Company")

    __table_args__ = (
        Index('ix_phone_client_phone', 'client_id', 'phone'),
    )

    def __repr__(self) -> str:
        return f"<PhoneNumber(client_id={self.client_id}, phone='{self.phone}')>"


# ============================================
# HELPER FUNCTIONS
# ============================================

def slugify(name: str) -> str:
    """
    Build a URL slug from a reference-data name.

    "Shipping & Logistics" -> "shipping-logistics"
    """
    import unicodedata
    import re

    if not name:
        return ""

    normalized = unicodedata.normalize('NFD', name)
    normalized = ''.join(c for c in normalized if unicodedata.category(c) != 'Mn')
    normalized = re.sub(r'[^\w\s-]', ' ', normalized.lower())
    return re.sub(r'[\s_-]+', '-', normalized).strip('-')
