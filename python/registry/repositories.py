"""
Repository Pattern for Blacklist Registry Database Operations

Provides the data access layer used by the reporting service and the trust
score engine. Repositories flush after writes so that aggregate queries issued
later in the same transaction see the pending rows.
"""

import logging
from typing import List, Optional, Dict, Any, Tuple
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, delete, func, distinct, and_, or_
from sqlalchemy.orm import Session

from registry.events import ReportChange, ReportEvent, ReportEventDispatcher
from registry.models import (
    BlacklistedClient,
    BlacklistReport,
    PhoneNumber,
    Company,
    Category,
    FraudType,
)

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base exception for repository errors."""
    pass


class EntityNotFoundError(RepositoryError):
    """Raised when an entity is not found."""
    pass


class ReferenceNotFoundError(EntityNotFoundError):
    """Raised when a referenced category, fraud type or company does not exist."""
    pass


class ProtectedFieldError(RepositoryError):
    """Raised when a caller tries to set a field only the trust score engine may write."""
    pass


# Fields owned by the engine and the reporting flow
PROTECTED_CLIENT_FIELDS = frozenset({
    'id', 'reports_count', 'trust_score', 'risk_level', 'risk_factors',
    'total_debt', 'created_at', 'updated_at',
})

UPDATABLE_CLIENT_FIELDS = frozenset({
    'category_id', 'name', 'email', 'phone', 'ip_address', 'tax_id',
    'address', 'city', 'state', 'country_code', 'currency', 'postal_code',
})

UPDATABLE_REPORT_FIELDS = frozenset({
    'debt_amount', 'currency', 'incident_date', 'fraud_type_id', 'additional_info',
})


def identity_keys(*values: Optional[str]) -> set:
    """Normalized, non-empty identity strings used as lock keys."""
    return {value.strip().lower() for value in values if value and value.strip()}


# ============================================
# CLIENT REPOSITORY
# ============================================

class ClientRepository:
    """Repository for blacklisted client operations."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, client_id: int) -> Optional[BlacklistedClient]:
        return self.session.get(BlacklistedClient, client_id)

    def get_or_raise(self, client_id: int) -> BlacklistedClient:
        client = self.get_by_id(client_id)
        if client is None:
            raise EntityNotFoundError(f"Client not found: {client_id}")
        return client

    def find_by_email_or_phone(
        self,
        email: str,
        phone: str,
        lock: bool = False
    ) -> Optional[BlacklistedClient]:
        """
        Resolve a client by email OR phone.

        The lowest id matching either field wins. With lock=True the row is
        selected FOR UPDATE so concurrent submissions for the same client
        serialize until the surrounding transaction ends.

        Args:
            email: Client email
            phone: Client phone
            lock: Take a row lock on the resolved client

        Returns:
            BlacklistedClient or None
        """
        query = select(BlacklistedClient).where(
            or_(
                BlacklistedClient.email == email,
                BlacklistedClient.phone == phone
            )
        ).order_by(BlacklistedClient.id).limit(1)

        if lock:
            query = query.with_for_update()

        return self.session.execute(query).scalars().first()

    def lock_identity(self, *keys: str) -> None:
        """
        Serialize transactions that may resolve or create the same client.

        On PostgreSQL a transaction-scoped advisory lock is taken per
        identity key (email, phone), in sorted order. The locks also cover
        the case where no client row exists yet, which FOR UPDATE cannot.
        Other dialects rely on the caller's process-local locks.
        """
        if self.session.get_bind().dialect.name != 'postgresql':
            return
        for key in sorted(identity_keys(*keys)):
            self.session.execute(
                select(func.pg_advisory_xact_lock(func.hashtext(key)))
            )

    def create(self, client_data: Dict[str, Any]) -> BlacklistedClient:
        """
        Create a new client with its first report counted.

        Derived fields in client_data are rejected.

        Raises:
            ProtectedFieldError: If client_data contains engine-owned fields
        """
        protected = PROTECTED_CLIENT_FIELDS.intersection(client_data)
        if protected:
            raise ProtectedFieldError(f"Cannot set protected fields: {sorted(protected)}")

        client = BlacklistedClient(**client_data)
        client.reports_count = 1
        self.session.add(client)
        self.session.flush()

        logger.debug(f"Created client: {client.id} ({client.email})")
        return client

    def increment_reports_count(self, client: BlacklistedClient) -> None:
        """Add one to reports_count with a server-side increment."""
        client.reports_count = BlacklistedClient.reports_count + 1
        self.session.flush()

    def update(self, client_id: int, updates: Dict[str, Any]) -> BlacklistedClient:
        """
        Update identity fields of a client.

        Raises:
            EntityNotFoundError: If the client does not exist
            ProtectedFieldError: If updates touch derived fields or unknown fields
        """
        client = self.get_or_raise(client_id)

        rejected = set(updates) - UPDATABLE_CLIENT_FIELDS
        if rejected:
            raise ProtectedFieldError(f"Cannot update fields: {sorted(rejected)}")

        for key, value in updates.items():
            setattr(client, key, value)

        self.session.flush()
        return client

    def delete(self, client_id: int) -> bool:
        """
        Delete a client with its reports and phone numbers.

        Returns:
            True if deleted, False if not found
        """
        client = self.get_by_id(client_id)
        if client is None:
            return False

        self.session.execute(delete(PhoneNumber).where(PhoneNumber.client_id == client_id))
        self.session.execute(delete(BlacklistReport).where(BlacklistReport.client_id == client_id))
        self.session.delete(client)
        self.session.flush()
        return True

    def iter_ids(self) -> List[int]:
        query = select(BlacklistedClient.id).order_by(BlacklistedClient.id)
        return list(self.session.execute(query).scalars().all())

    def unique_companies_count(self, client_id: int) -> int:
        """Number of distinct companies that reported the client."""
        query = select(func.count(distinct(BlacklistReport.company_id))).where(
            BlacklistReport.client_id == client_id
        )
        return self.session.execute(query).scalar_one()

    def has_report_from(self, client_id: int, company_id: int) -> bool:
        query = select(BlacklistReport.id).where(
            and_(
                BlacklistReport.client_id == client_id,
                BlacklistReport.company_id == company_id
            )
        ).limit(1)
        return self.session.execute(query).first() is not None

    def search(
        self,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        name: Optional[str] = None,
        tax_id: Optional[str] = None,
        category_id: Optional[int] = None,
        fraud_type_id: Optional[int] = None,
        limit: int = 15
    ) -> List[BlacklistedClient]:
        """
        Search the registry with partial matching.

        All criteria are optional and combined with AND. The phone criterion
        also matches numbers recorded in phone_numbers. Results are ordered
        by reports_count, most reported first.
        """
        conditions = []

        if email:
            conditions.append(BlacklistedClient.email.like(f"%{email}%"))

        if phone:
            extra_phone = select(PhoneNumber.client_id).where(
                PhoneNumber.phone.like(f"%{phone}%")
            )
            conditions.append(
                or_(
                    BlacklistedClient.phone.like(f"%{phone}%"),
                    BlacklistedClient.id.in_(extra_phone)
                )
            )

        if name:
            conditions.append(BlacklistedClient.name.like(f"%{name}%"))

        if tax_id:
            conditions.append(BlacklistedClient.tax_id.like(f"%{tax_id}%"))

        if category_id is not None:
            conditions.append(BlacklistedClient.category_id == category_id)

        if fraud_type_id is not None:
            with_fraud_type = select(BlacklistReport.client_id).where(
                BlacklistReport.fraud_type_id == fraud_type_id
            )
            conditions.append(BlacklistedClient.id.in_(with_fraud_type))

        query = select(BlacklistedClient)
        if conditions:
            query = query.where(and_(*conditions))
        query = query.order_by(
            BlacklistedClient.reports_count.desc(),
            BlacklistedClient.id
        ).limit(limit)

        return list(self.session.execute(query).scalars().all())


# ============================================
# REPORT REPOSITORY
# ============================================

class ReportRepository:
    """
    Repository for blacklist report operations.

    Every write is announced on the event dispatcher, when one is given, after
    the change has been flushed.
    """

    def __init__(
        self,
        session: Session,
        dispatcher: Optional[ReportEventDispatcher] = None
    ):
        self.session = session
        self.dispatcher = dispatcher

    def _publish(self, event: ReportEvent, report_id: int, client_id: int) -> None:
        if self.dispatcher is None:
            return
        self.dispatcher.dispatch(
            self.session,
            ReportChange(event=event, report_id=report_id, client_id=client_id)
        )

    def get_by_id(self, report_id: int) -> Optional[BlacklistReport]:
        return self.session.get(BlacklistReport, report_id)

    def get_or_raise(self, report_id: int) -> BlacklistReport:
        report = self.get_by_id(report_id)
        if report is None:
            raise EntityNotFoundError(f"Report not found: {report_id}")
        return report

    def create(self, report_data: Dict[str, Any]) -> BlacklistReport:
        """
        Create a report and announce it.

        Args:
            report_data: Report fields including client_id and company_id
        """
        report = BlacklistReport(**report_data)
        self.session.add(report)
        self.session.flush()

        logger.debug(f"Created report {report.id} for client {report.client_id}")
        self._publish(ReportEvent.CREATED, report.id, report.client_id)
        return report

    def update(self, report_id: int, updates: Dict[str, Any]) -> BlacklistReport:
        """
        Update the mutable fields of a report and announce it.

        Raises:
            EntityNotFoundError: If the report does not exist
            ProtectedFieldError: If updates touch ownership or unknown fields
        """
        report = self.get_or_raise(report_id)

        rejected = set(updates) - UPDATABLE_REPORT_FIELDS
        if rejected:
            raise ProtectedFieldError(f"Cannot update report fields: {sorted(rejected)}")

        for key, value in updates.items():
            setattr(report, key, value)
        self.session.flush()

        self._publish(ReportEvent.UPDATED, report.id, report.client_id)
        return report

    def delete(self, report_id: int) -> int:
        """
        Delete a report and announce it.

        Returns:
            The id of the client the report belonged to

        Raises:
            EntityNotFoundError: If the report does not exist
        """
        report = self.get_or_raise(report_id)
        client_id = report.client_id

        self.session.delete(report)
        self.session.flush()

        self._publish(ReportEvent.DELETED, report_id, client_id)
        return client_id

    # Aggregates read by the trust score engine

    def debts_for_client(self, client_id: int) -> List[Tuple[Decimal, Optional[str]]]:
        """(debt_amount, currency) for every report of the client with a debt."""
        query = select(BlacklistReport.debt_amount, BlacklistReport.currency).where(
            and_(
                BlacklistReport.client_id == client_id,
                BlacklistReport.debt_amount.isnot(None)
            )
        ).order_by(BlacklistReport.id)
        return [(row[0], row[1]) for row in self.session.execute(query)]

    def distinct_fraud_type_count(self, client_id: int) -> int:
        query = select(func.count(distinct(BlacklistReport.fraud_type_id))).where(
            and_(
                BlacklistReport.client_id == client_id,
                BlacklistReport.fraud_type_id.isnot(None)
            )
        )
        return self.session.execute(query).scalar_one()

    def count_since(self, client_id: int, since: datetime) -> int:
        query = select(func.count(BlacklistReport.id)).where(
            and_(
                BlacklistReport.client_id == client_id,
                BlacklistReport.created_at >= since
            )
        )
        return self.session.execute(query).scalar_one()

    def distinct_client_group_count(self, client_id: int) -> int:
        """
        Count of distinct client ids among the client's own reports.

        This is 0 or 1 by construction.
        """
        query = select(func.count(distinct(BlacklistReport.client_id))).where(
            BlacklistReport.client_id == client_id
        )
        return self.session.execute(query).scalar_one()

    def report_time_range(self, client_id: int) -> Tuple[Optional[datetime], Optional[datetime]]:
        """(earliest created_at, latest created_at) of the client's reports."""
        query = select(
            func.min(BlacklistReport.created_at),
            func.max(BlacklistReport.created_at)
        ).where(BlacklistReport.client_id == client_id)
        first, last = self.session.execute(query).one()
        return first, last


# ============================================
# PHONE NUMBER REPOSITORY
# ============================================

class PhoneNumberRepository:
    """Repository for phone numbers associated with clients."""

    def __init__(self, session: Session):
        self.session = session

    def exists(self, client_id: int, phone: str) -> bool:
        query = select(PhoneNumber.id).where(
            and_(
                PhoneNumber.client_id == client_id,
                PhoneNumber.phone == phone
            )
        ).limit(1)
        return self.session.execute(query).first() is not None

    def add_if_missing(
        self,
        client_id: int,
        phone: str,
        company_id: Optional[int]
    ) -> Optional[PhoneNumber]:
        """
        Record a phone for the client unless the exact string is already recorded.

        Returns:
            The created PhoneNumber, or None if it already existed
        """
        if self.exists(client_id, phone):
            return None

        phone_number = PhoneNumber(
            client_id=client_id,
            phone=phone,
            reported_by_company_id=company_id
        )
        self.session.add(phone_number)
        self.session.flush()
        return phone_number

    def count_for_client(self, client_id: int) -> int:
        query = select(func.count(PhoneNumber.id)).where(
            PhoneNumber.client_id == client_id
        )
        return self.session.execute(query).scalar_one()


# ============================================
# REFERENCE DATA REPOSITORY
# ============================================

class ReferenceRepository:
    """Lookups for companies, categories and fraud types."""

    def __init__(self, session: Session):
        self.session = session

    def _require(self, model, key: Optional[int], label: str):
        instance = self.session.get(model, key) if key is not None else None
        if instance is None:
            raise ReferenceNotFoundError(f"{label} not found: {key}")
        return instance

    def require_company(self, company_id: int) -> Company:
        return self._require(Company, company_id, "Company")

    def require_category(self, category_id: int) -> Category:
        return self._require(Category, category_id, "Category")

    def require_fraud_type(self, fraud_type_id: int) -> FraudType:
        return self._require(FraudType, fraud_type_id, "Fraud type")

    def list_categories(self) -> List[Category]:
        query = select(Category).order_by(Category.name)
        return list(self.session.execute(query).scalars().all())

    def list_fraud_types(self, active_only: bool = True) -> List[FraudType]:
        query = select(FraudType).order_by(FraudType.name)
        if active_only:
            query = query.where(FraudType.is_active == True)
        return list(self.session.execute(query).scalars().all())

    def get_or_create_by_slug(self, model, slug: str, defaults: Dict[str, Any]):
        """
        Fetch a category or fraud type by slug, creating it when missing.

        Returns:
            Tuple of (instance, created)
        """
        existing = self.session.execute(
            select(model).where(model.slug == slug)
        ).scalars().first()
        if existing is not None:
            return existing, False

        instance = model(slug=slug, **defaults)
        self.session.add(instance)
        self.session.flush()
        return instance, True
