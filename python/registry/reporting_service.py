"""
Reporting Service for the Blacklist Registry

Maintains the client aggregate as companies submit, edit and withdraw reports:
- Resolves the reported client by email OR phone, or creates it
- Keeps reports_count incremental and phone numbers de-duplicated
- Rescores the client through the trust score engine inside the same transaction

Every submission runs in its own transaction. Submissions sharing an email or
phone serialize on identity locks held for the whole transaction, so two first
reports for an unknown client cannot both create it.

Usage:
    provider = init_db()
    service = ReportingService(provider, get_config())
    outcome = service.report_client(company_id, {
        "category_id": 1,
        "name": "Juan Perez",
        "email": "juan@example.com",
        "phone": "3331234567",
        "debt_amount": Decimal("1500.00"),
        "currency": "MXN",
    })
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from currency_utils import default_currency
from registry.connection import DatabaseSessionProvider, db_retry
from registry.events import ReportEventDispatcher
from registry.models import BlacklistedClient, BlacklistReport
from registry.monitoring import operation_timer, record_submission
from registry.repositories import (
    ClientRepository,
    PhoneNumberRepository,
    ReferenceRepository,
    ReportRepository,
    identity_keys,
)
from registry.trust_score import ScoreResult, TrustScoreService, build_default_dispatcher

logger = logging.getLogger(__name__)


DEFAULT_BULK_MAX_ITEMS = 500

CLIENT_SUBMISSION_FIELDS = (
    'category_id', 'name', 'email', 'phone', 'ip_address', 'tax_id',
    'address', 'city', 'state', 'country_code', 'postal_code',
)

REPORT_SUBMISSION_FIELDS = (
    'debt_amount', 'currency', 'incident_date', 'fraud_type_id', 'additional_info',
)


class IdentityLockTable:
    """
    Fixed set of process-local locks striped by client identity key.

    Stripes are acquired in index order, so two holders never wait on each
    other in opposite order.
    """

    def __init__(self, stripes: int = 64):
        self._locks = [threading.Lock() for _ in range(stripes)]

    @contextmanager
    def hold(self, *keys: Optional[str]):
        indexes = sorted({hash(key) % len(self._locks) for key in identity_keys(*keys)})
        acquired = []
        try:
            for index in indexes:
                self._locks[index].acquire()
                acquired.append(index)
            yield
        finally:
            for index in reversed(acquired):
                self._locks[index].release()


_identity_locks = IdentityLockTable()


class ReportingError(Exception):
    """Base exception for reporting flow errors."""
    pass


class ReportAccessDeniedError(ReportingError):
    """Raised when a company acts on a report or client it is not allowed to change."""
    pass


class BulkLimitExceededError(ReportingError):
    """Raised when a bulk request carries more items than allowed."""
    pass


@dataclass
class ReportOutcome:
    """Result of a single report submission"""
    client: BlacklistedClient
    report: BlacklistReport
    created: bool
    score: ScoreResult


@dataclass
class BulkReportResult:
    """Per-item outcome of a bulk submission, in input order"""
    success: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": list(self.success), "errors": list(self.errors)}


def client_to_dict(client: BlacklistedClient, unique_companies: Optional[int] = None) -> Dict[str, Any]:
    """Public view of a client with its derived score fields."""
    data = {
        "id": client.id,
        "category_id": client.category_id,
        "name": client.name,
        "email": client.email,
        "phone": client.phone,
        "tax_id": client.tax_id,
        "city": client.city,
        "state": client.state,
        "country_code": client.country_code,
        "currency": client.currency,
        "reports_count": client.reports_count,
        "trust_score": client.trust_score,
        "risk_level": client.risk_badge,
        "risk_factors": list(client.risk_factors or []),
        "total_debt": float(client.total_debt or 0),
    }
    if unique_companies is not None:
        data["unique_companies"] = unique_companies
    return data


class ReportingService:
    """
    Registry aggregate maintenance over a session provider.

    Report writes go through ReportRepository, which announces them on the
    dispatcher; the default dispatcher rescores the affected client.
    """

    def __init__(
        self,
        provider: DatabaseSessionProvider,
        config: Optional[Any] = None,
        dispatcher: Optional[ReportEventDispatcher] = None
    ):
        """
        Args:
            provider: Initialized database session provider
            config: Optional ConfigManager instance
            dispatcher: Report event dispatcher (defaults to one that rescores clients)
        """
        self.provider = provider
        self.config = config
        self.dispatcher = dispatcher or build_default_dispatcher(config)

        self._bulk_max_items = DEFAULT_BULK_MAX_ITEMS
        bulk = getattr(config, "bulk", None)
        if bulk is not None:
            self._bulk_max_items = bulk.max_items

    # ============================================
    # SUBMISSIONS
    # ============================================

    @db_retry
    def report_client(self, company_id: int, submission: Dict[str, Any]) -> ReportOutcome:
        """
        Record a report about a client in one transaction.

        The client is resolved by email OR phone (lowest id wins) while the
        identity locks for both values are held. An existing client has
        reports_count incremented by one; a new client starts at one. The phone
        is recorded for the client unless that exact string is already known,
        then the client is rescored.

        Raises:
            ReferenceNotFoundError: Unknown company, category or fraud type
        """
        with operation_timer("report_client"):
            try:
                outcome = self._report_client(company_id, submission)
            except Exception:
                record_submission(success=False)
                raise
        record_submission(success=True)
        return outcome

    def _report_client(self, company_id: int, submission: Dict[str, Any]) -> ReportOutcome:
        with _identity_locks.hold(submission.get('email'), submission.get('phone')):
            return self._report_client_locked(company_id, submission)

    def _report_client_locked(self, company_id: int, submission: Dict[str, Any]) -> ReportOutcome:
        with self.provider.session_scope() as session:
            refs = ReferenceRepository(session)
            clients = ClientRepository(session)
            reports = ReportRepository(session, self.dispatcher)
            phones = PhoneNumberRepository(session)

            refs.require_company(company_id)
            refs.require_category(submission.get('category_id'))
            if submission.get('fraud_type_id') is not None:
                refs.require_fraud_type(submission['fraud_type_id'])

            email = submission['email']
            phone = submission['phone']

            clients.lock_identity(email, phone)
            client = clients.find_by_email_or_phone(email, phone, lock=True)
            created = client is None
            if created:
                client_data = {
                    key: submission.get(key) for key in CLIENT_SUBMISSION_FIELDS
                }
                country_code = client_data.get('country_code')
                if country_code:
                    client_data['currency'] = default_currency(country_code)
                client = clients.create(client_data)
                logger.info(f"New client {client.id} reported by company {company_id}")
            else:
                clients.increment_reports_count(client)
                logger.info(f"Client {client.id} reported again by company {company_id}")

            report_data = {
                key: submission.get(key) for key in REPORT_SUBMISSION_FIELDS
            }
            report = reports.create(dict(
                report_data,
                client_id=client.id,
                company_id=company_id,
            ))

            phones.add_if_missing(client.id, phone, company_id)

            score = TrustScoreService(session, self.config).update_client_score(client)

            session.refresh(client)
            session.refresh(report)

            return ReportOutcome(client=client, report=report, created=created, score=score)

    def bulk_report(self, company_id: int, submissions: List[Dict[str, Any]]) -> BulkReportResult:
        """
        Report several clients, one transaction per item, in input order.

        A failing item is rolled back on its own and recorded as
        {email, message}; processing continues with the next item.

        Raises:
            BulkLimitExceededError: More items than the configured maximum
        """
        if len(submissions) > self._bulk_max_items:
            raise BulkLimitExceededError(
                f"Bulk request has {len(submissions)} items, maximum is {self._bulk_max_items}"
            )

        result = BulkReportResult()
        for index, submission in enumerate(submissions):
            try:
                outcome = self.report_client(company_id, submission)
            except Exception as e:
                logger.warning(f"Bulk item {index} ({submission.get('email')}) failed: {e}")
                result.errors.append({
                    "email": submission.get('email') or 'unknown',
                    "message": str(e),
                })
                continue

            result.success.append({
                "id": outcome.client.id,
                "name": outcome.client.name,
                "email": outcome.client.email,
            })

        logger.info(
            f"Bulk report by company {company_id}: "
            f"{len(result.success)} succeeded, {len(result.errors)} failed"
        )
        return result

    # ============================================
    # REPORT AND CLIENT MAINTENANCE
    # ============================================

    @db_retry
    def update_report(
        self,
        report_id: int,
        company_id: int,
        changes: Dict[str, Any],
        is_admin: bool = False
    ) -> BlacklistReport:
        """
        Edit a report; the client is rescored through the report event.

        Raises:
            EntityNotFoundError: Unknown report
            ReportAccessDeniedError: Company does not own the report
            ProtectedFieldError: Changes touch ownership or unknown fields
        """
        with self.provider.session_scope() as session:
            reports = ReportRepository(session, self.dispatcher)
            report = reports.get_or_raise(report_id)
            self._check_report_owner(report, company_id, is_admin)

            if changes.get('fraud_type_id') is not None:
                ReferenceRepository(session).require_fraud_type(changes['fraud_type_id'])

            report = reports.update(report_id, changes)
            session.refresh(report)
            return report

    @db_retry
    def delete_report(self, report_id: int, company_id: int, is_admin: bool = False) -> int:
        """
        Withdraw a report and rescore its client.

        reports_count and phone numbers are left untouched.

        Returns:
            The id of the affected client
        """
        with self.provider.session_scope() as session:
            reports = ReportRepository(session, self.dispatcher)
            report = reports.get_or_raise(report_id)
            self._check_report_owner(report, company_id, is_admin)
            client_id = reports.delete(report_id)
            logger.info(f"Report {report_id} of client {client_id} deleted by company {company_id}")
            return client_id

    @db_retry
    def update_client(
        self,
        client_id: int,
        company_id: int,
        updates: Dict[str, Any],
        is_admin: bool = False
    ) -> BlacklistedClient:
        """
        Update identity fields of a client.

        Only a company that reported the client, or an admin, may do this.
        Derived fields are rejected by the repository.
        """
        with self.provider.session_scope() as session:
            clients = ClientRepository(session)
            clients.get_or_raise(client_id)

            if not is_admin and not clients.has_report_from(client_id, company_id):
                raise ReportAccessDeniedError(
                    f"Company {company_id} is not authorized to update client {client_id}"
                )

            if updates.get('category_id') is not None:
                ReferenceRepository(session).require_category(updates['category_id'])

            client = clients.update(client_id, updates)
            session.refresh(client)
            return client

    def delete_client(self, client_id: int, is_admin: bool = False) -> bool:
        """
        Remove a client with its reports and phone numbers. Admin only.

        Returns:
            True if deleted, False if the client did not exist
        """
        if not is_admin:
            raise ReportAccessDeniedError("Only administrators may delete clients")

        with self.provider.session_scope() as session:
            deleted = ClientRepository(session).delete(client_id)

        if deleted:
            logger.info(f"Client {client_id} deleted")
        return deleted

    def _check_report_owner(self, report: BlacklistReport, company_id: int, is_admin: bool) -> None:
        if is_admin or report.company_id == company_id:
            return
        raise ReportAccessDeniedError(
            f"Company {company_id} is not authorized to modify report {report.id}"
        )

    # ============================================
    # QUERIES
    # ============================================

    def trust_analysis(self, client_id: int) -> Dict[str, Any]:
        """
        Client summary plus a fresh trust score calculation.

        Nothing is persisted.
        """
        with self.provider.session_scope() as session:
            clients = ClientRepository(session)
            client = clients.get_or_raise(client_id)
            result = TrustScoreService(session, self.config).calculate_trust_score(client)
            return {
                "client": client_to_dict(client, clients.unique_companies_count(client_id)),
                "trust_analysis": result.to_dict(),
            }

    def search(self, limit: int = 15, **criteria: Any) -> List[Dict[str, Any]]:
        """Search the registry; see ClientRepository.search for criteria."""
        with self.provider.session_scope() as session:
            clients = ClientRepository(session).search(limit=limit, **criteria)
            return [client_to_dict(client) for client in clients]

    def recalculate_all(self) -> int:
        """
        Recalculate and persist the score of every client.

        Each client is rescored in its own transaction.

        Returns:
            Number of clients rescored
        """
        with self.provider.session_scope() as session:
            client_ids = ClientRepository(session).iter_ids()

        count = 0
        for client_id in client_ids:
            with self.provider.get_unit_of_work() as uow:
                client = ClientRepository(uow.session).get_by_id(client_id)
                if client is None:
                    continue
                TrustScoreService(uow.session, self.config).update_client_score(client)
                uow.commit()
                count += 1

        logger.info(f"Recalculated trust scores for {count} clients")
        return count
