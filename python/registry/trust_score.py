"""
Trust Score Engine for the Blacklist Registry

Derives a 0-100 trust score for a client from its accumulated reports,
together with a risk level, the ordered list of risk factors that explain the
deductions, and a recommendation for the querying company.

Scoring starts at 100 and applies, in order:
1. Report volume: 15 points per report, capped at 60
2. Total debt in USD: only the highest tier applies (>10k, >5k, >1k)
3. Distinct fraud types
4. Reports created in the trailing recent-activity window
5. Distinct phone numbers recorded for the client
6. Geographic inconsistency

Usage:
    with db_provider.session_scope() as session:
        engine = TrustScoreService(session, config)
        result = engine.update_client_score(client)
        print(result.trust_score, result.risk_level)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from currency_utils import convert_to_usd, format_amount
from registry.events import ReportChange, ReportEventDispatcher
from registry.models import BlacklistedClient, RiskLevel, utc_now
from registry.monitoring import operation_timer, record_score_update
from registry.repositories import PhoneNumberRepository, ReportRepository

logger = logging.getLogger(__name__)


MAX_SCORE = 100
MIN_SCORE = 0

REPORT_PENALTY = 15
MAX_REPORT_PENALTY = 60

DEFAULT_RECENT_ACTIVITY_DAYS = 30

# (threshold in USD, deduction), highest first
DEBT_TIERS = (
    (Decimal("10000"), 20),
    (Decimal("5000"), 10),
    (Decimal("1000"), 5),
)

RECOMMENDATIONS = {
    RiskLevel.LOW: "Proceed with standard verification process",
    RiskLevel.MEDIUM: "Request additional verification and references",
    RiskLevel.HIGH: "Require upfront payment or secured transaction",
    RiskLevel.CRITICAL: "AVOID — high fraud risk, do not proceed",
}


def risk_level_for_score(score: int) -> RiskLevel:
    """Map a trust score to its risk level."""
    if score >= 80:
        return RiskLevel.LOW
    if score >= 50:
        return RiskLevel.MEDIUM
    if score >= 25:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def recommendation_for(level: RiskLevel) -> str:
    return RECOMMENDATIONS[level]


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class ScoreAnalysis:
    """Counts the score was derived from"""
    reports_count: int = 0
    fraud_types_count: int = 0
    phone_numbers_count: int = 0
    recent_reports: int = 0
    first_report: Optional[datetime] = None
    last_report: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reports_count": self.reports_count,
            "fraud_types_count": self.fraud_types_count,
            "phone_numbers_count": self.phone_numbers_count,
            "recent_reports": self.recent_reports,
            "first_report": _isoformat(self.first_report),
            "last_report": _isoformat(self.last_report),
        }


@dataclass
class ScoreResult:
    """Outcome of a trust score calculation"""
    trust_score: int
    risk_level: RiskLevel
    risk_factors: List[str] = field(default_factory=list)
    total_debt: Decimal = Decimal("0.00")
    total_debt_currency: str = "USD"
    recommendation: str = ""
    analysis: ScoreAnalysis = field(default_factory=ScoreAnalysis)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trust_score": self.trust_score,
            "risk_level": self.risk_level.value,
            "risk_factors": list(self.risk_factors),
            "total_debt": float(self.total_debt),
            "total_debt_currency": self.total_debt_currency,
            "recommendation": self.recommendation,
            "analysis": self.analysis.to_dict(),
        }


class TrustScoreService:
    """
    Rule-based trust score calculation over a client's report aggregate.

    The service reads through the session it is given and never commits;
    update_client_score flushes so callers in the same transaction observe the
    new values. Storage errors propagate unchanged.
    """

    def __init__(self, session: Session, config: Optional[Any] = None):
        """
        Args:
            session: SQLAlchemy session of the enclosing transaction
            config: Optional ConfigManager instance
        """
        self.session = session
        self.config = config
        self._reports = ReportRepository(session)
        self._phones = PhoneNumberRepository(session)

        self._recent_activity_days = DEFAULT_RECENT_ACTIVITY_DAYS
        scoring = getattr(config, "scoring", None)
        if scoring is not None:
            self._recent_activity_days = scoring.recent_activity_days

    def calculate_trust_score(
        self,
        client: BlacklistedClient,
        now: Optional[datetime] = None
    ) -> ScoreResult:
        """
        Calculate the trust score of a client without persisting it.

        Args:
            client: Persisted client
            now: Reference time for the recent-activity window (defaults to UTC now)
        """
        with operation_timer("calculate_trust_score"):
            return self._calculate(client, now or utc_now())

    def _calculate(self, client: BlacklistedClient, now: datetime) -> ScoreResult:
        score = MAX_SCORE
        factors: List[str] = []
        client_id = client.id

        # 1. Report volume
        reports_count = client.reports_count or 0
        if reports_count > 0:
            score -= min(reports_count * REPORT_PENALTY, MAX_REPORT_PENALTY)
            if reports_count >= 5:
                factors.append(f"Reported by {reports_count}+ companies (Critical)")
            elif reports_count >= 3:
                factors.append(f"Reported by {reports_count} companies")
            elif reports_count >= 2:
                factors.append(f"Multiple company reports ({reports_count})")

        # 2. Debt normalized to USD
        total_debt = Decimal("0")
        for amount, currency in self._reports.debts_for_client(client_id):
            total_debt += convert_to_usd(amount, currency or "USD")
        total_debt = total_debt.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

        formatted_debt = format_amount(total_debt, "USD")
        for threshold, deduction in DEBT_TIERS:
            if total_debt > threshold:
                score -= deduction
                if threshold >= Decimal("5000"):
                    factors.append(
                        f"Total debt exceeds ${threshold:,.0f} USD (~{formatted_debt})"
                    )
                else:
                    factors.append(f"Debt amount: {formatted_debt}")
                break

        # 3. Fraud type diversity
        fraud_types_count = self._reports.distinct_fraud_type_count(client_id)
        if fraud_types_count >= 3:
            score -= 15
            factors.append(f"Multiple fraud types ({fraud_types_count} different types)")
        elif fraud_types_count >= 2:
            score -= 8
            factors.append(f"Different fraud patterns ({fraud_types_count} types)")

        # 4. Recent activity
        since = now - timedelta(days=self._recent_activity_days)
        recent_reports = self._reports.count_since(client_id, since)
        if recent_reports >= 2:
            score -= 10
            factors.append(
                f"Recent activity ({recent_reports} reports in last "
                f"{self._recent_activity_days} days)"
            )

        # 5. Phone numbers
        phone_numbers_count = self._phones.count_for_client(client_id)
        if phone_numbers_count >= 3:
            score -= 5
            factors.append(f"Multiple phone numbers used ({phone_numbers_count} phones)")

        # 6. Geographic inconsistency
        groups = self._reports.distinct_client_group_count(client_id)
        if groups > 1 and (client.city or client.state):
            score -= 5
            factors.append("Geographic inconsistencies detected")

        score = max(MIN_SCORE, min(MAX_SCORE, score))
        level = risk_level_for_score(score)
        first_report, last_report = self._reports.report_time_range(client_id)

        return ScoreResult(
            trust_score=score,
            risk_level=level,
            risk_factors=factors,
            total_debt=total_debt,
            recommendation=recommendation_for(level),
            analysis=ScoreAnalysis(
                reports_count=reports_count,
                fraud_types_count=fraud_types_count,
                phone_numbers_count=phone_numbers_count,
                recent_reports=recent_reports,
                first_report=first_report,
                last_report=last_report,
            ),
        )

    def update_client_score(
        self,
        client: BlacklistedClient,
        now: Optional[datetime] = None
    ) -> ScoreResult:
        """
        Recalculate and persist trust_score, risk_level, risk_factors and
        total_debt on the client.

        Running it again without changes to the client's reports writes the
        same values.
        """
        result = self.calculate_trust_score(client, now)

        previous = client.trust_score
        client.trust_score = result.trust_score
        client.risk_level = result.risk_level
        client.risk_factors = list(result.risk_factors)
        client.total_debt = result.total_debt
        self.session.flush()

        logger.debug(
            f"Client {client.id} trust score {previous} -> {result.trust_score} "
            f"({result.risk_level.value}, {len(result.risk_factors)} factors)"
        )
        record_score_update(result.risk_level.value)
        return result


class ScoreRecalculationListener:
    """
    Report event listener that rescores the affected client.

    Changes for clients that no longer exist are ignored.
    """

    def __init__(self, config: Optional[Any] = None):
        self.config = config

    def __call__(self, session: Session, change: ReportChange) -> None:
        client = session.get(BlacklistedClient, change.client_id)
        if client is None:
            logger.debug(f"Skipping rescore, client {change.client_id} no longer exists")
            return
        TrustScoreService(session, self.config).update_client_score(client)


def build_default_dispatcher(config: Optional[Any] = None) -> ReportEventDispatcher:
    """Dispatcher with the score recalculation listener subscribed."""
    dispatcher = ReportEventDispatcher()
    dispatcher.subscribe(ScoreRecalculationListener(config))
    return dispatcher
