"""
Blacklist Registry Package

This package provides:
- SQLAlchemy ORM models for companies, clients, reports and phone numbers
- Unit of Work pattern and session provider for transaction management
- Repository pattern for data access
- Trust score engine
- Reporting service that keeps the client aggregate consistent
- Report lifecycle events and operation monitoring
"""

from registry.models import (
    Base,
    RiskLevel,
    Company,
    Category,
    FraudType,
    BlacklistedClient,
    BlacklistReport,
    PhoneNumber,
)
from registry.connection import (
    DatabaseSessionProvider,
    DatabaseSettings,
    UnitOfWork,
    db_retry,
    get_db_provider,
    # Initialization
    init_db,
    close_db,
    # Testing support
    create_test_provider,
)
from registry.events import (
    ReportEvent,
    ReportChange,
    ReportEventDispatcher,
)
from registry.repositories import (
    RepositoryError,
    EntityNotFoundError,
    ReferenceNotFoundError,
    ProtectedFieldError,
)
from registry.trust_score import (
    TrustScoreService,
    ScoreResult,
    ScoreAnalysis,
    ScoreRecalculationListener,
    build_default_dispatcher,
    risk_level_for_score,
    recommendation_for,
)
from registry.reporting_service import (
    ReportingService,
    ReportOutcome,
    BulkReportResult,
    ReportingError,
    ReportAccessDeniedError,
    BulkLimitExceededError,
)
from registry.monitoring import (
    operation_timer,
    configure_monitoring,
    get_operation_stats,
    reset_stats,
)

__all__ = [
    # Models
    'Base',
    'RiskLevel',
    'Company',
    'Category',
    'FraudType',
    'BlacklistedClient',
    'BlacklistReport',
    'PhoneNumber',
    # Database provider
    'DatabaseSessionProvider',
    'DatabaseSettings',
    'UnitOfWork',
    'db_retry',
    'get_db_provider',
    # Initialization
    'init_db',
    'close_db',
    # Testing support
    'create_test_provider',
    # Events
    'ReportEvent',
    'ReportChange',
    'ReportEventDispatcher',
    # Errors
    'RepositoryError',
    'EntityNotFoundError',
    'ReferenceNotFoundError',
    'ProtectedFieldError',
    'ReportingError',
    'ReportAccessDeniedError',
    'BulkLimitExceededError',
    # Trust score engine
    'TrustScoreService',
    'ScoreResult',
    'ScoreAnalysis',
    'ScoreRecalculationListener',
    'build_default_dispatcher',
    'risk_level_for_score',
    'recommendation_for',
    # Reporting
    'ReportingService',
    'ReportOutcome',
    'BulkReportResult',
    # Monitoring
    'operation_timer',
    'configure_monitoring',
    'get_operation_stats',
    'reset_stats',
]
