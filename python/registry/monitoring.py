"""
Operation Monitoring for the Blacklist Registry

This module provides:
- Timing context manager for score calculations and report submissions
- Prometheus metrics for score updates and submission outcomes
- In-process operation statistics

Usage:
    from registry.monitoring import operation_timer

    with operation_timer("calculate_trust_score"):
        result = engine.calculate_trust_score(client)
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)


# ============================================
# CONFIGURATION
# ============================================

@dataclass
class MonitoringSettings:
    """Runtime monitoring settings."""
    slow_operation_ms: float = 500.0
    enable_metrics: bool = True


_settings = MonitoringSettings()


def configure_monitoring(
    slow_operation_ms: float = 500.0,
    enable_metrics: bool = True
) -> None:
    """
    Configure monitoring settings.

    Args:
        slow_operation_ms: Log operations slower than this (ms)
        enable_metrics: Record Prometheus metrics
    """
    global _settings
    _settings = MonitoringSettings(
        slow_operation_ms=slow_operation_ms,
        enable_metrics=enable_metrics
    )


# ============================================
# PROMETHEUS METRICS
# ============================================

operation_duration = Histogram(
    'registry_operation_duration_seconds',
    'Duration of registry operations in seconds',
    ['operation', 'status'],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
)

score_updates_total = Counter(
    'registry_score_updates_total',
    'Trust scores persisted, by resulting risk level',
    ['risk_level']
)

report_submissions_total = Counter(
    'registry_report_submissions_total',
    'Report submissions processed',
    ['status']
)


# ============================================
# OPERATION STATS
# ============================================

@dataclass
class OperationStats:
    """Statistics for a single operation type."""
    operation: str
    count: int = 0
    total_time_ms: float = 0.0
    max_time_ms: float = 0.0
    errors: int = 0
    slow: int = 0
    last_executed: Optional[datetime] = None

    @property
    def avg_time_ms(self) -> float:
        return self.total_time_ms / self.count if self.count > 0 else 0.0

    def record(self, duration_ms: float, error: bool = False, slow: bool = False) -> None:
        self.count += 1
        self.total_time_ms += duration_ms
        self.max_time_ms = max(self.max_time_ms, duration_ms)
        self.last_executed = datetime.now()
        if error:
            self.errors += 1
        if slow:
            self.slow += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'operation': self.operation,
            'count': self.count,
            'avg_time_ms': round(self.avg_time_ms, 2),
            'max_time_ms': round(self.max_time_ms, 2),
            'errors': self.errors,
            'slow': self.slow,
            'last_executed': self.last_executed.isoformat() if self.last_executed else None
        }


class OperationStatsCollector:
    """Thread-safe collector for operation statistics."""

    def __init__(self):
        self._stats: Dict[str, OperationStats] = {}
        self._lock = threading.Lock()

    def record(self, operation: str, duration_ms: float, error: bool = False, slow: bool = False) -> None:
        with self._lock:
            if operation not in self._stats:
                self._stats[operation] = OperationStats(operation=operation)
            self._stats[operation].record(duration_ms, error, slow)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {op: stats.to_dict() for op, stats in self._stats.items()}

    def reset(self) -> None:
        with self._lock:
            self._stats.clear()


_stats_collector = OperationStatsCollector()


def get_operation_stats() -> Dict[str, Any]:
    """Get collected operation statistics keyed by operation name."""
    return _stats_collector.get_stats()


def reset_stats() -> None:
    _stats_collector.reset()


# ============================================
# TIMER AND RECORDERS
# ============================================

@contextmanager
def operation_timer(operation: str):
    """
    Time a registry operation, log it when slow and record metrics.

    Exceptions raised inside the block are recorded and re-raised.
    """
    start_time = time.perf_counter()
    error_occurred = False

    try:
        yield
    except Exception:
        error_occurred = True
        raise
    finally:
        duration = time.perf_counter() - start_time
        duration_ms = duration * 1000
        is_slow = duration_ms > _settings.slow_operation_ms

        _stats_collector.record(
            operation=operation,
            duration_ms=duration_ms,
            error=error_occurred,
            slow=is_slow
        )

        if _settings.enable_metrics:
            status = "error" if error_occurred else "success"
            operation_duration.labels(operation=operation, status=status).observe(duration)

        if is_slow:
            logger.warning(
                f"SLOW OPERATION: {operation} took {duration_ms:.2f}ms "
                f"(threshold: {_settings.slow_operation_ms}ms)"
            )


def record_score_update(risk_level: str) -> None:
    if _settings.enable_metrics:
        score_updates_total.labels(risk_level=risk_level).inc()


def record_submission(success: bool) -> None:
    if _settings.enable_metrics:
        report_submissions_total.labels(status="success" if success else "error").inc()
