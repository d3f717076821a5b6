#!/usr/bin/env python3
"""
Recalculate the trust score of every blacklisted client.

Useful after changing scoring rules or the recent-activity window. Each
client is rescored in its own transaction.

Usage:
    python recalculate_trust_scores.py [--config config.yaml] [--verbose]
"""

import sys
import argparse
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from config_manager import get_config, setup_logging
from registry.connection import DatabaseSettings, init_db, close_db
from registry.monitoring import configure_monitoring
from registry.reporting_service import ReportingService

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Recalculate trust scores for all blacklisted clients")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    args = parser.parse_args()

    config = get_config(args.config)
    setup_logging(config)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    configure_monitoring(
        slow_operation_ms=config.monitoring.slow_operation_ms,
        enable_metrics=config.monitoring.enable_metrics
    )

    logger.info("Recalculating trust scores...")
    try:
        provider = init_db(DatabaseSettings.from_config(config.database))
        service = ReportingService(provider, config)
        count = service.recalculate_all()
        logger.info(f"Trust scores recalculated successfully for {count} clients")
    except Exception as e:
        logger.error(f"Error recalculating trust scores: {e}")
        raise
    finally:
        close_db()


if __name__ == "__main__":
    main()
