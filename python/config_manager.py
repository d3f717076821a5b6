"""
Configuration Management Module
Loads and validates configuration from config.yaml
"""

import yaml
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass
class DatabaseConfig:
    """Database configuration"""
    host: str = "localhost"
    port: int = 5432
    user: str = "registry_user"
    password: str = "registry_password"
    name: str = "blacklist_registry"
    pool_size: int = 5
    max_overflow: int = 10


@dataclass
class ScoringConfig:
    """Trust score engine configuration"""
    recent_activity_days: int = 30


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    file: Optional[str] = None
    console: bool = True
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class MonitoringConfig:
    """Operation monitoring configuration"""
    slow_operation_ms: float = 500.0
    enable_metrics: bool = True


@dataclass
class BulkConfig:
    """Bulk submission configuration"""
    max_items: int = 500


class ConfigurationError(Exception):
    """Raised when configuration is invalid"""
    pass


class ConfigManager:
    """Manages system configuration"""

    _instance: Optional['ConfigManager'] = None

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager

        Args:
            config_path: Path to config.yaml file
        """
        self.config_path = Path(config_path) if config_path else self._find_config()
        self._raw_config: Dict[str, Any] = {}
        self.database: DatabaseConfig = DatabaseConfig()
        self.scoring: ScoringConfig = ScoringConfig()
        self.logging: LoggingConfig = LoggingConfig()
        self.monitoring: MonitoringConfig = MonitoringConfig()
        self.bulk: BulkConfig = BulkConfig()

        if self.config_path and self.config_path.exists():
            self.load()
        else:
            logger.warning(f"Config file not found at {self.config_path}, using defaults")

    def _find_config(self) -> Path:
        """Find config.yaml in common locations"""
        search_paths = [
            Path(__file__).parent / "config.yaml",
            Path.cwd() / "config.yaml",
            Path.cwd() / "python" / "config.yaml",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return search_paths[0]

    def load(self) -> None:
        """Load configuration from YAML file"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self._raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {self.config_path}")

        if not isinstance(self._raw_config, dict):
            raise ConfigurationError("Config file must contain a mapping at the top level")

        self._parse_database()
        self._parse_scoring()
        self._parse_logging()
        self._parse_monitoring()
        self._parse_bulk()
        self._validate()

    def _parse_database(self) -> None:
        """Parse database configuration"""
        cfg = self._raw_config.get('database', {})
        self.database = DatabaseConfig(
            host=cfg.get('host', self.database.host),
            port=cfg.get('port', self.database.port),
            user=cfg.get('user', self.database.user),
            password=cfg.get('password', self.database.password),
            name=cfg.get('name', self.database.name),
            pool_size=cfg.get('pool_size', self.database.pool_size),
            max_overflow=cfg.get('max_overflow', self.database.max_overflow)
        )

    def _parse_scoring(self) -> None:
        """Parse trust score configuration"""
        cfg = self._raw_config.get('scoring', {})
        self.scoring = ScoringConfig(
            recent_activity_days=cfg.get('recent_activity_days', 30)
        )

    def _parse_logging(self) -> None:
        """Parse logging configuration"""
        cfg = self._raw_config.get('logging', {})
        self.logging = LoggingConfig(
            level=str(cfg.get('level', 'INFO')).upper(),
            file=cfg.get('file'),
            console=cfg.get('console', True),
            format=cfg.get('format', self.logging.format)
        )

    def _parse_monitoring(self) -> None:
        cfg = self._raw_config.get('monitoring', {})
        self.monitoring = MonitoringConfig(
            slow_operation_ms=cfg.get('slow_operation_ms', 500.0),
            enable_metrics=cfg.get('enable_metrics', True)
        )

    def _parse_bulk(self) -> None:
        cfg = self._raw_config.get('bulk', {})
        self.bulk = BulkConfig(
            max_items=cfg.get('max_items', 500)
        )

    @classmethod
    def get_instance(cls, config_path: Optional[str] = None) -> 'ConfigManager':
        """Get singleton instance of ConfigManager"""
        if cls._instance is None:
            cls._instance = ConfigManager(config_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton instance (useful for testing)"""
        cls._instance = None

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary"""
        return {
            'database': {
                'host': self.database.host,
                'port': self.database.port,
                'user': self.database.user,
                'name': self.database.name,
                'pool_size': self.database.pool_size,
                'max_overflow': self.database.max_overflow
            },
            'scoring': {
                'recent_activity_days': self.scoring.recent_activity_days
            },
            'logging': {
                'level': self.logging.level,
                'file': self.logging.file,
                'console': self.logging.console
            },
            'monitoring': {
                'slow_operation_ms': self.monitoring.slow_operation_ms,
                'enable_metrics': self.monitoring.enable_metrics
            },
            'bulk': {
                'max_items': self.bulk.max_items
            }
        }

    def _validate(self) -> None:
        """Validate configuration values"""
        errors = []

        if not 1 <= int(self.database.port) <= 65535:
            errors.append(f"database.port out of range: {self.database.port}")
        if self.database.pool_size < 1:
            errors.append(f"database.pool_size must be positive: {self.database.pool_size}")
        if self.scoring.recent_activity_days < 1:
            errors.append(
                f"scoring.recent_activity_days must be positive: {self.scoring.recent_activity_days}"
            )
        if self.logging.level not in VALID_LOG_LEVELS:
            errors.append(f"logging.level must be one of {VALID_LOG_LEVELS}: {self.logging.level}")
        if self.monitoring.slow_operation_ms < 0:
            errors.append(
                f"monitoring.slow_operation_ms must not be negative: {self.monitoring.slow_operation_ms}"
            )
        if self.bulk.max_items < 1:
            errors.append(f"bulk.max_items must be positive: {self.bulk.max_items}")

        if errors:
            raise ConfigurationError("Invalid configuration: " + "; ".join(errors))


def get_config(config_path: Optional[str] = None) -> ConfigManager:
    """Convenience function to get configuration instance"""
    return ConfigManager.get_instance(config_path)


def setup_logging(config: Optional[ConfigManager] = None) -> None:
    """Configure the root logger from the logging section."""
    log_config = (config or get_config()).logging

    handlers = []
    if log_config.console:
        handlers.append(logging.StreamHandler())
    if log_config.file:
        log_path = Path(log_config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding='utf-8'))

    logging.basicConfig(
        level=getattr(logging, log_config.level, logging.INFO),
        format=log_config.format,
        handlers=handlers or None,
        force=True
    )
