"""Configuration settings and environment management."""

import os
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
import json
import logging


@dataclass
class DatabaseConfig:
    """Registry and assignment store configuration."""
    url: str = "sqlite:///smart_issue_assigner.db"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 20


@dataclass
class APIConfig:
    """External API configuration."""
    github_token: str = ""
    github_api_url: str = "https://api.github.com"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_api_url: str = "https://generativelanguage.googleapis.com/v1beta"
    analysis_service_url: str = ""
    request_timeout: int = 30  # seconds
    rate_limit_requests: int = 5000
    rate_limit_window: int = 3600  # seconds


@dataclass
class GatewayRetryConfig:
    """Backoff schedule shared by every external call."""
    max_attempts: int = 3
    base_delay: float = 1.0  # seconds, doubled per attempt
    max_delay: float = 30.0
    jitter: bool = False


@dataclass
class MatchingConfig:
    """Candidate scoring and selection configuration."""
    shortlist_size: int = 5
    resolver_concurrency: int = 3
    activity_window_days: int = 30
    skill_weight: float = 0.5
    activity_weight: float = 0.3
    workload_weight: float = 0.2
    tech_stack_credit: float = 0.7


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10485760  # 10MB
    backup_count: int = 5


@dataclass
class SystemConfig:
    """Main system configuration."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    api: APIConfig = field(default_factory=APIConfig)
    retry: GatewayRetryConfig = field(default_factory=GatewayRetryConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> 'SystemConfig':
        """Create configuration from environment variables."""
        config = cls()

        # Database configuration
        config.database.url = os.getenv('DATABASE_URL', config.database.url)
        config.database.echo = os.getenv('DB_ECHO', 'false').lower() == 'true'

        # API configuration
        config.api.github_token = os.getenv('GITHUB_TOKEN', config.api.github_token)
        config.api.github_api_url = os.getenv('GITHUB_API_URL', config.api.github_api_url)
        config.api.gemini_api_key = os.getenv('GEMINI_API_KEY', config.api.gemini_api_key)
        config.api.gemini_model = os.getenv('GEMINI_MODEL', config.api.gemini_model)
        config.api.gemini_api_url = os.getenv('GEMINI_API_URL', config.api.gemini_api_url)
        config.api.analysis_service_url = os.getenv('ANALYSIS_SERVICE_URL', config.api.analysis_service_url)
        config.api.request_timeout = int(os.getenv('REQUEST_TIMEOUT', str(config.api.request_timeout)))

        # Retry configuration
        config.retry.max_attempts = int(os.getenv('GATEWAY_MAX_ATTEMPTS', str(config.retry.max_attempts)))
        config.retry.base_delay = float(os.getenv('GATEWAY_BASE_DELAY', str(config.retry.base_delay)))

        # Matching configuration
        config.matching.shortlist_size = int(os.getenv('SHORTLIST_SIZE', str(config.matching.shortlist_size)))
        config.matching.resolver_concurrency = int(
            os.getenv('RESOLVER_CONCURRENCY', str(config.matching.resolver_concurrency))
        )
        config.matching.activity_window_days = int(
            os.getenv('ACTIVITY_WINDOW_DAYS', str(config.matching.activity_window_days))
        )

        # Logging configuration
        config.logging.level = os.getenv('LOG_LEVEL', config.logging.level)
        config.logging.file_path = os.getenv('LOG_FILE_PATH', config.logging.file_path)

        return config

    @classmethod
    def from_file(cls, config_path: str) -> 'SystemConfig':
        """Load configuration from JSON file."""
        try:
            with open(config_path, 'r') as f:
                config_data = json.load(f)

            config = cls()
            for section_name in ('database', 'api', 'retry', 'matching', 'logging'):
                section = getattr(config, section_name)
                for key, value in config_data.get(section_name, {}).items():
                    if hasattr(section, key):
                        setattr(section, key, value)

            return config

        except FileNotFoundError:
            logging.warning(f"Configuration file {config_path} not found, using environment")
            return cls.from_env()
        except json.JSONDecodeError as e:
            logging.error(f"Invalid JSON in configuration file {config_path}: {e}")
            return cls.from_env()

    def validate(self) -> bool:
        """Validate configuration settings."""
        errors = []

        if not self.api.github_token:
            errors.append("GitHub token is required")

        if not self.database.url:
            errors.append("Database URL is required")

        if self.retry.max_attempts < 1:
            errors.append("Gateway max_attempts must be at least 1")

        if self.matching.shortlist_size < 1:
            errors.append("Shortlist size must be at least 1")

        if self.matching.resolver_concurrency < 1:
            errors.append("Resolver concurrency must be at least 1")

        weights = (
            self.matching.skill_weight + self.matching.activity_weight + self.matching.workload_weight
        )
        if abs(weights - 1.0) > 1e-6:
            errors.append("Scoring weights must sum to 1.0")

        if not self.api.gemini_api_key:
            # Extraction and roadmaps degrade to their static fallbacks
            logging.warning("GEMINI_API_KEY not set, AI features will use fallbacks")

        if errors:
            for error in errors:
                logging.error(f"Configuration validation error: {error}")
            return False

        return True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize configuration with secrets masked."""
        api = dict(self.api.__dict__)
        for secret in ('github_token', 'gemini_api_key'):
            if api.get(secret):
                api[secret] = '***'
        return {
            'database': dict(self.database.__dict__),
            'api': api,
            'retry': dict(self.retry.__dict__),
            'matching': dict(self.matching.__dict__),
            'logging': dict(self.logging.__dict__),
        }
