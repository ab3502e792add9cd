"""Logging utilities and configuration."""

import logging
import logging.handlers
import sys
from smart_issue_assigner.config.settings import LoggingConfig


def setup_logging(config: LoggingConfig) -> None:
    """Set up logging configuration for the entire system."""

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level.upper()))

    # Clear any existing handlers
    root_logger.handlers.clear()

    formatter = logging.Formatter(config.format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if config.file_path:
        file_handler = logging.handlers.RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Set specific logger levels for external libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('requests').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)


class StructuredLogger:
    """Logger with structured logging capabilities."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def log_event(self, level: str, event: str, **kwargs) -> None:
        """Log a structured event with additional context."""
        message = f"EVENT={event}"
        if kwargs:
            context = " ".join([f"{k}={v}" for k, v in kwargs.items()])
            message = f"{message} {context}"

        log_level = getattr(logging, level.upper())
        self.logger.log(log_level, message)

    def log_candidate_resolved(self, username: str, origin: str, **kwargs) -> None:
        """Log which resolution stage produced a candidate profile."""
        self.log_event("INFO", "CANDIDATE_RESOLVED",
                       username=username, origin=origin, **kwargs)

    def log_shortlist_produced(self, issue: str, candidates: int, **kwargs) -> None:
        """Log a finished scoring run."""
        self.log_event("INFO", "SHORTLIST_PRODUCED",
                       issue=issue, candidates=candidates, **kwargs)

    def log_assignment_made(self, issue: str, username: str, status: str, **kwargs) -> None:
        """Log an executed assignment."""
        self.log_event("INFO", "ISSUE_ASSIGNED",
                       issue=issue, username=username, status=status, **kwargs)