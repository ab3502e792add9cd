"""Database connection, management utilities and repositories."""

from .connection import (
    DatabaseManager,
    DatabaseError,
    ConnectionError,
    handle_db_exceptions,
)

from .repositories import (
    ALLOWED_TRANSITIONS,
    ContributorRegistry,
    AssignmentStore,
    check_transition,
)

__all__ = [
    # Connection management
    'DatabaseManager',

    # Exceptions
    'DatabaseError',
    'ConnectionError',

    # Utilities
    'handle_db_exceptions',

    # Repositories
    'ALLOWED_TRANSITIONS',
    'ContributorRegistry',
    'AssignmentStore',
    'check_transition',
]
