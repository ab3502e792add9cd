"""Matching and assignment agents.

Modules that touch the database (profile resolver, executor, matchmaker)
are imported from their own modules.
"""

from .errors import (
    MatchingError,
    IssueNotFoundError,
    NoCandidatesError,
    AlreadyAssignedError,
    AssignmentNotFoundError,
    InvalidStatusTransitionError,
)
from .ranking import rank_candidates, select_shortlist
from .role_inference import infer_roles
from .scoring import ScoringEngine

__all__ = [
    'MatchingError',
    'IssueNotFoundError',
    'NoCandidatesError',
    'AlreadyAssignedError',
    'AssignmentNotFoundError',
    'InvalidStatusTransitionError',
    'rank_candidates',
    'select_shortlist',
    'infer_roles',
    'ScoringEngine',
]
