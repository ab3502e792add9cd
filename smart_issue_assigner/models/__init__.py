"""Data models and database schemas."""

# Common data classes and enums
from .common import (
    ProfileOrigin,
    ExpertiseTier,
    AssignmentStatus,
    ACTIVE_STATUSES,
    Skill,
    TechStack,
    CandidateProfile,
    RequiredSkill,
    IssueRequirement,
    ScoreBreakdown,
    IssueRef,
    IssueDetails,
    IssueComment,
    HistoryAnalysis,
    CandidateScore,
    Shortlist,
    AssignmentRequest,
    AssignmentOutcome,
)

# SQLAlchemy database models
from .database import (
    Base,
    Contributor,
    AssignmentRecord,
)

# Validation classes
from .validation import (
    ValidationError,
    IssueAnalysisPayload,
    SkillVerificationPayload,
    ContributorProfileValidator,
    validate_issue_analysis,
    validate_skill_verification,
    validate_contributor_profile,
)

__all__ = [
    # Enums
    'ProfileOrigin',
    'ExpertiseTier',
    'AssignmentStatus',
    'ACTIVE_STATUSES',

    # Common data classes
    'Skill',
    'TechStack',
    'CandidateProfile',
    'RequiredSkill',
    'IssueRequirement',
    'ScoreBreakdown',
    'IssueRef',
    'IssueDetails',
    'IssueComment',
    'HistoryAnalysis',
    'CandidateScore',
    'Shortlist',
    'AssignmentRequest',
    'AssignmentOutcome',

    # SQLAlchemy models
    'Base',
    'Contributor',
    'AssignmentRecord',

    # Validation
    'ValidationError',
    'IssueAnalysisPayload',
    'SkillVerificationPayload',
    'ContributorProfileValidator',
    'validate_issue_analysis',
    'validate_skill_verification',
    'validate_contributor_profile',
]
