"""Repositories over the contributor registry and the assignment store."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from .connection import DatabaseManager, handle_db_exceptions
from ..agents.errors import (
    AlreadyAssignedError,
    AssignmentNotFoundError,
    InvalidStatusTransitionError,
)
from ..models.common import (
    ACTIVE_STATUSES,
    AssignmentStatus,
    CandidateProfile,
    IssueDetails,
    IssueRef,
    IssueRequirement,
    ProfileOrigin,
    ScoreBreakdown,
    Skill,
    TechStack,
)
from ..models.database import AssignmentRecord, Contributor
from ..models.validation import validate_contributor_profile


# Allowed status changes; COMPLETED and CANCELLED are terminal
ALLOWED_TRANSITIONS = {
    AssignmentStatus.PENDING: {
        AssignmentStatus.ASSIGNED, AssignmentStatus.RECOMMENDED, AssignmentStatus.CANCELLED
    },
    AssignmentStatus.RECOMMENDED: {
        AssignmentStatus.ASSIGNED, AssignmentStatus.IN_PROGRESS, AssignmentStatus.CANCELLED
    },
    AssignmentStatus.ASSIGNED: {AssignmentStatus.IN_PROGRESS, AssignmentStatus.CANCELLED},
    AssignmentStatus.IN_PROGRESS: {AssignmentStatus.COMPLETED, AssignmentStatus.CANCELLED},
    AssignmentStatus.COMPLETED: set(),
    AssignmentStatus.CANCELLED: set(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def check_transition(current: AssignmentStatus, requested: AssignmentStatus) -> None:
    """Raise ``InvalidStatusTransitionError`` unless ``current -> requested`` is allowed."""
    if requested not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidStatusTransitionError(current.value, requested.value)


class ContributorRegistry:
    """Read and onboard Registered contributor profiles."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def to_profile(contributor: Contributor) -> CandidateProfile:
        return CandidateProfile(
            identity=contributor.github_username,
            origin=ProfileOrigin.REGISTERED,
            skills=[
                Skill(name=item['name'], proficiency=int(item.get('proficiency', 50)))
                for item in contributor.skills or [] if item.get('name')
            ],
            tech_stack=TechStack.from_dict(contributor.tech_stack),
            expertise_tier=contributor.expertise_tier,
            experience_years=contributor.experience_years or 0.0,
            name=contributor.name,
            email=contributor.email,
            strengths=list(contributor.strengths or []),
            contributor_id=contributor.id
        )

    @handle_db_exceptions
    def find_by_username(self, username: str) -> Optional[CandidateProfile]:
        """Look up an onboarded contributor, matching the username case-insensitively."""
        with self.db_manager.get_session() as session:
            contributor = session.query(Contributor).filter(
                func.lower(Contributor.github_username) == username.lower(),
                Contributor.onboarding_completed.is_(True)
            ).first()
            return self.to_profile(contributor) if contributor else None

    @handle_db_exceptions
    def upsert(self, data: Dict[str, Any]) -> CandidateProfile:
        """Validate and store a contributor profile, completing onboarding.

        Raises:
            ValidationError: if the profile data is invalid
        """
        validated = validate_contributor_profile(data)

        with self.db_manager.get_session() as session:
            contributor = session.query(Contributor).filter(
                func.lower(Contributor.github_username) == validated.github_username.lower()
            ).first()

            if contributor is None:
                contributor = Contributor(github_username=validated.github_username)
                session.add(contributor)
                self.logger.info(f"Registering contributor {validated.github_username}")
            else:
                self.logger.info(f"Updating contributor {validated.github_username}")

            contributor.name = validated.name
            contributor.email = validated.email
            contributor.skills = [skill.model_dump() for skill in validated.skills]
            contributor.tech_stack = TechStack.from_dict(validated.tech_stack).to_dict()
            contributor.strengths = list(validated.strengths)
            contributor.expertise_tier = validated.expertise_tier
            contributor.experience_years = validated.experience_years
            contributor.onboarding_completed = True
            session.flush()

            return self.to_profile(contributor)


class AssignmentStore:
    """Persistence for assignment records, keyed by (organization, repository, issue)."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.logger = logging.getLogger(__name__)

    @handle_db_exceptions
    def find_by_key(self, ref: IssueRef) -> Optional[AssignmentRecord]:
        with self.db_manager.get_session() as session:
            return session.query(AssignmentRecord).filter_by(
                organization=ref.organization,
                repository=ref.repository,
                issue_number=ref.issue_number
            ).first()

    @handle_db_exceptions
    def get(self, record_id: str) -> AssignmentRecord:
        with self.db_manager.get_session() as session:
            record = session.query(AssignmentRecord).filter_by(id=record_id).first()
            if record is None:
                raise AssignmentNotFoundError(record_id)
            return record

    @handle_db_exceptions
    def claim(
        self,
        ref: IssueRef,
        username: str,
        scores: ScoreBreakdown,
        requirement: IssueRequirement,
        issue: Optional[IssueDetails] = None,
        contributor_id: Optional[str] = None
    ) -> AssignmentRecord:
        """Insert a PENDING record for the issue.

        The unique constraint on the issue key turns a second claim, concurrent
        or not, into ``AlreadyAssignedError``.
        """
        try:
            with self.db_manager.get_session() as session:
                record = AssignmentRecord(
                    organization=ref.organization,
                    repository=ref.repository,
                    issue_number=ref.issue_number,
                    issue_title=issue.title if issue else None,
                    issue_url=issue.html_url if issue else None,
                    assigned_to=username,
                    contributor_id=contributor_id,
                    skill_match=scores.skill_match,
                    activity=scores.activity,
                    workload=scores.workload,
                    final_score=scores.final,
                    required_skills=[req.to_dict() for req in requirement.required_skills],
                    expertise_tier=requirement.expertise_tier,
                    estimated_hours=requirement.estimated_hours,
                    status=AssignmentStatus.PENDING
                )
                session.add(record)
                session.flush()
        except IntegrityError as e:
            existing = self.find_by_key(ref)
            raise AlreadyAssignedError(
                ref.repository, ref.issue_number, existing.assigned_to if existing else None
            ) from e

        self.logger.debug(f"Claimed {ref} for {username} as {record.id}")
        return record

    @handle_db_exceptions
    def finalize(
        self,
        record_id: str,
        status: AssignmentStatus,
        roadmap: str,
        comment_url: Optional[str] = None
    ) -> AssignmentRecord:
        """Move a claimed record to ASSIGNED or RECOMMENDED."""
        if status not in (AssignmentStatus.ASSIGNED, AssignmentStatus.RECOMMENDED):
            raise InvalidStatusTransitionError(AssignmentStatus.PENDING.value, status.value)

        with self.db_manager.get_session() as session:
            record = session.query(AssignmentRecord).filter_by(id=record_id).first()
            if record is None:
                raise AssignmentNotFoundError(record_id)
            check_transition(record.status, status)

            now = _utcnow()
            record.status = status
            record.roadmap = roadmap
            record.comment_url = comment_url
            record.commented_at = now if comment_url else None
            if status == AssignmentStatus.ASSIGNED:
                record.assigned_at = now
            session.flush()
            return record

    @handle_db_exceptions
    def release(self, record_id: str) -> None:
        """Delete a claim that never got finalized so the issue can be retried."""
        with self.db_manager.get_session() as session:
            deleted = session.query(AssignmentRecord).filter_by(
                id=record_id, status=AssignmentStatus.PENDING
            ).delete()
            if deleted:
                self.logger.warning(f"Released unfinished claim {record_id}")

    @handle_db_exceptions
    def count_active_for(self, username: str) -> int:
        """Number of ASSIGNED or IN_PROGRESS records held by ``username``."""
        with self.db_manager.get_session() as session:
            return session.query(AssignmentRecord).filter(
                func.lower(AssignmentRecord.assigned_to) == username.lower(),
                AssignmentRecord.status.in_(ACTIVE_STATUSES)
            ).count()

    @handle_db_exceptions
    def list_for_organization(
        self,
        organization: str,
        status: Optional[AssignmentStatus] = None,
        limit: Optional[int] = None
    ) -> List[AssignmentRecord]:
        """Records for an organization, newest first."""
        with self.db_manager.get_session() as session:
            query = session.query(AssignmentRecord).filter_by(organization=organization)
            if status is not None:
                query = query.filter_by(status=status)
            query = query.order_by(AssignmentRecord.created_at.desc(), AssignmentRecord.id)
            if limit:
                query = query.limit(limit)
            return query.all()

    @handle_db_exceptions
    def update_status(self, record_id: str, status: AssignmentStatus) -> AssignmentRecord:
        """Apply a status change permitted by ``ALLOWED_TRANSITIONS``."""
        with self.db_manager.get_session() as session:
            record = session.query(AssignmentRecord).filter_by(id=record_id).first()
            if record is None:
                raise AssignmentNotFoundError(record_id)

            check_transition(record.status, status)
            previous = record.status
            record.status = status
            now = _utcnow()
            if status == AssignmentStatus.ASSIGNED and record.assigned_at is None:
                record.assigned_at = now
            if status == AssignmentStatus.COMPLETED:
                record.completed_at = now
            session.flush()

            self.logger.info(
                f"Assignment {record_id} moved from {previous.value} to {status.value}"
            )
            return record
