"""SQLAlchemy database models for the smart issue assigner."""

import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Text, Boolean,
    JSON, ForeignKey, Enum as SQLEnum, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship, validates
from sqlalchemy.sql import func

from .common import AssignmentStatus, ExpertiseTier

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Contributor(Base):
    """SQLAlchemy model for onboarded contributors (the registry)."""
    __tablename__ = 'contributors'

    id = Column(String, primary_key=True, default=_new_id)
    github_username = Column(String(100), unique=True, nullable=False)
    name = Column(String(200), nullable=True)
    email = Column(String(200), nullable=True)
    skills = Column(JSON, nullable=False, default=list)  # [{"name", "proficiency"}]
    tech_stack = Column(JSON, nullable=False, default=dict)
    strengths = Column(JSON, nullable=False, default=list)
    expertise_tier = Column(SQLEnum(ExpertiseTier), nullable=False, default=ExpertiseTier.INTERMEDIATE)
    experience_years = Column(Float, nullable=False, default=0.0)
    onboarding_completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    assignments = relationship("AssignmentRecord", back_populates="contributor")

    __table_args__ = (
        Index('idx_contributors_github_username', 'github_username'),
    )

    @validates('github_username')
    def validate_github_username(self, key, username):
        if not username or not username.strip():
            raise ValueError("GitHub username cannot be empty")
        return username.strip()

    @validates('experience_years')
    def validate_experience_years(self, key, years):
        if years is not None and years < 0:
            raise ValueError("Experience years cannot be negative")
        return years


class AssignmentRecord(Base):
    """SQLAlchemy model for issue assignments, one per issue per organization."""
    __tablename__ = 'assignment_records'

    id = Column(String, primary_key=True, default=_new_id)
    organization = Column(String(100), nullable=False)
    repository = Column(String(200), nullable=False)  # owner/name
    issue_number = Column(Integer, nullable=False)
    issue_title = Column(String(500), nullable=True)
    issue_url = Column(String(500), nullable=True)

    assigned_to = Column(String(100), nullable=False)
    contributor_id = Column(String, ForeignKey('contributors.id'), nullable=True)

    skill_match = Column(Integer, nullable=False, default=0)
    activity = Column(Integer, nullable=False, default=0)
    workload = Column(Integer, nullable=False, default=0)
    final_score = Column(Integer, nullable=False, default=0)

    # Requirement snapshot
    required_skills = Column(JSON, nullable=False, default=list)
    expertise_tier = Column(SQLEnum(ExpertiseTier), nullable=False, default=ExpertiseTier.INTERMEDIATE)
    estimated_hours = Column(Float, nullable=False, default=3)

    roadmap = Column(Text, nullable=True)
    comment_url = Column(String(500), nullable=True)
    commented_at = Column(DateTime, nullable=True)
    status = Column(SQLEnum(AssignmentStatus), nullable=False, default=AssignmentStatus.PENDING)
    assigned_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    contributor = relationship("Contributor", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint('organization', 'repository', 'issue_number',
                         name='uq_assignment_org_repo_issue'),
        Index('idx_assignments_assigned_to', 'assigned_to'),
        Index('idx_assignments_status', 'status'),
        Index('idx_assignments_organization', 'organization'),
    )

    @validates('skill_match', 'activity', 'workload', 'final_score')
    def validate_score(self, key, score):
        if score is not None and (score < 0 or score > 100):
            raise ValueError(f"{key} must be between 0 and 100")
        return score

    @validates('issue_number')
    def validate_issue_number(self, key, number):
        if number is None or number < 1:
            raise ValueError("Issue number must be a positive integer")
        return number

    def to_dict(self):
        return {
            "id": self.id,
            "organization": self.organization,
            "repository": self.repository,
            "issue_number": self.issue_number,
            "issue_title": self.issue_title,
            "issue_url": self.issue_url,
            "assigned_to": self.assigned_to,
            "contributor_id": self.contributor_id,
            "scores": {
                "skill_match": self.skill_match,
                "activity": self.activity,
                "workload": self.workload,
                "final": self.final_score,
            },
            "requirement": {
                "required_skills": self.required_skills or [],
                "expertise_tier": self.expertise_tier.value if self.expertise_tier else None,
                "estimated_hours": self.estimated_hours,
            },
            "roadmap": self.roadmap,
            "comment_url": self.comment_url,
            "commented_at": self.commented_at.isoformat() if self.commented_at else None,
            "status": self.status.value if self.status else None,
            "assigned_at": self.assigned_at.isoformat() if self.assigned_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
