"""Common data models for the smart issue assigner."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Optional, Any, Tuple
from enum import Enum


class ProfileOrigin(Enum):
    """Where a candidate profile came from."""
    REGISTERED = "registered"
    ANALYZED = "analyzed"
    MINIMAL = "minimal"


class ExpertiseTier(Enum):
    """Expertise tiers shared by profiles and issue requirements."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @classmethod
    def parse(cls, value: Any, default: 'ExpertiseTier' = None) -> 'ExpertiseTier':
        """Parse a tier name case-insensitively, falling back to ``default``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for tier in cls:
                if tier.value == normalized:
                    return tier
        return default or cls.INTERMEDIATE

    @classmethod
    def from_years(cls, years: float) -> 'ExpertiseTier':
        """Map years of experience to a tier."""
        if years >= 5:
            return cls.EXPERT
        if years >= 3:
            return cls.ADVANCED
        if years >= 1:
            return cls.INTERMEDIATE
        return cls.BEGINNER


class AssignmentStatus(Enum):
    """Assignment record lifecycle states."""
    PENDING = "pending"
    ASSIGNED = "assigned"
    RECOMMENDED = "recommended"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that count against a contributor's workload
ACTIVE_STATUSES = (AssignmentStatus.ASSIGNED, AssignmentStatus.IN_PROGRESS)


@dataclass
class Skill:
    """A named skill with proficiency on a 0-100 scale."""
    name: str
    proficiency: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "proficiency": self.proficiency}


@dataclass
class TechStack:
    """Technologies a contributor works with, grouped by kind."""
    languages: List[str] = field(default_factory=list)
    frameworks: List[str] = field(default_factory=list)
    tools: List[str] = field(default_factory=list)
    databases: List[str] = field(default_factory=list)

    CATEGORIES = ('languages', 'frameworks', 'tools', 'databases')

    def categories(self) -> List[Tuple[str, List[str]]]:
        """Return ``(category, entries)`` pairs in matching order."""
        return [(name, getattr(self, name)) for name in self.CATEGORIES]

    def is_empty(self) -> bool:
        return not any(entries for _, entries in self.categories())

    def to_dict(self) -> Dict[str, List[str]]:
        return {name: list(entries) for name, entries in self.categories()}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'TechStack':
        data = data or {}
        return cls(**{
            name: [str(item) for item in (data.get(name) or []) if item]
            for name in cls.CATEGORIES
        })


@dataclass
class CandidateProfile:
    """Capability profile for a candidate username."""
    identity: str
    origin: ProfileOrigin
    skills: List[Skill]
    tech_stack: TechStack
    expertise_tier: ExpertiseTier
    experience_years: float
    name: Optional[str] = None
    email: Optional[str] = None
    strengths: List[str] = field(default_factory=list)
    contributor_id: Optional[str] = None

    @property
    def is_registered(self) -> bool:
        return self.origin == ProfileOrigin.REGISTERED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "origin": self.origin.value,
            "name": self.name or self.identity,
            "email": self.email,
            "skills": [skill.to_dict() for skill in self.skills],
            "tech_stack": self.tech_stack.to_dict(),
            "expertise_tier": self.expertise_tier.value,
            "experience_years": self.experience_years,
            "strengths": list(self.strengths),
            "contributor_id": self.contributor_id,
        }


@dataclass
class RequiredSkill:
    """A skill an issue needs, weighted by importance (1-10)."""
    skill: str
    importance: int

    def to_dict(self) -> Dict[str, Any]:
        return {"skill": self.skill, "importance": self.importance}


@dataclass
class IssueRequirement:
    """Skills, tier and effort derived from an issue's text."""
    required_skills: List[RequiredSkill]
    expertise_tier: ExpertiseTier
    estimated_hours: float

    @classmethod
    def default(cls) -> 'IssueRequirement':
        """Requirement used whenever issue analysis is unavailable."""
        return cls(
            required_skills=[RequiredSkill(skill="General Programming", importance=5)],
            expertise_tier=ExpertiseTier.INTERMEDIATE,
            estimated_hours=3
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "required_skills": [req.to_dict() for req in self.required_skills],
            "expertise_tier": self.expertise_tier.value,
            "estimated_hours": self.estimated_hours,
        }


def clamp_score(value: float) -> int:
    """Clamp to [0, 100] and round half up."""
    bounded = min(100.0, max(0.0, float(value)))
    return int(math.floor(bounded + 0.5))


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per (issue, candidate) score components, each in [0, 100]."""
    skill_match: int
    activity: int
    workload: int
    final: int

    @classmethod
    def combine(
        cls,
        skill_match: float,
        activity: float,
        workload: float,
        weights: Tuple[float, float, float] = (0.5, 0.3, 0.2)
    ) -> 'ScoreBreakdown':
        """Clamp the sub-scores and derive the weighted final score."""
        skill = clamp_score(skill_match)
        act = clamp_score(activity)
        work = clamp_score(workload)
        final = clamp_score(weights[0] * skill + weights[1] * act + weights[2] * work)
        return cls(skill_match=skill, activity=act, workload=work, final=final)

    def to_dict(self) -> Dict[str, int]:
        return {
            "skill_match": self.skill_match,
            "activity": self.activity,
            "workload": self.workload,
            "final": self.final,
        }


@dataclass(frozen=True)
class IssueRef:
    """Composite key of an issue within an organization."""
    organization: str
    repository: str  # owner/name
    issue_number: int

    def __str__(self) -> str:
        return f"{self.repository}#{self.issue_number}"


@dataclass
class IssueDetails:
    """Issue data fetched from the hosting platform."""
    number: int
    title: str
    body: str
    labels: List[str]
    html_url: str
    state: str
    author: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "title": self.title,
            "body": self.body,
            "labels": list(self.labels),
            "url": self.html_url,
            "state": self.state,
            "author": self.author,
        }


@dataclass
class IssueComment:
    """A comment on an issue; commenters form the candidate pool."""
    author: str
    body: str
    html_url: Optional[str]
    created_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "body": self.body,
            "url": self.html_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class HistoryAnalysis:
    """Aggregated git-history statistics for a username."""
    username: str
    languages: Dict[str, int]  # language -> repository count
    years_active: float
    topics: List[str] = field(default_factory=list)
    total_stars: int = 0
    repository_count: int = 0
    skills: List[Skill] = field(default_factory=list)
    tech_stack: Optional[TechStack] = None


@dataclass
class CandidateScore:
    """A scored candidate, as surfaced on the shortlist."""
    profile: CandidateProfile
    scores: ScoreBreakdown
    recent_push_events: Optional[int] = None
    inferred_roles: List[str] = field(default_factory=list)
    comment: Optional[IssueComment] = None

    @property
    def identity(self) -> str:
        return self.profile.identity

    def to_dict(self) -> Dict[str, Any]:
        data = self.profile.to_dict()
        data.update({
            "avatar": f"https://github.com/{self.identity}.png",
            "scores": self.scores.to_dict(),
            "recent_push_events": self.recent_push_events,
            "inferred_roles": list(self.inferred_roles),
            "comment": self.comment.to_dict() if self.comment else None,
        })
        return data


@dataclass
class Shortlist:
    """Ranked candidates for one issue."""
    ref: IssueRef
    issue: IssueDetails
    requirement: IssueRequirement
    candidates: List[CandidateScore]
    total_evaluated: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "organization": self.ref.organization,
            "repository": self.ref.repository,
            "issue": self.issue.to_dict(),
            "requirement": self.requirement.to_dict(),
            "candidates": [candidate.to_dict() for candidate in self.candidates],
            "total_evaluated": self.total_evaluated,
            "message": (
                f"Found {len(self.candidates)} matching developers. "
                f"Please select one to assign."
            ),
        }


@dataclass
class AssignmentRequest:
    """Caller's selection fed into the assignment executor."""
    ref: IssueRef
    username: str
    scores: ScoreBreakdown
    requirement: Optional[IssueRequirement] = None
    profile: Optional[CandidateProfile] = None


@dataclass
class AssignmentOutcome:
    """Result of executing an assignment."""
    record_id: str
    ref: IssueRef
    username: str
    status: 'AssignmentStatus'
    scores: ScoreBreakdown
    requirement: IssueRequirement
    roadmap: str
    comment_url: Optional[str] = None

    @property
    def is_recommendation(self) -> bool:
        return self.status == AssignmentStatus.RECOMMENDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.record_id,
            "organization": self.ref.organization,
            "repository": self.ref.repository,
            "issue_number": self.ref.issue_number,
            "assigned_to": self.username,
            "status": self.status.value,
            "is_recommendation": self.is_recommendation,
            "scores": self.scores.to_dict(),
            "requirement": self.requirement.to_dict(),
            "roadmap": self.roadmap,
            "comment_url": self.comment_url,
        }
