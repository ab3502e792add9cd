"""Validation models for AI replies and contributor registration."""

import re
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import (
    ExpertiseTier,
    IssueRequirement,
    RequiredSkill,
)


class ValidationError(Exception):
    """Custom exception for validation errors."""
    pass


GITHUB_USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9](?:[A-Za-z0-9-]{0,38})$')


class RequiredSkillPayload(BaseModel):
    """One entry of ``requiredSkills`` in an issue analysis reply."""

    skill: str = Field(..., min_length=1, max_length=100)
    importance: float

    @field_validator('skill')
    @classmethod
    def validate_skill(cls, v):
        if not v.strip():
            raise ValueError('Skill name cannot be blank')
        return v.strip()

    @field_validator('importance')
    @classmethod
    def clamp_importance(cls, v):
        """Models sometimes answer outside 1-10; clamp instead of rejecting."""
        return min(10.0, max(1.0, v))


class IssueAnalysisPayload(BaseModel):
    """Reply shape expected from the issue analysis prompt."""

    model_config = ConfigDict(populate_by_name=True)

    required_skills: List[RequiredSkillPayload] = Field(..., alias='requiredSkills', max_length=20)
    expertise: Optional[str] = None
    estimated_hours: float = Field(3, alias='estimatedHours', ge=0)

    def to_requirement(self) -> IssueRequirement:
        return IssueRequirement(
            required_skills=[
                RequiredSkill(skill=item.skill, importance=int(round(item.importance)))
                for item in self.required_skills
            ],
            expertise_tier=ExpertiseTier.parse(self.expertise),
            estimated_hours=self.estimated_hours
        )


class VerifiedSkillPayload(BaseModel):
    """A skill scored 0-10 by the verification prompt."""

    name: str = Field(..., min_length=1, max_length=100)
    score: float = Field(..., ge=0, le=10)


class TechStackPayload(BaseModel):
    languages: List[str] = Field(default_factory=list)
    frameworks: List[str] = Field(default_factory=list)
    tools: List[str] = Field(default_factory=list)
    databases: List[str] = Field(default_factory=list)


class ExperiencePayload(BaseModel):
    total_years: Optional[float] = Field(None, ge=0)


class SkillVerificationPayload(BaseModel):
    """Reply shape expected from the skill verification prompt."""

    model_config = ConfigDict(populate_by_name=True)

    skills: List[VerifiedSkillPayload] = Field(default_factory=list)
    tech_stack: TechStackPayload = Field(default_factory=TechStackPayload, alias='techStack')
    strengths: List[str] = Field(default_factory=list)
    experience: Optional[ExperiencePayload] = None

    @field_validator('strengths')
    @classmethod
    def limit_strengths(cls, v):
        cleaned = [s.strip() for s in v if s and s.strip()]
        return cleaned[:5]


class ContributorSkillValidator(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    proficiency: int = Field(..., ge=0, le=100)


class ContributorProfileValidator(BaseModel):
    """Pydantic validator for registry onboarding."""

    github_username: str = Field(..., min_length=1, max_length=39)
    name: Optional[str] = Field(None, max_length=200)
    email: Optional[str] = Field(None, max_length=200)
    skills: List[ContributorSkillValidator] = Field(..., min_length=1, max_length=50)
    tech_stack: Dict[str, List[str]] = Field(default_factory=dict)
    strengths: List[str] = Field(default_factory=list, max_length=10)
    expertise_tier: ExpertiseTier = ExpertiseTier.INTERMEDIATE
    experience_years: float = Field(0.0, ge=0, le=60)

    @field_validator('github_username')
    @classmethod
    def validate_github_username(cls, v):
        """Validate GitHub username format."""
        if not GITHUB_USERNAME_PATTERN.match(v):
            raise ValueError('Invalid GitHub username format')
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        if v is None:
            return v
        if not re.match(r'^[^@\s]+@[^@\s]+\.[^@\s]+$', v):
            raise ValueError('Invalid email format')
        return v.lower()

    @field_validator('expertise_tier', mode='before')
    @classmethod
    def parse_expertise_tier(cls, v):
        if isinstance(v, str):
            tier = ExpertiseTier.parse(v, default=None)
            if tier is None or tier.value != v.strip().lower():
                raise ValueError(f"Expertise tier must be one of {[t.value for t in ExpertiseTier]}")
            return tier
        return v

    @field_validator('tech_stack')
    @classmethod
    def validate_tech_stack(cls, v):
        allowed = {'languages', 'frameworks', 'tools', 'databases'}
        unknown = set(v) - allowed
        if unknown:
            raise ValueError(f"Unknown tech stack categories: {sorted(unknown)}")
        return v


def validate_issue_analysis(data: Dict[str, Any]) -> IssueRequirement:
    """Validate an issue analysis reply and convert it to a requirement."""
    try:
        return IssueAnalysisPayload(**data).to_requirement()
    except Exception as e:
        raise ValidationError(f"Issue analysis validation failed: {e}")


def validate_skill_verification(data: Dict[str, Any]) -> SkillVerificationPayload:
    """Validate a skill verification reply."""
    try:
        return SkillVerificationPayload(**data)
    except Exception as e:
        raise ValidationError(f"Skill verification validation failed: {e}")


def validate_contributor_profile(data: Dict[str, Any]) -> ContributorProfileValidator:
    """Validate contributor onboarding data and return validated model."""
    try:
        return ContributorProfileValidator(**data)
    except Exception as e:
        raise ValidationError(f"Contributor profile validation failed: {e}")
