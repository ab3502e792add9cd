"""
Pytest fixtures for Smart Issue Assigner tests.

Storage runs on an in-memory SQLite database; GitHub and Gemini are
replaced with mocks so no test touches the network.
"""

from unittest.mock import MagicMock

import pytest

from smart_issue_assigner.api.gemini_client import GeminiAPIClient
from smart_issue_assigner.api.github_client import GitHubAPIClient
from smart_issue_assigner.config.settings import DatabaseConfig, MatchingConfig, SystemConfig
from smart_issue_assigner.database.connection import DatabaseManager
from smart_issue_assigner.database.repositories import AssignmentStore, ContributorRegistry
from smart_issue_assigner.models.common import (
    CandidateProfile,
    ExpertiseTier,
    IssueComment,
    IssueDetails,
    IssueRef,
    IssueRequirement,
    ProfileOrigin,
    RequiredSkill,
    ScoreBreakdown,
    Skill,
    TechStack,
)


@pytest.fixture
def db_manager():
    """Fresh in-memory database per test."""
    manager = DatabaseManager(DatabaseConfig(url="sqlite://"))
    manager.create_tables()
    yield manager
    manager.close()


@pytest.fixture
def registry(db_manager):
    return ContributorRegistry(db_manager)


@pytest.fixture
def assignment_store(db_manager):
    return AssignmentStore(db_manager)


@pytest.fixture
def matching_config():
    """Sequential resolution keeps the shared SQLite connection single-threaded."""
    return MatchingConfig(resolver_concurrency=1)


@pytest.fixture
def system_config(matching_config):
    config = SystemConfig()
    config.api.github_token = "test-token"
    config.database.url = "sqlite://"
    config.matching = matching_config
    return config


@pytest.fixture
def github_client():
    return MagicMock(spec=GitHubAPIClient)


@pytest.fixture
def gemini_client():
    client = MagicMock(spec=GeminiAPIClient)
    client.is_configured = True
    return client


@pytest.fixture
def issue_ref():
    return IssueRef(organization="octo", repository="octo/widgets", issue_number=7)


@pytest.fixture
def sample_issue():
    return IssueDetails(
        number=7,
        title="Dashboard crashes when filtering by date",
        body="The React dashboard throws when the date filter is cleared.",
        labels=["bug", "frontend"],
        html_url="https://github.com/octo/widgets/issues/7",
        state="open",
        author="reporter"
    )


@pytest.fixture
def sample_requirement():
    return IssueRequirement(
        required_skills=[
            RequiredSkill(skill="React", importance=8),
            RequiredSkill(skill="Go", importance=5),
        ],
        expertise_tier=ExpertiseTier.INTERMEDIATE,
        estimated_hours=4
    )


@pytest.fixture
def sample_scores():
    return ScoreBreakdown.combine(76, 100, 100)


@pytest.fixture
def contributor_data():
    """Valid onboarding payload for a Registered contributor."""
    return {
        "github_username": "carol",
        "name": "Carol Danvers",
        "email": "carol@example.com",
        "skills": [
            {"name": "General Programming", "proficiency": 90},
            {"name": "React", "proficiency": 80},
        ],
        "tech_stack": {"languages": ["TypeScript", "Go"], "frameworks": ["React"]},
        "strengths": ["Frontend architecture"],
        "expertise_tier": "advanced",
        "experience_years": 4,
    }


def make_profile(identity, skills=None, tech_stack=None, origin=ProfileOrigin.ANALYZED, **kwargs):
    """Build a candidate profile with sensible defaults."""
    return CandidateProfile(
        identity=identity,
        origin=origin,
        skills=[Skill(name=name, proficiency=level) for name, level in (skills or [])],
        tech_stack=tech_stack or TechStack(),
        expertise_tier=kwargs.pop("expertise_tier", ExpertiseTier.INTERMEDIATE),
        experience_years=kwargs.pop("experience_years", 2),
        **kwargs
    )


def make_comment(author, body="I'd like to work on this"):
    return IssueComment(author=author, body=body, html_url=None, created_at=None)
