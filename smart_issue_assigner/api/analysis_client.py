"""Git-history analysis: a remote analysis service, or a built-in GitHub-based analyzer."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from .base import BaseAPIClient, RateLimitConfig, MalformedResponseError, NotFoundError
from .github_client import GitHubAPIClient, parse_github_timestamp
from smart_issue_assigner.models.common import HistoryAnalysis, Skill, TechStack
from smart_issue_assigner.utils.resilience import RetryConfig


SECONDS_PER_YEAR = 365 * 24 * 60 * 60


def years_since(created_at: Optional[datetime], now: Optional[datetime] = None) -> float:
    """Whole years between ``created_at`` and now, never below 1."""
    if created_at is None:
        return 1
    now = now or datetime.now(timezone.utc)
    return max(1, int((now - created_at).total_seconds() // SECONDS_PER_YEAR))


class RemoteHistoryAnalysisClient(BaseAPIClient):
    """Client for an external git-history analysis service.

    The service accepts ``{"username": ...}`` and answers with skills scored
    0-10, a tech stack and ``experience.total_years``.
    """

    def __init__(
        self,
        base_url: str,
        retry_config: Optional[RetryConfig] = None,
        timeout: int = 60,
        session: Optional[requests.Session] = None
    ):
        super().__init__(
            base_url=base_url,
            rate_limit_config=RateLimitConfig(requests_per_window=60, window_seconds=60),
            retry_config=retry_config,
            timeout=timeout,
            session=session
        )
        self.logger = logging.getLogger(__name__)

    def authenticate(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def analyze(self, username: str) -> HistoryAnalysis:
        data = self.post("", json_data={"username": username})
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Analysis service returned no object for {username}")

        skills = []
        for item in data.get('skills') or []:
            name = item.get('name') or item.get('skill') if isinstance(item, dict) else None
            if not name:
                continue
            score = item.get('score', 0) or 0
            skills.append(Skill(name=name, proficiency=int(round(min(10, max(0, float(score))) * 10))))

        experience = data.get('experience') or {}
        languages = data.get('languages') or {}
        tech_stack = TechStack.from_dict(data.get('techStack')) if data.get('techStack') else None
        if not languages and tech_stack:
            languages = {language: 1 for language in tech_stack.languages}

        return HistoryAnalysis(
            username=username,
            languages=dict(languages),
            years_active=float(experience.get('total_years') or 1),
            topics=list(data.get('topics') or []),
            total_stars=int(data.get('totalStars') or 0),
            repository_count=int(data.get('totalRepos') or 0),
            skills=skills,
            tech_stack=tech_stack
        )


class GitHubHistoryAnalyzer:
    """Derive history statistics straight from a user's public repositories."""

    def __init__(self, github_client: GitHubAPIClient, max_repositories: int = 30):
        self.github_client = github_client
        self.max_repositories = max_repositories
        self.logger = logging.getLogger(__name__)

    def analyze(self, username: str) -> HistoryAnalysis:
        repos = self.github_client.list_user_repos(username, per_page=self.max_repositories)
        if not repos:
            raise NotFoundError(f"No public repositories to analyze for {username}")

        languages: Dict[str, int] = {}
        topics: List[str] = []
        total_stars = 0
        for repo in repos:
            language = repo.get('language')
            if language:
                languages[language] = languages.get(language, 0) + 1
            for topic in repo.get('topics') or []:
                if topic not in topics:
                    topics.append(topic)
            total_stars += repo.get('stargazers_count') or 0

        user = self.github_client.get_user(username)
        years_active = years_since(parse_github_timestamp(user.get('created_at')))

        self.logger.debug(
            f"Analyzed {username}: {len(repos)} repos, {len(languages)} languages, {years_active} years"
        )
        return HistoryAnalysis(
            username=username,
            languages=languages,
            years_active=years_active,
            topics=topics,
            total_stars=total_stars,
            repository_count=len(repos),
        )


def describe_history(analysis: HistoryAnalysis) -> Dict[str, Any]:
    """Summary used when prompting for skill verification."""
    return {
        "username": analysis.username,
        "languages": ", ".join(f"{name} ({count} repos)" for name, count in analysis.languages.items()),
        "topics": ", ".join(analysis.topics),
        "total_stars": analysis.total_stars,
        "years_active": analysis.years_active,
        "total_repos": analysis.repository_count,
    }
