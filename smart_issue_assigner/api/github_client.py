"""GitHub API client for issue, contributor and assignment operations."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Any

import requests

from .base import BaseAPIClient, RateLimitConfig, RejectedError, MalformedResponseError
from smart_issue_assigner.models.common import IssueDetails, IssueComment
from smart_issue_assigner.utils.resilience import RetryConfig


def parse_github_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse GitHub's ISO-8601 timestamps (``2024-01-01T00:00:00Z``)."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None


class GitHubAPIClient(BaseAPIClient):
    """GitHub API client with authentication and rate limiting.

    One instance is shared per run so that every GitHub call goes through
    the same token bucket and backoff policy.
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        rate_limit_requests: int = 5000,
        rate_limit_window: int = 3600,
        retry_config: Optional[RetryConfig] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None
    ):
        """Initialize GitHub API client.

        Args:
            token: GitHub personal access token
            base_url: REST API root
            rate_limit_requests: Requests per window (GitHub allows 5000/hour)
            rate_limit_window: Rate limit window in seconds
            retry_config: Backoff policy for rate-limited and transient failures
        """
        self.token = token

        rate_limit_config = RateLimitConfig(
            requests_per_window=rate_limit_requests,
            window_seconds=rate_limit_window
        )

        super().__init__(
            base_url=base_url,
            rate_limit_config=rate_limit_config,
            retry_config=retry_config,
            timeout=timeout,
            session=session
        )
        self.logger = logging.getLogger(__name__)

    def authenticate(self) -> Dict[str, str]:
        """Return GitHub authentication headers."""
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "smart-issue-assigner/1.0"
        }

    def test_connection(self) -> bool:
        """Test GitHub API connection and authentication."""
        try:
            user_data = self.get("/user")
            self.logger.info(f"Connected to GitHub as: {user_data.get('login')}")
            return True
        except Exception as e:
            self.logger.error(f"GitHub connection test failed: {e}")
            return False

    def get_issue(self, repository: str, issue_number: int) -> IssueDetails:
        """Get a specific issue.

        Raises:
            NotFoundError: if the repository or issue does not exist
        """
        data = self.get(f"/repos/{repository}/issues/{issue_number}")
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Unexpected issue payload for {repository}#{issue_number}")

        return IssueDetails(
            number=data.get('number', issue_number),
            title=data.get('title') or "",
            body=data.get('body') or "",
            labels=[label.get('name') for label in data.get('labels', []) if isinstance(label, dict)],
            html_url=data.get('html_url') or "",
            state=data.get('state') or "open",
            author=(data.get('user') or {}).get('login')
        )

    def get_issue_comments(
        self,
        repository: str,
        issue_number: int,
        per_page: int = 100,
        max_pages: int = 10
    ) -> List[IssueComment]:
        """Get the comments on an issue, oldest first."""
        comments = []
        for page in range(1, max_pages + 1):
            batch = self.get(
                f"/repos/{repository}/issues/{issue_number}/comments",
                params={"per_page": per_page, "page": page}
            ) or []
            for item in batch:
                author = (item.get('user') or {}).get('login')
                if not author:
                    continue
                comments.append(IssueComment(
                    author=author,
                    body=item.get('body') or "",
                    html_url=item.get('html_url'),
                    created_at=parse_github_timestamp(item.get('created_at'))
                ))
            if len(batch) < per_page:
                break

        self.logger.debug(f"Retrieved {len(comments)} comments from {repository}#{issue_number}")
        return comments

    def get_user(self, username: str) -> Dict[str, Any]:
        """Get a user's public profile."""
        data = self.get(f"/users/{username}")
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Unexpected user payload for {username}")
        return data

    def get_user_events(self, username: str, per_page: int = 100) -> List[Dict[str, Any]]:
        """Get a user's recent public events."""
        return self.get(f"/users/{username}/events", params={"per_page": per_page}) or []

    def count_recent_push_events(
        self,
        username: str,
        window_days: int = 30,
        now: Optional[datetime] = None
    ) -> int:
        """Count PushEvents within the last ``window_days`` days."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=window_days)

        count = 0
        for event in self.get_user_events(username):
            if event.get('type') != 'PushEvent':
                continue
            created_at = parse_github_timestamp(event.get('created_at'))
            if created_at and created_at >= cutoff:
                count += 1
        return count

    def list_user_repos(self, username: str, per_page: int = 100) -> List[Dict[str, Any]]:
        """List a user's public repositories, most recently updated first."""
        return self.get(
            f"/users/{username}/repos",
            params={"per_page": per_page, "sort": "updated"}
        ) or []

    def add_assignees(self, repository: str, issue_number: int, username: str) -> Dict[str, Any]:
        """Add ``username`` as an assignee of the issue.

        GitHub answers 201 even when it silently drops a login it will not
        accept (non-collaborators), so the returned assignee list is checked.

        Raises:
            RejectedError: if the platform refused or ignored the assignment
        """
        data = self.post(
            f"/repos/{repository}/issues/{issue_number}/assignees",
            json_data={"assignees": [username]}
        ) or {}

        assigned = {
            (assignee.get('login') or '').lower()
            for assignee in data.get('assignees', []) if isinstance(assignee, dict)
        }
        if username.lower() not in assigned:
            raise RejectedError(f"GitHub did not accept {username} as assignee of {repository}#{issue_number}")

        self.logger.info(f"Assigned {repository}#{issue_number} to {username}")
        return data

    def create_comment(self, repository: str, issue_number: int, body: str) -> Optional[str]:
        """Post a comment on an issue and return its URL."""
        data = self.post(
            f"/repos/{repository}/issues/{issue_number}/comments",
            json_data={"body": body}
        ) or {}
        self.logger.info(f"Added comment to {repository}#{issue_number}")
        return data.get('html_url')

    def get_rate_limit_status(self) -> Dict[str, Any]:
        """Get current rate limit status."""
        data = self.get("/rate_limit") or {}
        core = data.get('resources', {}).get('core', {})
        return {
            "limit": core.get('limit'),
            "remaining": core.get('remaining'),
            "reset": core.get('reset'),
        }
