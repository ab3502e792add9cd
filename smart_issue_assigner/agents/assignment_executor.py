"""Execute a selected assignment against GitHub, falling back to a recommendation."""

import logging
from typing import Optional

from ..api.base import GatewayError, NotFoundError
from ..api.github_client import GitHubAPIClient
from ..database.repositories import AssignmentStore
from ..models.common import (
    AssignmentOutcome,
    AssignmentRequest,
    AssignmentStatus,
    CandidateProfile,
    IssueDetails,
    IssueRef,
    ScoreBreakdown,
)
from ..utils.logging import StructuredLogger
from .errors import AlreadyAssignedError, IssueNotFoundError
from .requirement_extractor import RequirementExtractor
from .roadmap_generator import RoadmapGenerator
from .role_inference import infer_roles


def _match_analysis(scores: ScoreBreakdown) -> str:
    return (
        "**Match Analysis:**\n"
        f"- Skill Match: {scores.skill_match}%\n"
        f"- Activity Level: {scores.activity}%\n"
        f"- Availability: {scores.workload}%\n"
        f"- Overall Score: {scores.final}%"
    )


def render_assignment_comment(username: str, scores: ScoreBreakdown, roadmap: str) -> str:
    return (
        "🤖 **AI-Powered Assignment**\n\n"
        f"This issue has been assigned to @{username} by our intelligent matching system!\n\n"
        f"{_match_analysis(scores)}\n\n"
        "---\n\n"
        "## Personalized Roadmap\n\n"
        f"{roadmap}\n\n"
        "---\n\n"
        "*Generated by Smart Issue Assigner*"
    )


def render_recommendation_comment(username: str, scores: ScoreBreakdown, roadmap: str) -> str:
    return (
        "🤖 **AI-Powered Recommendation**\n\n"
        f"We recommend assigning this issue to @{username}!\n\n"
        f"{_match_analysis(scores)}\n\n"
        f"*To assign @{username}, they need to either be a collaborator, "
        "have commented on this issue, or be the issue author.*\n\n"
        "---\n\n"
        f"## Personalized Roadmap for @{username}\n\n"
        f"{roadmap}\n\n"
        "---\n\n"
        "*Generated by Smart Issue Assigner*"
    )


class AssignmentExecutor:
    """Claims the issue, assigns or recommends, comments and finalizes the record.

    The PENDING claim is written before any upstream side effect, so a second
    attempt on the same issue fails with ``AlreadyAssignedError`` without
    touching GitHub.
    """

    def __init__(
        self,
        github_client: GitHubAPIClient,
        assignment_store: AssignmentStore,
        roadmap_generator: RoadmapGenerator,
        requirement_extractor: RequirementExtractor,
        profile_resolver=None
    ):
        self.github_client = github_client
        self.assignment_store = assignment_store
        self.roadmap_generator = roadmap_generator
        self.requirement_extractor = requirement_extractor
        self.profile_resolver = profile_resolver
        self.logger = logging.getLogger(__name__)
        self.structured_logger = StructuredLogger(__name__)

    def execute(self, request: AssignmentRequest, issue: Optional[IssueDetails] = None) -> AssignmentOutcome:
        """Run the assignment.

        Raises:
            AlreadyAssignedError: a record already exists for the issue
            IssueNotFoundError: the issue does not exist
        """
        ref = request.ref

        existing = self.assignment_store.find_by_key(ref)
        if existing is not None:
            raise AlreadyAssignedError(ref.repository, ref.issue_number, existing.assigned_to)

        if issue is None:
            issue = self.fetch_issue(ref)

        requirement = request.requirement or self.requirement_extractor.extract(issue)
        profile = request.profile or self._resolve_profile(request.username)

        record = self.assignment_store.claim(
            ref,
            request.username,
            request.scores,
            requirement,
            issue=issue,
            contributor_id=profile.contributor_id if profile and profile.is_registered else None
        )

        try:
            roles = infer_roles(profile) if profile else []
            roadmap = self.roadmap_generator.generate(issue, request.username, profile, roles)

            assigned = self._add_assignee(ref, request.username)
            status = AssignmentStatus.ASSIGNED if assigned else AssignmentStatus.RECOMMENDED

            if assigned:
                body = render_assignment_comment(request.username, request.scores, roadmap)
            else:
                body = render_recommendation_comment(request.username, request.scores, roadmap)
            comment_url = self._post_comment(ref, body)

            self.assignment_store.finalize(record.id, status, roadmap, comment_url)
        except Exception:
            self.assignment_store.release(record.id)
            raise

        self.structured_logger.log_assignment_made(
            str(ref), request.username, status.value, final_score=request.scores.final
        )

        return AssignmentOutcome(
            record_id=record.id,
            ref=ref,
            username=request.username,
            status=status,
            scores=request.scores,
            requirement=requirement,
            roadmap=roadmap,
            comment_url=comment_url
        )

    def fetch_issue(self, ref: IssueRef) -> IssueDetails:
        try:
            return self.github_client.get_issue(ref.repository, ref.issue_number)
        except NotFoundError as e:
            raise IssueNotFoundError(ref.repository, ref.issue_number) from e

    def _resolve_profile(self, username: str) -> Optional[CandidateProfile]:
        if self.profile_resolver is None:
            return None
        return self.profile_resolver.resolve(username)

    def _add_assignee(self, ref: IssueRef, username: str) -> bool:
        """True if GitHub accepted the assignee; any refusal or failure means recommend."""
        try:
            self.github_client.add_assignees(ref.repository, ref.issue_number, username)
            return True
        except GatewayError as e:
            self.logger.warning(
                f"Could not assign {username} to {ref} ({e}), posting as recommendation instead"
            )
            return False

    def _post_comment(self, ref: IssueRef, body: str) -> Optional[str]:
        try:
            return self.github_client.create_comment(ref.repository, ref.issue_number, body)
        except GatewayError as e:
            self.logger.warning(f"Failed to post comment on {ref}: {e}")
            return None
