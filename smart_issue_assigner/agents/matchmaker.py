"""Issue matchmaking: shortlist commenters for an issue and assign the chosen one."""

import logging
from typing import Any, Dict, List, Optional

from ..api.analysis_client import GitHubHistoryAnalyzer, RemoteHistoryAnalysisClient
from ..api.base import GatewayError, NotFoundError, build_retry_config
from ..api.gemini_client import GeminiAPIClient
from ..api.github_client import GitHubAPIClient
from ..config.settings import SystemConfig
from ..database.connection import DatabaseManager
from ..database.repositories import AssignmentStore, ContributorRegistry
from ..models.common import (
    AssignmentOutcome,
    AssignmentRequest,
    AssignmentStatus,
    CandidateProfile,
    CandidateScore,
    IssueComment,
    IssueDetails,
    IssueRef,
    IssueRequirement,
    ScoreBreakdown,
    Shortlist,
)
from ..models.database import AssignmentRecord
from ..utils.concurrency import bounded_map_unique, unique_preserving_order
from ..utils.logging import StructuredLogger
from .assignment_executor import AssignmentExecutor
from .errors import AlreadyAssignedError, IssueNotFoundError, NoCandidatesError
from .profile_resolver import ProfileResolver
from .ranking import rank_candidates, select_shortlist
from .requirement_extractor import RequirementExtractor
from .roadmap_generator import RoadmapGenerator
from .role_inference import infer_roles
from .scoring import ScoringEngine


class IssueMatchmaker:
    """Entry point for the two workflow operations and their supporting queries."""

    def __init__(
        self,
        config: SystemConfig,
        github_client: GitHubAPIClient,
        db_manager: DatabaseManager,
        gemini_client: Optional[GeminiAPIClient] = None,
        history_analyzer=None
    ):
        self.config = config
        self.github_client = github_client
        self.gemini_client = gemini_client
        self.db_manager = db_manager
        self.logger = logging.getLogger(__name__)
        self.structured_logger = StructuredLogger(__name__)

        self.registry = ContributorRegistry(db_manager)
        self.assignment_store = AssignmentStore(db_manager)

        self.requirement_extractor = RequirementExtractor(gemini_client)
        self.profile_resolver = ProfileResolver(
            registry=self.registry,
            history_analyzer=history_analyzer or GitHubHistoryAnalyzer(github_client),
            github_client=github_client,
            gemini_client=gemini_client,
            config=config.matching
        )
        self.scoring_engine = ScoringEngine(config.matching, self.assignment_store)
        self.roadmap_generator = RoadmapGenerator(gemini_client)
        self.executor = AssignmentExecutor(
            github_client=github_client,
            assignment_store=self.assignment_store,
            roadmap_generator=self.roadmap_generator,
            requirement_extractor=self.requirement_extractor,
            profile_resolver=self.profile_resolver
        )

    @classmethod
    def from_config(cls, config: SystemConfig, db_manager: Optional[DatabaseManager] = None) -> 'IssueMatchmaker':
        """Wire gateways and storage from configuration."""
        retry_config = build_retry_config(
            max_attempts=config.retry.max_attempts,
            base_delay=config.retry.base_delay,
            max_delay=config.retry.max_delay,
            jitter=config.retry.jitter
        )

        github_client = GitHubAPIClient(
            token=config.api.github_token,
            base_url=config.api.github_api_url,
            rate_limit_requests=config.api.rate_limit_requests,
            rate_limit_window=config.api.rate_limit_window,
            retry_config=retry_config,
            timeout=config.api.request_timeout
        )

        gemini_client = None
        if config.api.gemini_api_key:
            gemini_client = GeminiAPIClient(
                api_key=config.api.gemini_api_key,
                model=config.api.gemini_model,
                base_url=config.api.gemini_api_url,
                retry_config=retry_config,
                timeout=max(config.api.request_timeout, 60)
            )

        if config.api.analysis_service_url:
            history_analyzer = RemoteHistoryAnalysisClient(
                base_url=config.api.analysis_service_url,
                retry_config=retry_config,
                timeout=max(config.api.request_timeout, 60)
            )
        else:
            history_analyzer = GitHubHistoryAnalyzer(github_client)

        if db_manager is None:
            db_manager = DatabaseManager(config.database)
            db_manager.create_tables()

        return cls(
            config=config,
            github_client=github_client,
            db_manager=db_manager,
            gemini_client=gemini_client,
            history_analyzer=history_analyzer
        )

    def shortlist_candidates(
        self,
        organization: str,
        repository: str,
        issue_number: int,
        k: Optional[int] = None
    ) -> Shortlist:
        """Rank the issue's commenters and return the top ``k``.

        Raises:
            AlreadyAssignedError: the issue already has an assignment record
            IssueNotFoundError: the issue does not exist
            NoCandidatesError: nobody commented, or no commenter could be resolved
        """
        ref = IssueRef(organization, repository, issue_number)
        k = k or self.config.matching.shortlist_size

        existing = self.assignment_store.find_by_key(ref)
        if existing is not None:
            raise AlreadyAssignedError(repository, issue_number, existing.assigned_to)

        issue = self._fetch_issue(ref)
        comments = self.github_client.get_issue_comments(repository, issue_number)
        usernames = unique_preserving_order(comment.author for comment in comments)
        if not usernames:
            raise NoCandidatesError(NoCandidatesError.NO_COMMENTERS)

        self.logger.info(f"Evaluating {len(usernames)} commenters for {ref}")

        requirement = self.requirement_extractor.extract(issue)
        profiles = self.profile_resolver.resolve_many(usernames)
        resolved = {username: profile for username, profile in profiles.items() if profile is not None}
        if not resolved:
            raise NoCandidatesError(NoCandidatesError.NO_ANALYZABLE)

        activity = bounded_map_unique(
            self._probe_activity, list(resolved), self.config.matching.resolver_concurrency
        )
        latest_comments = self._latest_comment_by_author(comments)

        scored = [
            CandidateScore(
                profile=profile,
                scores=self.scoring_engine.score(requirement, profile, activity[username]),
                recent_push_events=activity[username],
                inferred_roles=infer_roles(profile),
                comment=latest_comments.get(username.lower())
            )
            for username, profile in resolved.items()
        ]

        shortlist = select_shortlist(rank_candidates(scored), k)
        self.structured_logger.log_shortlist_produced(
            str(ref), len(shortlist), evaluated=len(scored),
            top=shortlist[0].identity if shortlist else None
        )

        return Shortlist(
            ref=ref,
            issue=issue,
            requirement=requirement,
            candidates=shortlist,
            total_evaluated=len(scored)
        )

    def assign_candidate(
        self,
        organization: str,
        repository: str,
        issue_number: int,
        username: str,
        scores: Optional[ScoreBreakdown] = None,
        requirement: Optional[IssueRequirement] = None
    ) -> AssignmentOutcome:
        """Assign (or recommend) ``username`` for the issue.

        When ``scores`` are not supplied the candidate is scored on the spot.

        Raises:
            AlreadyAssignedError: the issue already has an assignment record
            IssueNotFoundError: the issue does not exist
        """
        ref = IssueRef(organization, repository, issue_number)

        existing = self.assignment_store.find_by_key(ref)
        if existing is not None:
            raise AlreadyAssignedError(repository, issue_number, existing.assigned_to)

        issue = self._fetch_issue(ref)
        requirement = requirement or self.requirement_extractor.extract(issue)
        profile = self.profile_resolver.resolve(username)

        if scores is None:
            scores = self._score_single(requirement, profile, username)

        request = AssignmentRequest(
            ref=ref,
            username=username,
            scores=scores,
            requirement=requirement,
            profile=profile
        )
        return self.executor.execute(request, issue=issue)

    def list_assignments(
        self,
        organization: str,
        status: Optional[AssignmentStatus] = None,
        limit: Optional[int] = None
    ) -> List[AssignmentRecord]:
        """Assignment records for an organization, newest first."""
        return self.assignment_store.list_for_organization(organization, status=status, limit=limit)

    def update_assignment_status(self, record_id: str, status: AssignmentStatus) -> AssignmentRecord:
        return self.assignment_store.update_status(record_id, status)

    def register_contributor(self, data: Dict[str, Any]) -> CandidateProfile:
        """Onboard a contributor so future runs resolve them as Registered."""
        return self.registry.upsert(data)

    def _fetch_issue(self, ref: IssueRef) -> IssueDetails:
        try:
            return self.github_client.get_issue(ref.repository, ref.issue_number)
        except NotFoundError as e:
            raise IssueNotFoundError(ref.repository, ref.issue_number) from e

    def _probe_activity(self, username: str) -> Optional[int]:
        """Recent push count, or None when the events feed is unavailable."""
        try:
            return self.github_client.count_recent_push_events(
                username, window_days=self.config.matching.activity_window_days
            )
        except GatewayError as e:
            self.logger.warning(f"Activity probe failed for {username}: {e}")
            return None

    def _score_single(
        self,
        requirement: IssueRequirement,
        profile: Optional[CandidateProfile],
        username: str
    ) -> ScoreBreakdown:
        if profile is None:
            return ScoreBreakdown.combine(0, 0, 100, self.scoring_engine.weights)
        return self.scoring_engine.score(requirement, profile, self._probe_activity(username))

    @staticmethod
    def _latest_comment_by_author(comments: List[IssueComment]) -> Dict[str, IssueComment]:
        latest: Dict[str, IssueComment] = {}
        for comment in comments:
            latest[comment.author.lower()] = comment
        return latest
