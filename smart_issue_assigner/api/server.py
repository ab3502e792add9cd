"""FastAPI endpoints for shortlisting and assigning issues."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Query, Path, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from ..agents.errors import (
    AlreadyAssignedError,
    AssignmentNotFoundError,
    InvalidStatusTransitionError,
    IssueNotFoundError,
    NoCandidatesError,
)
from ..agents.matchmaker import IssueMatchmaker
from ..models.common import (
    AssignmentStatus,
    ExpertiseTier,
    IssueRequirement,
    RequiredSkill,
    ScoreBreakdown,
)
from ..models.validation import ValidationError
from .base import GatewayError


logger = logging.getLogger(__name__)

REPOSITORY_PATTERN = r'^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$'


# Pydantic models for API requests
class ShortlistRequest(BaseModel):
    """Request model for shortlisting an issue's commenters."""
    organization: str = Field(..., min_length=1, max_length=100)
    repository: str = Field(..., pattern=REPOSITORY_PATTERN, description="owner/name")
    issue_number: int = Field(..., ge=1)
    k: Optional[int] = Field(None, ge=1, le=50, description="Shortlist size")


class ScoresModel(BaseModel):
    skill_match: int = Field(..., ge=0, le=100)
    activity: int = Field(..., ge=0, le=100)
    workload: int = Field(..., ge=0, le=100)


class RequiredSkillModel(BaseModel):
    skill: str = Field(..., min_length=1)
    importance: int = Field(..., ge=1, le=10)


class RequirementModel(BaseModel):
    required_skills: List[RequiredSkillModel] = Field(default_factory=list)
    expertise_tier: str = "intermediate"
    estimated_hours: float = Field(3, ge=0)

    def to_requirement(self) -> IssueRequirement:
        return IssueRequirement(
            required_skills=[RequiredSkill(skill=item.skill, importance=item.importance)
                             for item in self.required_skills],
            expertise_tier=ExpertiseTier.parse(self.expertise_tier),
            estimated_hours=self.estimated_hours
        )


class AssignRequest(BaseModel):
    """Request model for assigning a selected candidate."""
    organization: str = Field(..., min_length=1, max_length=100)
    repository: str = Field(..., pattern=REPOSITORY_PATTERN)
    issue_number: int = Field(..., ge=1)
    username: str = Field(..., min_length=1, max_length=39)
    scores: Optional[ScoresModel] = Field(None, description="Scores shown on the shortlist")
    requirement: Optional[RequirementModel] = None

    @field_validator('username')
    @classmethod
    def strip_mention(cls, v):
        return v.strip().lstrip('@')


class StatusUpdateRequest(BaseModel):
    status: AssignmentStatus


ERROR_STATUS_CODES = [
    (IssueNotFoundError, 404),
    (AssignmentNotFoundError, 404),
    (NoCandidatesError, 404),
    (AlreadyAssignedError, 409),
    (InvalidStatusTransitionError, 400),
    (ValidationError, 400),
    (GatewayError, 502),
]


class MatchmakerAPI:
    """FastAPI application exposing the matchmaking workflow."""

    def __init__(self, matchmaker: IssueMatchmaker):
        self.matchmaker = matchmaker
        self.app = FastAPI(
            title="Smart Issue Assigner API",
            description="Shortlist issue commenters and assign the best match",
            version="1.0.0"
        )
        self._setup_exception_handlers()
        self._setup_routes()

    def _setup_exception_handlers(self):
        for error_type, status_code in ERROR_STATUS_CODES:
            self.app.add_exception_handler(error_type, self._error_handler(status_code))

    @staticmethod
    def _error_handler(status_code: int):
        async def handler(request: Request, exc: Exception) -> JSONResponse:
            if status_code >= 500:
                logger.error(f"{request.method} {request.url.path} failed upstream: {exc}")
            return JSONResponse(
                status_code=status_code,
                content={"error": type(exc).__name__, "detail": str(exc)}
            )
        return handler

    def _setup_routes(self):
        """Set up API routes."""

        @self.app.get("/health")
        def health() -> Dict[str, Any]:
            """Liveness and database check."""
            return {"status": "ok", "database": self.matchmaker.db_manager.health_check()}

        @self.app.post("/issues/shortlist")
        def shortlist(request: ShortlistRequest) -> Dict[str, Any]:
            """Rank the issue's commenters and return the top candidates."""
            result = self.matchmaker.shortlist_candidates(
                request.organization, request.repository, request.issue_number, k=request.k
            )
            return result.to_dict()

        @self.app.post("/issues/assign")
        def assign(request: AssignRequest) -> Dict[str, Any]:
            """Assign the selected candidate, or post a recommendation if GitHub refuses."""
            return self._assign(request)

        @self.app.get("/assignments")
        def list_assignments(
            organization: str = Query(..., min_length=1, description="Organization"),
            status: Optional[AssignmentStatus] = Query(None, description="Filter by status"),
            limit: int = Query(100, ge=1, le=1000, description="Maximum number of results")
        ) -> Dict[str, Any]:
            """List an organization's assignments, newest first."""
            records = self.matchmaker.list_assignments(organization, status=status, limit=limit)
            return {"assignments": [record.to_dict() for record in records], "count": len(records)}

        @self.app.patch("/assignments/{record_id}/status")
        def update_status(
            request: StatusUpdateRequest,
            record_id: str = Path(..., description="Assignment ID")
        ) -> Dict[str, Any]:
            """Move an assignment through its lifecycle."""
            record = self.matchmaker.update_assignment_status(record_id, request.status)
            return record.to_dict()

    def _assign(self, request: AssignRequest) -> Dict[str, Any]:
        scores = None
        if request.scores is not None:
            # Final is recomputed from the sub-scores
            scores = ScoreBreakdown.combine(
                request.scores.skill_match,
                request.scores.activity,
                request.scores.workload,
                self.matchmaker.scoring_engine.weights
            )

        outcome = self.matchmaker.assign_candidate(
            request.organization,
            request.repository,
            request.issue_number,
            request.username,
            scores=scores,
            requirement=request.requirement.to_requirement() if request.requirement else None
        )

        response = outcome.to_dict()
        if outcome.is_recommendation:
            response["warning"] = (
                f"{outcome.username} could not be assigned. They need to be a collaborator "
                f"or have interacted with the issue."
            )
        return response


def create_app(matchmaker: IssueMatchmaker) -> FastAPI:
    """Create and configure the API application."""
    return MatchmakerAPI(matchmaker).app
