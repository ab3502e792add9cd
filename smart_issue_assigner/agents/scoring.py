"""Multi-factor scoring of a candidate profile against an issue requirement."""

import logging
from typing import Optional

from ..config.settings import MatchingConfig
from ..models.common import (
    CandidateProfile,
    IssueRequirement,
    ScoreBreakdown,
)


def _overlaps(a: str, b: str) -> bool:
    a, b = a.lower(), b.lower()
    return a in b or b in a


class ScoringEngine:
    """Scores candidates on skill match, recent activity and current workload."""

    def __init__(self, config: Optional[MatchingConfig] = None, assignment_store=None):
        """
        Args:
            config: Weights and tech-stack credit
            assignment_store: Source of active-assignment counts for Registered
                candidates; anything with ``count_active_for(username)``
        """
        self.config = config or MatchingConfig()
        self.assignment_store = assignment_store
        self.logger = logging.getLogger(__name__)

        self.weights = (
            self.config.skill_weight,
            self.config.activity_weight,
            self.config.workload_weight,
        )

    def score(
        self,
        requirement: IssueRequirement,
        profile: CandidateProfile,
        recent_push_events: Optional[int]
    ) -> ScoreBreakdown:
        """Score one candidate for one issue."""
        skill_match = self.skill_match_score(requirement, profile)
        activity = self.activity_score(recent_push_events)
        workload = self.workload_score(profile)

        return ScoreBreakdown.combine(skill_match, activity, workload, self.weights)

    def skill_match_score(self, requirement: IssueRequirement, profile: CandidateProfile) -> float:
        """Importance-weighted coverage of the required skills.

        A named skill overlapping the requirement (substring either way,
        case-insensitive) credits ``importance * proficiency / 100``; failing
        that, a tech-stack entry credits ``importance * tech_stack_credit``.
        """
        if not requirement.required_skills:
            return 50.0

        total_importance = 0.0
        credited = 0.0
        for required in requirement.required_skills:
            total_importance += required.importance

            named = next(
                (skill for skill in profile.skills if skill.name and _overlaps(skill.name, required.skill)),
                None
            )
            if named is not None:
                credited += required.importance * (named.proficiency / 100.0)
                continue

            for _, entries in profile.tech_stack.categories():
                if any(entry and _overlaps(entry, required.skill) for entry in entries):
                    credited += required.importance * self.config.tech_stack_credit
                    break

        if total_importance <= 0:
            return 0.0

        return min(100.0, 100.0 * credited / total_importance)

    @staticmethod
    def activity_score(recent_push_events: Optional[int]) -> float:
        """Push events in the activity window mapped onto 0-100."""
        if recent_push_events is None:
            return 0.0
        if recent_push_events >= 31:
            return 100.0
        if recent_push_events >= 16:
            return 75.0
        if recent_push_events >= 6:
            return 50.0
        return float(min(20, 4 * max(0, recent_push_events)))

    def workload_score(self, profile: CandidateProfile) -> float:
        """Inverse of current load; only Registered candidates carry workload."""
        if not profile.is_registered or self.assignment_store is None:
            return 100.0

        active = self.assignment_store.count_active_for(profile.identity)
        return float(max(0, 100 - 20 * active))
