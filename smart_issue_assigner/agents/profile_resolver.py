"""Resolve candidate usernames to capability profiles."""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from ..api.analysis_client import describe_history
from ..api.base import GatewayError, NotFoundError
from ..api.gemini_client import GeminiAPIClient
from ..api.github_client import GitHubAPIClient
from ..config.settings import MatchingConfig
from ..database.connection import DatabaseError
from ..database.repositories import ContributorRegistry
from ..models.common import (
    CandidateProfile,
    ExpertiseTier,
    HistoryAnalysis,
    ProfileOrigin,
    Skill,
    TechStack,
)
from ..models.validation import ValidationError, validate_skill_verification
from ..utils.concurrency import bounded_map_unique
from ..utils.json_extraction import extract_json_object
from ..utils.logging import StructuredLogger


PLACEHOLDER_SKILL = "GitHub Contributor"
ANALYZED_PLACEHOLDER_PROFICIENCY = 60
MINIMAL_PLACEHOLDER_PROFICIENCY = 50

VERIFICATION_PROMPT = """Analyze this GitHub profile data and provide a structured analysis:

Username: {username}
Languages used: {languages}
Topics/Technologies: {topics}
Total Stars: {total_stars}
Years Active: {years_active}
Total Repos: {total_repos}

Provide a JSON response with:
{{
  "skills": [{{"name": "skill_name", "score": 0-10}}],
  "techStack": {{
    "languages": ["lang1"],
    "frameworks": ["framework1"],
    "tools": ["tool1"],
    "databases": ["db1"]
  }},
  "strengths": ["3 to 5 short strengths"],
  "experience": {{"total_years": number}}
}}

Return ONLY valid JSON, no explanations."""

# Failures that make a stage fall through to the next one
STAGE_ERRORS = (GatewayError, DatabaseError, ValidationError, ValueError, TypeError, KeyError)

Stage = Callable[[str], Optional[CandidateProfile]]


def profile_from_history(analysis: HistoryAnalysis) -> CandidateProfile:
    """Raw ANALYZED profile derived from history statistics alone."""
    if analysis.skills:
        skills = list(analysis.skills)
    else:
        ordered = sorted(analysis.languages.items(), key=lambda item: (-item[1], item[0].lower()))
        skills = [Skill(name=name, proficiency=min(10, count) * 10) for name, count in ordered]
    if not skills:
        skills = [Skill(name=PLACEHOLDER_SKILL, proficiency=ANALYZED_PLACEHOLDER_PROFICIENCY)]

    tech_stack = analysis.tech_stack
    if tech_stack is None or tech_stack.is_empty():
        tech_stack = TechStack(languages=list(analysis.languages))

    return CandidateProfile(
        identity=analysis.username,
        origin=ProfileOrigin.ANALYZED,
        skills=skills,
        tech_stack=tech_stack,
        expertise_tier=ExpertiseTier.from_years(analysis.years_active),
        experience_years=analysis.years_active,
        name=analysis.username,
        strengths=[skill.name for skill in skills[:5] if skill.name != PLACEHOLDER_SKILL]
    )


def minimal_profile(username: str, user: Dict) -> CandidateProfile:
    """MINIMAL profile built from the public user record."""
    return CandidateProfile(
        identity=username,
        origin=ProfileOrigin.MINIMAL,
        skills=[Skill(name=PLACEHOLDER_SKILL, proficiency=MINIMAL_PLACEHOLDER_PROFICIENCY)],
        tech_stack=TechStack(),
        expertise_tier=ExpertiseTier.INTERMEDIATE,
        experience_years=1,
        name=user.get('name') or username,
        email=user.get('email')
    )


class ProfileResolver:
    """Fallback chain turning a username into a ``CandidateProfile``.

    Stages run in order and the first one returning a profile wins:

    1. the contributor registry (onboarded contributors) -> REGISTERED
    2. git-history analysis, optionally refined by AI skill verification -> ANALYZED
    3. the public GitHub user record -> MINIMAL

    A stage that fails is logged and skipped. When every stage fails the
    username resolves to ``None``.
    """

    def __init__(
        self,
        registry: ContributorRegistry,
        history_analyzer,
        github_client: GitHubAPIClient,
        gemini_client: Optional[GeminiAPIClient] = None,
        config: Optional[MatchingConfig] = None
    ):
        """
        Args:
            registry: Registry of onboarded contributors
            history_analyzer: Anything with ``analyze(username) -> HistoryAnalysis``
            github_client: Shared GitHub gateway, used by the minimal stage
            gemini_client: Optional AI client for skill verification
            config: Matching configuration (worker pool size)
        """
        self.registry = registry
        self.history_analyzer = history_analyzer
        self.github_client = github_client
        self.gemini_client = gemini_client
        self.config = config or MatchingConfig()
        self.logger = logging.getLogger(__name__)
        self.structured_logger = StructuredLogger(__name__)

        self.stages: List[Stage] = [
            self._from_registry,
            self._from_history_analysis,
            self._from_public_profile,
        ]

    def resolve(self, username: str) -> Optional[CandidateProfile]:
        """Resolve one username; ``None`` if no stage produced a profile."""
        for stage in self.stages:
            try:
                profile = stage(username)
            except STAGE_ERRORS as e:
                self.logger.warning(f"{stage.__name__} failed for {username}: {e}")
                continue

            if profile is not None:
                self.structured_logger.log_candidate_resolved(username, profile.origin.value)
                return profile

        self.logger.info(f"Could not resolve a profile for {username}, excluding candidate")
        return None

    def resolve_many(self, usernames: Iterable[str]) -> Dict[str, Optional[CandidateProfile]]:
        """Resolve each distinct username once, with bounded concurrency.

        The result preserves first-seen input order.
        """
        return bounded_map_unique(self.resolve, usernames, self.config.resolver_concurrency)

    def _from_registry(self, username: str) -> Optional[CandidateProfile]:
        return self.registry.find_by_username(username)

    def _from_history_analysis(self, username: str) -> Optional[CandidateProfile]:
        analysis = self.history_analyzer.analyze(username)
        profile = profile_from_history(analysis)

        if analysis.skills:
            # Service output is already skill-scored
            return profile
        return self.verify_skills(analysis, profile)

    def _from_public_profile(self, username: str) -> Optional[CandidateProfile]:
        try:
            user = self.github_client.get_user(username)
        except NotFoundError:
            return None
        return minimal_profile(username, user)

    def verify_skills(self, analysis: HistoryAnalysis, profile: CandidateProfile) -> CandidateProfile:
        """Refine a raw ANALYZED profile with AI-named skills, stack and strengths.

        Any failure returns ``profile`` unchanged.
        """
        if self.gemini_client is None or not self.gemini_client.is_configured:
            return profile

        prompt = VERIFICATION_PROMPT.format(**describe_history(analysis))
        try:
            reply = self.gemini_client.generate_text(prompt)
        except GatewayError as e:
            self.logger.warning(f"Skill verification failed for {analysis.username}: {e}")
            return profile

        payload = extract_json_object(reply)
        if payload is None:
            self.logger.warning(f"Skill verification for {analysis.username} contained no JSON object")
            return profile

        try:
            verified = validate_skill_verification(payload)
        except ValidationError as e:
            self.logger.warning(f"Skill verification for {analysis.username} was invalid: {e}")
            return profile

        skills = [
            Skill(name=item.name, proficiency=int(round(item.score * 10)))
            for item in verified.skills
        ] or profile.skills

        tech_stack = TechStack.from_dict(verified.tech_stack.model_dump())
        if tech_stack.is_empty():
            tech_stack = profile.tech_stack

        years = profile.experience_years
        if verified.experience and verified.experience.total_years is not None:
            years = verified.experience.total_years

        return CandidateProfile(
            identity=profile.identity,
            origin=ProfileOrigin.ANALYZED,
            skills=skills,
            tech_stack=tech_stack,
            expertise_tier=ExpertiseTier.from_years(years),
            experience_years=years,
            name=profile.name,
            email=profile.email,
            strengths=verified.strengths or [skill.name for skill in skills[:5]]
        )
