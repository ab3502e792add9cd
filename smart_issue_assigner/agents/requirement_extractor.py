"""Derive an issue's skill requirements with the AI completion endpoint."""

import logging
from typing import Optional

from ..api.base import GatewayError
from ..api.gemini_client import GeminiAPIClient
from ..models.common import IssueDetails, IssueRequirement
from ..models.validation import ValidationError, validate_issue_analysis
from ..utils.json_extraction import extract_json_object


ANALYSIS_PROMPT = """Analyze this GitHub issue and extract required information:

Title: {title}
Body: {body}
Labels: {labels}

Provide a JSON response with:
1. requiredSkills: Array of objects with {{"skill": string, "importance": number (1-10)}}
2. expertise: One of "beginner", "intermediate", "advanced", "expert"
3. estimatedHours: Estimated hours to complete (number)

Focus on technical skills like programming languages, frameworks, tools, etc.
Return ONLY valid JSON, no explanations."""


class RequirementExtractor:
    """Turns issue text into an ``IssueRequirement``; never raises."""

    def __init__(self, gemini_client: Optional[GeminiAPIClient]):
        self.gemini_client = gemini_client
        self.logger = logging.getLogger(__name__)

    def build_prompt(self, issue: IssueDetails) -> str:
        return ANALYSIS_PROMPT.format(
            title=issue.title,
            body=issue.body or "No description",
            labels=", ".join(issue.labels)
        )

    def extract(self, issue: IssueDetails) -> IssueRequirement:
        """Analyze the issue, falling back to the default requirement on any failure."""
        if self.gemini_client is None or not self.gemini_client.is_configured:
            self.logger.info("AI client not configured, using default requirement")
            return IssueRequirement.default()

        try:
            reply = self.gemini_client.generate_text(self.build_prompt(issue))
        except GatewayError as e:
            self.logger.warning(f"Issue analysis failed for #{issue.number}: {e}")
            return IssueRequirement.default()

        payload = extract_json_object(reply)
        if payload is None:
            self.logger.warning(f"Issue analysis for #{issue.number} contained no JSON object")
            return IssueRequirement.default()

        try:
            requirement = validate_issue_analysis(payload)
        except ValidationError as e:
            self.logger.warning(f"Issue analysis for #{issue.number} was invalid: {e}")
            return IssueRequirement.default()

        self.logger.debug(
            f"Issue #{issue.number} requires "
            f"{[req.skill for req in requirement.required_skills]} ({requirement.expertise_tier.value})"
        )
        return requirement
