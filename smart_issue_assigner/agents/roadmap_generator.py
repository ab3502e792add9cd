"""Personalized implementation roadmaps for an assignee."""

import json
import logging
from typing import List, Optional

from ..api.base import GatewayError
from ..api.gemini_client import GeminiAPIClient
from ..models.common import CandidateProfile, IssueDetails


FALLBACK_ROADMAP = """## Implementation Steps

1. **Understand the Issue**: Review the issue description and requirements carefully
2. **Setup Environment**: Clone the repository and set up your local development environment
3. **Implement Solution**: Write code following the project's coding standards
4. **Test Thoroughly**: Test your changes to ensure they work as expected
5. **Submit PR**: Create a pull request with a clear description of your changes

Good luck!"""

ROADMAP_PROMPT = """Generate a detailed technical roadmap for a developer to solve this GitHub issue:

Issue Title: {title}
Issue Description: {body}
Labels: {labels}

Developer Username: {username}
{developer_section}

Create a step-by-step roadmap tailored to this developer's skill level. Include:
1. Understanding the Problem
2. Prerequisites/Setup
3. Step-by-step Implementation Plan
4. Testing Strategy
5. Best Practices

Keep it concise but actionable. Format in markdown."""


def describe_developer(profile: Optional[CandidateProfile], roles: Optional[List[str]] = None) -> str:
    if profile is None:
        return "Developer profile not available"

    skills = ", ".join(f"{skill.name} ({skill.proficiency}%)" for skill in profile.skills) or "Not specified"
    lines = [
        f"Developer Skills: {skills}",
        f"Tech Stack: {json.dumps(profile.tech_stack.to_dict())}",
        f"Experience: {profile.experience_years} years ({profile.expertise_tier.value})",
    ]
    if profile.strengths:
        lines.append(f"Strengths: {', '.join(profile.strengths)}")
    if roles:
        lines.append(f"Likely Roles: {', '.join(roles)}")
    return "\n".join(lines)


class RoadmapGenerator:
    """Produces a markdown plan for an issue; never raises."""

    def __init__(self, gemini_client: Optional[GeminiAPIClient]):
        self.gemini_client = gemini_client
        self.logger = logging.getLogger(__name__)

    def build_prompt(
        self,
        issue: IssueDetails,
        username: str,
        profile: Optional[CandidateProfile] = None,
        roles: Optional[List[str]] = None
    ) -> str:
        return ROADMAP_PROMPT.format(
            title=issue.title,
            body=issue.body or "No description",
            labels=", ".join(issue.labels),
            username=username,
            developer_section=describe_developer(profile, roles)
        )

    def generate(
        self,
        issue: IssueDetails,
        username: str,
        profile: Optional[CandidateProfile] = None,
        roles: Optional[List[str]] = None
    ) -> str:
        """AI-generated roadmap, or the fixed five-step template on any failure."""
        if self.gemini_client is None or not self.gemini_client.is_configured:
            return FALLBACK_ROADMAP

        try:
            roadmap = self.gemini_client.generate_text(self.build_prompt(issue, username, profile, roles))
        except GatewayError as e:
            self.logger.warning(f"Roadmap generation failed for #{issue.number}: {e}")
            return FALLBACK_ROADMAP

        if not roadmap.strip():
            return FALLBACK_ROADMAP
        return roadmap.strip()
