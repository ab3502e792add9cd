"""
Tests for issue requirement extraction and roadmap generation.
"""

import json

from smart_issue_assigner.agents.requirement_extractor import RequirementExtractor
from smart_issue_assigner.agents.roadmap_generator import (
    FALLBACK_ROADMAP,
    RoadmapGenerator,
    describe_developer,
)
from smart_issue_assigner.api.base import MalformedResponseError, TransientError
from smart_issue_assigner.models.common import ExpertiseTier, IssueRequirement, TechStack

from conftest import make_profile


def _reply(payload):
    return f"```json\n{json.dumps(payload)}\n```"


class TestRequirementExtractor:
    """Tests for RequirementExtractor."""

    def test_default_without_client(self, sample_issue):
        requirement = RequirementExtractor(None).extract(sample_issue)

        assert requirement == IssueRequirement.default()
        assert requirement.required_skills[0].skill == "General Programming"
        assert requirement.required_skills[0].importance == 5
        assert requirement.expertise_tier == ExpertiseTier.INTERMEDIATE
        assert requirement.estimated_hours == 3

    def test_default_when_client_unconfigured(self, sample_issue, gemini_client):
        gemini_client.is_configured = False

        assert RequirementExtractor(gemini_client).extract(sample_issue) == IssueRequirement.default()
        gemini_client.generate_text.assert_not_called()

    def test_parses_valid_reply(self, sample_issue, gemini_client):
        gemini_client.generate_text.return_value = _reply({
            "requiredSkills": [{"skill": "React", "importance": 8}, {"skill": "TypeScript", "importance": 6}],
            "expertise": "Advanced",
            "estimatedHours": 5,
        })

        requirement = RequirementExtractor(gemini_client).extract(sample_issue)

        assert [(req.skill, req.importance) for req in requirement.required_skills] == [
            ("React", 8), ("TypeScript", 6)
        ]
        assert requirement.expertise_tier == ExpertiseTier.ADVANCED
        assert requirement.estimated_hours == 5

    def test_prompt_includes_issue_text(self, sample_issue, gemini_client):
        gemini_client.generate_text.return_value = _reply({"requiredSkills": []})

        RequirementExtractor(gemini_client).extract(sample_issue)

        prompt = gemini_client.generate_text.call_args.args[0]
        assert sample_issue.title in prompt
        assert "bug, frontend" in prompt

    def test_importance_is_clamped(self, sample_issue, gemini_client):
        gemini_client.generate_text.return_value = _reply({
            "requiredSkills": [{"skill": "Go", "importance": 14}, {"skill": "SQL", "importance": 0}],
        })

        requirement = RequirementExtractor(gemini_client).extract(sample_issue)

        assert [req.importance for req in requirement.required_skills] == [10, 1]

    def test_unknown_tier_falls_back_to_intermediate(self, sample_issue, gemini_client):
        gemini_client.generate_text.return_value = _reply({
            "requiredSkills": [{"skill": "Go", "importance": 4}],
            "expertise": "wizard",
        })

        requirement = RequirementExtractor(gemini_client).extract(sample_issue)

        assert requirement.expertise_tier == ExpertiseTier.INTERMEDIATE

    def test_gateway_failure_uses_default(self, sample_issue, gemini_client):
        gemini_client.generate_text.side_effect = TransientError("503")
        assert RequirementExtractor(gemini_client).extract(sample_issue) == IssueRequirement.default()

    def test_reply_without_json_uses_default(self, sample_issue, gemini_client):
        gemini_client.generate_text.return_value = "I cannot help with that."
        assert RequirementExtractor(gemini_client).extract(sample_issue) == IssueRequirement.default()

    def test_invalid_shape_uses_default(self, sample_issue, gemini_client):
        gemini_client.generate_text.return_value = _reply({"skills": ["React"]})
        assert RequirementExtractor(gemini_client).extract(sample_issue) == IssueRequirement.default()


class TestRoadmapGenerator:
    """Tests for RoadmapGenerator."""

    def test_fallback_without_client(self, sample_issue):
        roadmap = RoadmapGenerator(None).generate(sample_issue, "alice")

        assert roadmap == FALLBACK_ROADMAP
        assert roadmap.startswith("## Implementation Steps")
        assert roadmap.endswith("Good luck!")

    def test_generated_roadmap(self, sample_issue, gemini_client):
        gemini_client.generate_text.return_value = "  1. Reproduce the crash\n"
        profile = make_profile("alice", skills=[("React", 80)], strengths=["Debugging"])

        roadmap = RoadmapGenerator(gemini_client).generate(sample_issue, "alice", profile, ["frontend"])

        assert roadmap == "1. Reproduce the crash"
        prompt = gemini_client.generate_text.call_args.args[0]
        assert "Developer Username: alice" in prompt
        assert "React (80%)" in prompt
        assert "Likely Roles: frontend" in prompt

    def test_failure_falls_back(self, sample_issue, gemini_client):
        gemini_client.generate_text.side_effect = MalformedResponseError("no text")
        assert RoadmapGenerator(gemini_client).generate(sample_issue, "alice") == FALLBACK_ROADMAP

    def test_blank_reply_falls_back(self, sample_issue, gemini_client):
        gemini_client.generate_text.return_value = "   "
        assert RoadmapGenerator(gemini_client).generate(sample_issue, "alice") == FALLBACK_ROADMAP

    def test_describe_developer(self):
        assert describe_developer(None) == "Developer profile not available"

        profile = make_profile(
            "alice", skills=[("Go", 70)], tech_stack=TechStack(languages=["Go"]),
            expertise_tier=ExpertiseTier.EXPERT, experience_years=6
        )
        description = describe_developer(profile)

        assert "Developer Skills: Go (70%)" in description
        assert "Experience: 6 years (expert)" in description
        assert "Likely Roles" not in description
