"""
Tests for the username -> candidate profile fallback chain.
"""

import json
from unittest.mock import MagicMock

import pytest

from smart_issue_assigner.agents.profile_resolver import (
    PLACEHOLDER_SKILL,
    ProfileResolver,
    minimal_profile,
    profile_from_history,
)
from smart_issue_assigner.api.base import NotFoundError, TransientError
from smart_issue_assigner.config.settings import MatchingConfig
from smart_issue_assigner.database.connection import DatabaseError
from smart_issue_assigner.models.common import (
    ExpertiseTier,
    HistoryAnalysis,
    ProfileOrigin,
    Skill,
    TechStack,
)


@pytest.fixture
def history_analyzer():
    return MagicMock()


@pytest.fixture
def resolver(registry, history_analyzer, github_client, matching_config):
    return ProfileResolver(
        registry=registry,
        history_analyzer=history_analyzer,
        github_client=github_client,
        config=matching_config
    )


def _analysis(username="alice", languages=None, years=4, **kwargs):
    return HistoryAnalysis(
        username=username,
        languages={"Python": 3, "Go": 12} if languages is None else languages,
        years_active=years,
        **kwargs
    )


class TestProfileFromHistory:
    """Tests for deriving raw ANALYZED profiles."""

    def test_languages_become_skills(self):
        profile = profile_from_history(_analysis())

        assert profile.origin == ProfileOrigin.ANALYZED
        assert [(s.name, s.proficiency) for s in profile.skills] == [("Go", 100), ("Python", 30)]
        assert profile.tech_stack.languages == ["Python", "Go"]
        assert profile.expertise_tier == ExpertiseTier.ADVANCED
        assert profile.strengths == ["Go", "Python"]

    def test_no_languages_uses_placeholder(self):
        profile = profile_from_history(_analysis(languages={}, years=0.5))

        assert [(s.name, s.proficiency) for s in profile.skills] == [(PLACEHOLDER_SKILL, 60)]
        assert profile.expertise_tier == ExpertiseTier.BEGINNER
        assert profile.strengths == []

    def test_service_skills_are_kept(self):
        analysis = _analysis(
            skills=[Skill("Rust", 90)],
            tech_stack=TechStack(languages=["Rust"], tools=["Docker"])
        )
        profile = profile_from_history(analysis)

        assert [s.name for s in profile.skills] == ["Rust"]
        assert profile.tech_stack.tools == ["Docker"]

    def test_minimal_profile(self):
        profile = minimal_profile("bob", {"name": "Bob B", "email": None})

        assert profile.origin == ProfileOrigin.MINIMAL
        assert [(s.name, s.proficiency) for s in profile.skills] == [(PLACEHOLDER_SKILL, 50)]
        assert profile.name == "Bob B"
        assert profile.expertise_tier == ExpertiseTier.INTERMEDIATE
        assert profile.tech_stack.is_empty()


class TestProfileResolver:
    """Tests for ProfileResolver stage ordering and failure handling."""

    def test_registered_contributor_wins(self, resolver, registry, history_analyzer, contributor_data):
        registry.upsert(contributor_data)

        profile = resolver.resolve("CAROL")

        assert profile.origin == ProfileOrigin.REGISTERED
        assert profile.identity == "carol"
        assert profile.contributor_id is not None
        history_analyzer.analyze.assert_not_called()

    def test_falls_back_to_history_analysis(self, resolver, history_analyzer, github_client):
        history_analyzer.analyze.return_value = _analysis()

        profile = resolver.resolve("alice")

        assert profile.origin == ProfileOrigin.ANALYZED
        github_client.get_user.assert_not_called()

    def test_falls_back_to_public_profile(self, resolver, history_analyzer, github_client):
        history_analyzer.analyze.side_effect = NotFoundError("no repos")
        github_client.get_user.return_value = {"login": "bob", "name": "Bob"}

        profile = resolver.resolve("bob")

        assert profile.origin == ProfileOrigin.MINIMAL
        assert profile.name == "Bob"

    def test_registry_failure_is_skipped(self, history_analyzer, github_client):
        registry = MagicMock()
        registry.find_by_username.side_effect = DatabaseError("locked")
        history_analyzer.analyze.return_value = _analysis()
        resolver = ProfileResolver(registry, history_analyzer, github_client)

        assert resolver.resolve("alice").origin == ProfileOrigin.ANALYZED

    def test_unresolvable_username(self, resolver, history_analyzer, github_client):
        history_analyzer.analyze.side_effect = TransientError("timeout")
        github_client.get_user.side_effect = NotFoundError("gone")

        assert resolver.resolve("ghost") is None

    def test_public_profile_gateway_failure(self, resolver, history_analyzer, github_client):
        history_analyzer.analyze.side_effect = NotFoundError("no repos")
        github_client.get_user.side_effect = TransientError("503")

        assert resolver.resolve("ghost") is None

    def test_resolve_many_dedups_and_keeps_order(self, history_analyzer, github_client):
        registry = MagicMock()
        registry.find_by_username.return_value = None
        history_analyzer.analyze.side_effect = lambda username: _analysis(username=username)
        resolver = ProfileResolver(
            registry, history_analyzer, github_client, config=MatchingConfig(resolver_concurrency=3)
        )

        profiles = resolver.resolve_many(["bob", "alice", "Bob", "dave"])

        assert list(profiles) == ["bob", "alice", "dave"]
        assert history_analyzer.analyze.call_count == 3
        assert all(profile.origin == ProfileOrigin.ANALYZED for profile in profiles.values())

    def test_resolve_many_keeps_unresolved_as_none(self, resolver, history_analyzer, github_client):
        history_analyzer.analyze.side_effect = NotFoundError("no repos")
        github_client.get_user.side_effect = [{"login": "bob"}, NotFoundError("gone")]

        profiles = resolver.resolve_many(["bob", "ghost"])

        assert profiles["bob"].origin == ProfileOrigin.MINIMAL
        assert profiles["ghost"] is None


class TestSkillVerification:
    """Tests for AI refinement of analyzed profiles."""

    def _resolver(self, registry, history_analyzer, github_client, gemini_client, matching_config):
        return ProfileResolver(registry, history_analyzer, github_client, gemini_client, matching_config)

    def test_verified_profile(self, registry, history_analyzer, github_client, gemini_client, matching_config):
        history_analyzer.analyze.return_value = _analysis(years=2)
        gemini_client.generate_text.return_value = json.dumps({
            "skills": [{"name": "Kubernetes", "score": 7.5}, {"name": "Go", "score": 9}],
            "techStack": {"languages": ["Go"], "tools": ["Docker", "Kubernetes"]},
            "strengths": ["Cloud tooling", "Concurrency"],
            "experience": {"total_years": 6},
        })
        resolver = self._resolver(registry, history_analyzer, github_client, gemini_client, matching_config)

        profile = resolver.resolve("alice")

        assert profile.origin == ProfileOrigin.ANALYZED
        assert [(s.name, s.proficiency) for s in profile.skills] == [("Kubernetes", 75), ("Go", 90)]
        assert profile.tech_stack.tools == ["Docker", "Kubernetes"]
        assert profile.strengths == ["Cloud tooling", "Concurrency"]
        assert profile.experience_years == 6
        assert profile.expertise_tier == ExpertiseTier.EXPERT

        prompt = gemini_client.generate_text.call_args.args[0]
        assert "Go (12 repos)" in prompt

    def test_invalid_verification_keeps_raw_profile(
        self, registry, history_analyzer, github_client, gemini_client, matching_config
    ):
        history_analyzer.analyze.return_value = _analysis()
        gemini_client.generate_text.return_value = '{"skills": [{"name": "Go", "score": 42}]}'
        resolver = self._resolver(registry, history_analyzer, github_client, gemini_client, matching_config)

        profile = resolver.resolve("alice")

        assert [s.name for s in profile.skills] == ["Go", "Python"]

    def test_verification_gateway_failure_keeps_raw_profile(
        self, registry, history_analyzer, github_client, gemini_client, matching_config
    ):
        history_analyzer.analyze.return_value = _analysis()
        gemini_client.generate_text.side_effect = TransientError("503")
        resolver = self._resolver(registry, history_analyzer, github_client, gemini_client, matching_config)

        assert resolver.resolve("alice").origin == ProfileOrigin.ANALYZED

    def test_service_scored_skills_skip_verification(
        self, registry, history_analyzer, github_client, gemini_client, matching_config
    ):
        history_analyzer.analyze.return_value = _analysis(skills=[Skill("Rust", 90)])
        resolver = self._resolver(registry, history_analyzer, github_client, gemini_client, matching_config)

        profile = resolver.resolve("alice")

        assert [s.name for s in profile.skills] == ["Rust"]
        gemini_client.generate_text.assert_not_called()


class TestRepeatResolution:
    """Resolving a username twice in one run yields the same profile content."""

    def _resolve_twice(self, resolver, username):
        first = resolver.resolve(username)
        second = resolver.resolve(username)
        assert first is not None
        assert first.to_dict() == second.to_dict()
        return first

    def test_registered(self, resolver, registry, contributor_data):
        registry.upsert(contributor_data)

        assert self._resolve_twice(resolver, "carol").origin == ProfileOrigin.REGISTERED

    def test_analyzed(self, resolver, history_analyzer):
        history_analyzer.analyze.return_value = _analysis(username="bob")

        assert self._resolve_twice(resolver, "bob").origin == ProfileOrigin.ANALYZED

    def test_analyzed_with_verification(
        self, registry, history_analyzer, github_client, gemini_client, matching_config
    ):
        history_analyzer.analyze.return_value = _analysis(username="bob")
        gemini_client.generate_text.return_value = json.dumps({
            "skills": [{"name": "Go", "score": 8}],
            "techStack": {"languages": ["Go"]},
            "strengths": ["Concurrency", "Testing", "APIs"],
        })
        resolver = ProfileResolver(registry, history_analyzer, github_client, gemini_client, matching_config)

        profile = self._resolve_twice(resolver, "bob")

        assert [(s.name, s.proficiency) for s in profile.skills] == [("Go", 80)]
        assert gemini_client.generate_text.call_count == 2

    def test_minimal(self, resolver, history_analyzer, github_client):
        history_analyzer.analyze.side_effect = NotFoundError("no repos")
        github_client.get_user.return_value = {"login": "bob", "name": "Bob"}

        assert self._resolve_twice(resolver, "bob").origin == ProfileOrigin.MINIMAL
