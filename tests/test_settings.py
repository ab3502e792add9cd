"""
Tests for configuration loading and validation.
"""

import json

from smart_issue_assigner.config.settings import SystemConfig
from smart_issue_assigner.models.common import ExpertiseTier


class TestSystemConfig:
    """Tests for SystemConfig."""

    def test_defaults(self):
        config = SystemConfig()

        assert config.matching.shortlist_size == 5
        assert config.matching.resolver_concurrency == 3
        assert (config.matching.skill_weight, config.matching.activity_weight,
                config.matching.workload_weight) == (0.5, 0.3, 0.2)
        assert config.retry.max_attempts == 3
        assert config.api.gemini_model == "gemini-2.5-flash"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///tmp.db")
        monkeypatch.setenv("SHORTLIST_SIZE", "3")
        monkeypatch.setenv("RESOLVER_CONCURRENCY", "8")
        monkeypatch.setenv("GATEWAY_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("ANALYSIS_SERVICE_URL", "https://analysis.example.com")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        config = SystemConfig.from_env()

        assert config.api.github_token == "ghp_test"
        assert config.database.url == "sqlite:///tmp.db"
        assert config.matching.shortlist_size == 3
        assert config.matching.resolver_concurrency == 8
        assert config.retry.max_attempts == 5
        assert config.api.analysis_service_url == "https://analysis.example.com"
        assert config.logging.level == "DEBUG"

    def test_from_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "api": {"github_token": "file-token", "unknown_key": 1},
            "matching": {"shortlist_size": 10, "tech_stack_credit": 0.6},
        }))

        config = SystemConfig.from_file(str(path))

        assert config.api.github_token == "file-token"
        assert not hasattr(config.api, "unknown_key")
        assert config.matching.shortlist_size == 10
        assert config.matching.tech_stack_credit == 0.6

    def test_missing_file_falls_back_to_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")

        config = SystemConfig.from_file(str(tmp_path / "missing.json"))

        assert config.api.github_token == "env-token"

    def test_validate(self):
        config = SystemConfig()
        assert not config.validate()

        config.api.github_token = "token"
        assert config.validate()

        config.matching.skill_weight = 0.9
        assert not config.validate()

    def test_validate_rejects_bad_sizes(self):
        config = SystemConfig()
        config.api.github_token = "token"
        config.matching.shortlist_size = 0
        assert not config.validate()

    def test_to_dict_masks_secrets(self):
        config = SystemConfig()
        config.api.github_token = "secret"

        data = config.to_dict()

        assert data["api"]["github_token"] == "***"
        assert data["api"]["gemini_api_key"] == ""
        assert data["matching"]["shortlist_size"] == 5


class TestExpertiseTier:
    """Tests for tier parsing shared by config-driven inputs."""

    def test_parse(self):
        assert ExpertiseTier.parse(" Expert ") == ExpertiseTier.EXPERT
        assert ExpertiseTier.parse("unknown") == ExpertiseTier.INTERMEDIATE
        assert ExpertiseTier.parse(None, ExpertiseTier.BEGINNER) == ExpertiseTier.BEGINNER

    def test_from_years(self):
        assert ExpertiseTier.from_years(0.5) == ExpertiseTier.BEGINNER
        assert ExpertiseTier.from_years(1) == ExpertiseTier.INTERMEDIATE
        assert ExpertiseTier.from_years(3) == ExpertiseTier.ADVANCED
        assert ExpertiseTier.from_years(5) == ExpertiseTier.EXPERT
