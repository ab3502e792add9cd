"""
Tests for the command-line interface.
"""

from unittest.mock import MagicMock, patch

import click
import pytest
from click.testing import CliRunner

from smart_issue_assigner.agents.errors import NoCandidatesError
from smart_issue_assigner.cli import cli, parse_skill
from smart_issue_assigner.models.common import (
    AssignmentOutcome,
    AssignmentStatus,
    CandidateScore,
    IssueRef,
    IssueRequirement,
    ScoreBreakdown,
    Shortlist,
)

from conftest import make_profile


@pytest.fixture
def matchmaker():
    return MagicMock()


@pytest.fixture
def runner(matchmaker):
    with patch("smart_issue_assigner.cli.setup_logging"), \
            patch("smart_issue_assigner.cli.load_dotenv"), \
            patch("smart_issue_assigner.cli.IssueMatchmaker") as matchmaker_cls:
        matchmaker_cls.from_config.return_value = matchmaker
        yield CliRunner()


class TestParseSkill:
    def test_name_and_level(self):
        assert parse_skill("React:80") == {"name": "React", "proficiency": 80}

    def test_name_with_colon(self):
        assert parse_skill("C++:std:70") == {"name": "C++:std", "proficiency": 70}

    def test_name_only(self):
        assert parse_skill("Go") == {"name": "Go", "proficiency": 50}

    def test_bad_level(self):
        with pytest.raises(click.BadParameter):
            parse_skill("Go:lots")


class TestCommands:
    """Tests for CLI commands."""

    def test_shortlist(self, runner, matchmaker, sample_issue):
        matchmaker.shortlist_candidates.return_value = Shortlist(
            ref=IssueRef("octo", "octo/widgets", 7),
            issue=sample_issue,
            requirement=IssueRequirement.default(),
            candidates=[CandidateScore(profile=make_profile("alice"), scores=ScoreBreakdown.combine(76, 100, 100))],
            total_evaluated=2
        )

        result = runner.invoke(cli, ["shortlist", "octo", "octo/widgets", "7", "-k", "3"])

        assert result.exit_code == 0, result.output
        assert "1. @alice" in result.output
        assert "final= 88" in result.output
        assert "Evaluated 2 candidates" in result.output
        matchmaker.shortlist_candidates.assert_called_once_with("octo", "octo/widgets", 7, k=3)

    def test_shortlist_failure(self, runner, matchmaker):
        matchmaker.shortlist_candidates.side_effect = NoCandidatesError(NoCandidatesError.NO_COMMENTERS)

        result = runner.invoke(cli, ["shortlist", "octo", "octo/widgets", "7"])

        assert result.exit_code == 1
        assert "no commenters found" in result.output

    def test_assign_recommendation(self, runner, matchmaker):
        matchmaker.assign_candidate.return_value = AssignmentOutcome(
            record_id="rec-1",
            ref=IssueRef("octo", "octo/widgets", 7),
            username="outsider",
            status=AssignmentStatus.RECOMMENDED,
            scores=ScoreBreakdown.combine(40, 50, 100),
            requirement=IssueRequirement.default(),
            roadmap="1. Do it",
            comment_url=None
        )

        result = runner.invoke(cli, ["assign", "octo", "octo/widgets", "7", "outsider"])

        assert result.exit_code == 0, result.output
        assert "posted a recommendation instead" in result.output
        assert "Final score: 55" in result.output

    def test_register(self, runner, matchmaker):
        matchmaker.register_contributor.return_value = make_profile("carol", skills=[("Go", 80)])

        result = runner.invoke(cli, [
            "register", "carol", "--skill", "Go:80", "--language", "Go", "--tier", "advanced", "--years", "4"
        ])

        assert result.exit_code == 0, result.output
        data = matchmaker.register_contributor.call_args.args[0]
        assert data["skills"] == [{"name": "Go", "proficiency": 80}]
        assert data["tech_stack"]["languages"] == ["Go"]
        assert data["expertise_tier"] == "advanced"
        assert data["experience_years"] == 4.0

    def test_set_status(self, runner, matchmaker):
        record = MagicMock(repository="octo/widgets", issue_number=7, status=AssignmentStatus.COMPLETED)
        matchmaker.update_assignment_status.return_value = record

        result = runner.invoke(cli, ["set-status", "rec-1", "completed"])

        assert result.exit_code == 0, result.output
        assert "octo/widgets#7 is now completed" in result.output
        matchmaker.update_assignment_status.assert_called_once_with("rec-1", AssignmentStatus.COMPLETED)

    def test_assignments_empty(self, runner, matchmaker):
        matchmaker.list_assignments.return_value = []

        result = runner.invoke(cli, ["assignments", "octo"])

        assert result.exit_code == 0
        assert "No assignments found" in result.output

    def test_check_config(self, runner, matchmaker, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "token")
        matchmaker.db_manager.health_check.return_value = True
        matchmaker.github_client.test_connection.return_value = True
        matchmaker.github_client.get_rate_limit_status.return_value = {"limit": 5000, "remaining": 42, "reset": 0}
        matchmaker.gemini_client = None

        result = runner.invoke(cli, ["check-config"])

        assert result.exit_code == 0, result.output
        assert "42 requests remaining" in result.output
        assert "Low GitHub API rate limit" in result.output

    def test_check_config_without_token(self, runner, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)

        result = runner.invoke(cli, ["check-config"])

        assert result.exit_code == 1

    def test_init_db(self, runner, tmp_path):
        url = f"sqlite:///{tmp_path / 'assigner.db'}"

        result = runner.invoke(cli, ["--database-url", url, "init-db"])

        assert result.exit_code == 0, result.output
        assert "Database initialized successfully" in result.output
        assert (tmp_path / "assigner.db").exists()

    def test_init_db_reset_requires_confirmation(self, runner, tmp_path):
        url = f"sqlite:///{tmp_path / 'assigner.db'}"

        result = runner.invoke(cli, ["--database-url", url, "init-db", "--reset"], input="n\n")

        assert result.exit_code == 1
        assert not (tmp_path / "assigner.db").exists()
