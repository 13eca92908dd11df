"""Tests for argument parsing and the CLI commands (pipeline calls stubbed)."""

from unittest.mock import AsyncMock, patch

import pytest

from internscout import cli
from internscout.models import RawPosting
from internscout.orchestrator import PipelineResult, SourceSummary
from internscout.providers.base import ProviderResult


class TestParseArgs:
    def test_run_flags(self) -> None:
        args = cli.parse_args(["run", "--db", "x.db", "--providers", "indeed,themuse", "--budget", "30", "--max-new", "5", "-v"])
        assert args.command == "run"
        assert args.db == "x.db"
        assert args.budget == 30.0
        assert args.max_new == 5
        assert args.verbose

    def test_test_requires_known_provider(self) -> None:
        with pytest.raises(SystemExit):
            cli.parse_args(["test", "monster"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            cli.parse_args([])


class TestBuildSettings:
    def test_overrides(self, tmp_path) -> None:
        args = cli.parse_args([
            "run", "--db", str(tmp_path / "a.db"), "--providers", "indeed,themuse",
            "--budget", "30", "--max-new", "5", "--no-delay",
        ])
        s = cli.build_settings(args)
        assert s.db_path == str(tmp_path / "a.db")
        assert s.enabled_providers == ["indeed", "themuse"]
        assert s.run_budget_s == 30
        assert s.max_new_per_run == 5
        assert (s.min_delay_s, s.max_delay_s) == (0.0, 0.0)

    def test_test_command_has_no_db_flag(self) -> None:
        args = cli.parse_args(["test", "indeed"])
        assert not hasattr(args, "db")
        cli.build_settings(args)


class TestMain:
    def test_run_prints_summary(self, capsys) -> None:
        result = PipelineResult(
            total_new=2,
            errors=["indeed: HTTP 403"],
            sources=[SourceSummary("indeed", 0, ["HTTP 403"]), SourceSummary("themuse", 2)],
        )
        with patch("internscout.orchestrator.run_once", AsyncMock(return_value=result)):
            code = cli.main(["run", "-v"])
        out = capsys.readouterr().out
        assert code == 0
        assert "New postings:   2" in out
        assert "- indeed: HTTP 403" in out

    def test_test_command_lists_postings(self, capsys) -> None:
        result = ProviderResult(
            source="github_repo",
            postings=[RawPosting(title="SWE Intern", company="Acme", url="https://a/1", visa_flag=True)],
            errors=["x/y: HTTP 404"],
        )
        with patch("internscout.orchestrator.run_provider_test", AsyncMock(return_value=result)):
            code = cli.main(["test", "github_repo"])
        out = capsys.readouterr().out
        assert code == 0
        assert "SWE Intern @ Acme [visa]" in out
        assert "error: x/y: HTTP 404" in out

    def test_invalid_configuration(self, capsys) -> None:
        assert cli.main(["run", "--budget", "-1"]) == 2
        assert "Invalid configuration" in capsys.readouterr().err
