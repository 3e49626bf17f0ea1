# Copyright (c) Syntropy Systems
"""Tests for baseliner CLI commands."""

from datetime import datetime, timezone
from pathlib import Path

import yaml
from typer.testing import CliRunner

from baseliner.cli.main import app
from baseliner.declaration import load_declaration
from baseliner.footprint import compute_footprint
from baseliner.models.baseline import BaselineRecord
from baseliner.repository import BaselineRepository

# Wide enough that rich tables never fold cell text
runner = CliRunner(env={"COLUMNS": "200"})

DECLARATION_YAML = {
    "covariates": [
        {"kind": "day_of_week", "groups": [{"days": ["SATURDAY", "SUNDAY"]}]},
        {"kind": "custom", "key": "llm_model", "category": "CONFIGURATION"},
    ]
}


def write_project_baselines(project: Path, model: str = "gpt-4") -> str:
    """Write a declaration and two baselines, returning the footprint."""
    declaration_path = project / ".baseliner" / "covariates.yaml"
    with declaration_path.open("w") as f:
        yaml.dump(DECLARATION_YAML, f, sort_keys=False)

    footprint = compute_footprint("summarize", {}, load_declaration(declaration_path))
    repository = BaselineRepository(project / "baselines")
    for day, successes in (("WEEKEND", 951), ("WEEKDAY", 800)):
        repository.write(
            BaselineRecord(
                operation="summarize",
                footprint=footprint,
                generated_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
                covariates={"day_of_week": day, "llm_model": model},
                samples=1000,
                successes=successes,
                expires_in_days=30,
            )
        )
    return footprint


class TestInitCommand:
    """Tests for baseliner init command."""

    def test_init_creates_directory(self, temp_dir, monkeypatch):
        """Test that init creates .baseliner directory."""
        monkeypatch.chdir(temp_dir)

        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert (temp_dir / ".baseliner" / "config.yaml").exists()
        assert (temp_dir / ".baseliner" / "covariates.yaml").exists()
        assert (temp_dir / "baselines").is_dir()

    def test_init_declaration_is_valid(self, temp_dir, monkeypatch):
        """Test that the generated example declaration validates."""
        monkeypatch.chdir(temp_dir)

        _ = runner.invoke(app, ["init"])

        declaration = load_declaration(temp_dir / ".baseliner" / "covariates.yaml")
        assert declaration.keys() == ["day_of_week", "time_of_day", "timezone"]

    def test_init_already_initialized(self, baseliner_project):
        """Test init when already initialized."""
        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert "Already initialized" in result.stdout


class TestBaselinesCommand:
    """Tests for baseliner baselines command."""

    def test_no_project(self, temp_dir, monkeypatch):
        """Test that commands outside a project fail."""
        monkeypatch.chdir(temp_dir)

        result = runner.invoke(app, ["baselines"])

        assert result.exit_code == 1
        assert "baseliner init" in result.stdout

    def test_empty(self, baseliner_project):
        """Test listing with no baselines."""
        result = runner.invoke(app, ["baselines"])

        assert result.exit_code == 0
        assert "No baselines found" in result.stdout

    def test_list(self, baseliner_project):
        """Test listing recorded baselines."""
        write_project_baselines(baseliner_project)

        result = runner.invoke(app, ["baselines", "--operation", "summarize"])

        assert result.exit_code == 0
        assert "WEEKEND" in result.stdout
        assert "0.9510" in result.stdout

    def test_markup_in_values_printed_literally(self, baseliner_project):
        """Test that bracketed covariate values are not read as markup."""
        write_project_baselines(baseliner_project, model="gpt-4[bold]")

        result = runner.invoke(app, ["baselines"])

        assert result.exit_code == 0
        assert "llm_model=gpt-4[bold]" in result.stdout


class TestSelectCommand:
    """Tests for baseliner select command."""

    def test_select_weekend(self, baseliner_project):
        """Test selection on a Saturday."""
        write_project_baselines(baseliner_project)

        result = runner.invoke(
            app,
            [
                "select", "summarize",
                "--set", "llm_model=gpt-4",
                "--at", "2024-06-15T12:00:00",
            ],
        )

        assert result.exit_code == 0
        assert "Selected baseline" in result.stdout
        assert "0.9510" in result.stdout
        assert "Warning" not in result.stdout

    def test_select_with_threshold(self, baseliner_project):
        """Test that --test-samples also derives a threshold."""
        write_project_baselines(baseliner_project)

        result = runner.invoke(
            app,
            [
                "select", "summarize",
                "--set", "llm_model=gpt-4",
                "--at", "2024-06-15T12:00:00",
                "--test-samples", "100",
            ],
        )

        assert result.exit_code == 0
        assert "0.9021" in result.stdout
        assert "WILSON_SCORE" in result.stdout

    def test_markup_in_values_printed_literally(self, baseliner_project):
        """Test that bracketed covariate values show up in the conformance table."""
        write_project_baselines(baseliner_project, model="gpt-4[bold]")

        result = runner.invoke(
            app,
            [
                "select", "summarize",
                "--set", "llm_model=gpt-4[bold]",
                "--at", "2024-06-15T12:00:00",
            ],
        )

        assert result.exit_code == 0
        assert "gpt-4[bold]" in result.stdout

    def test_hard_gate_mismatch(self, baseliner_project):
        """Test that an unmeasured configuration exits with an error."""
        write_project_baselines(baseliner_project)

        result = runner.invoke(
            app,
            ["select", "summarize", "--set", "llm_model=gpt-5", "--at", "2024-06-15T12:00:00"],
        )

        assert result.exit_code == 1
        assert "Configuration mismatch" in result.stdout

    def test_footprint_mismatch(self, baseliner_project):
        """Test that changed parameters exit with a footprint error."""
        write_project_baselines(baseliner_project)

        result = runner.invoke(
            app,
            ["select", "summarize", "--param", "temperature=0.9", "--set", "llm_model=gpt-4"],
        )

        assert result.exit_code == 1
        assert "Footprint mismatch" in result.stdout

    def test_invalid_declaration(self, baseliner_project):
        """Test that a broken declaration file is reported."""
        path = baseliner_project / "bad.yaml"
        path.write_text("covariates:\n  - kind: time_of_day\n    periods: ['23:00/2h']\n")

        result = runner.invoke(app, ["select", "summarize", "--declaration", str(path)])

        assert result.exit_code == 1
        assert "Error" in result.stdout


class TestThresholdCommand:
    """Tests for baseliner threshold command."""

    def test_worked_example(self, baseliner_project):
        """Test the threshold for p=0.951 and 100 verification samples."""
        result = runner.invoke(
            app,
            ["threshold", "--samples", "1000", "--successes", "951", "--test-samples", "100"],
        )

        assert result.exit_code == 0
        assert "0.9021" in result.stdout
        assert "1.645" in result.stdout

    def test_degenerate(self, baseliner_project):
        """Test that zero baseline samples exit with an error."""
        result = runner.invoke(
            app,
            ["threshold", "--samples", "0", "--successes", "0", "--test-samples", "100"],
        )

        assert result.exit_code == 1
        assert "Error" in result.stdout

    def test_sizing_note(self, baseliner_project):
        """Test the compliance sizing note."""
        result = runner.invoke(
            app,
            [
                "threshold",
                "--samples", "1000", "--successes", "999", "--test-samples", "50",
                "--target", "0.999", "--origin", "SLA",
            ],
        )

        assert result.exit_code == 0
        assert "not sized for compliance" in result.stdout


class TestExpirationCommand:
    """Tests for baseliner expiration command."""

    def test_valid(self, baseliner_project):
        """Test that fresh baselines pass."""
        write_project_baselines(baseliner_project)

        result = runner.invoke(app, ["expiration", "--at", "2024-06-02T00:00:00"])

        assert result.exit_code == 0
        assert "valid" in result.stdout

    def test_expired(self, baseliner_project):
        """Test that expired baselines exit with code 1."""
        write_project_baselines(baseliner_project)

        result = runner.invoke(app, ["expiration", "--at", "2024-08-01T00:00:00"])

        assert result.exit_code == 1
        assert "expired" in result.stdout
