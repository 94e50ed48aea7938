"""
Tests for the CLI interface.
"""
import csv
import os
import tempfile
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from backend_cost_calc.cli.main import app, EXIT_CODE_PASS, EXIT_CODE_FAIL
from backend_cost_calc.core.usage import DEFAULT_USAGE_PROFILES, Category, DatabaseUsage
from backend_cost_calc.storage.models import Estimate
from backend_cost_calc.storage.repository import EstimateRepository

runner = CliRunner()


@pytest.fixture
def workdir():
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def db_path(workdir):
    return os.path.join(workdir, "estimates.db")


@pytest.fixture
def saved_estimate(db_path):
    repository = EstimateRepository(db_path)
    repository.initialize_schema()
    return repository.save(Estimate.from_profiles(
        user_id="user-1",
        name="Launch",
        profiles=DEFAULT_USAGE_PROFILES
    ))


def _write_profile(workdir, data):
    path = os.path.join(workdir, "usage.yaml")
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump(data, f)
    return path


class TestCalculate:
    """Test the calculate command."""

    def test_default_profile(self):
        result = runner.invoke(app, ["calculate"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Monthly Cost Comparison" in result.output
        assert "PlanetScale" in result.output
        assert "$12.62" in result.output
        assert "Total (Supabase): $29.61" in result.output

    def test_profile_file(self, workdir):
        profile = _write_profile(workdir, {
            "database": {"storageGB": 108, "readsPerMonth": 5100000, "writesPerMonth": 2100000}
        })
        result = runner.invoke(app, ["calculate", "--profile", profile])

        assert result.exit_code == EXIT_CODE_PASS
        assert "$57.50" in result.output
        assert "Total (Supabase): $62.11" in result.output

    def test_invalid_profile_fails(self, workdir):
        profile = _write_profile(workdir, {"queues": {"messages": 1}})
        result = runner.invoke(app, ["calculate", "--profile", profile])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Unknown usage categories" in result.output


class TestTemplate:
    """Test the template command."""

    def test_template_is_loadable_yaml(self):
        result = runner.invoke(app, ["template"])

        assert result.exit_code == EXIT_CODE_PASS
        assert yaml.safe_load(result.output) == DEFAULT_USAGE_PROFILES.to_dict()


class TestSavedEstimates:
    """Test init, save, list, show and delete."""

    def test_init(self, db_path):
        result = runner.invoke(app, ["init", "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Database initialized successfully" in result.output
        assert os.path.exists(db_path)

    def test_init_failure(self):
        with patch('backend_cost_calc.cli.main.get_repository', side_effect=OSError("disk full")):
            result = runner.invoke(app, ["init"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "disk full" in result.output

    def test_save(self, db_path):
        result = runner.invoke(app, ["save", "Launch", "--user", "user-1", "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Saved estimate Launch" in result.output
        assert "Total: $29.61" in result.output
        saved = EstimateRepository(db_path).list_for_user("user-1")
        assert [e.name for e in saved] == ["Launch"]

    def test_save_replace(self, db_path, saved_estimate, workdir):
        profile = _write_profile(workdir, {"database": {"storageGB": 108}})
        result = runner.invoke(app, [
            "save", "Launch v2", "--user", "user-1", "--profile", profile,
            "--replace", saved_estimate.id, "--db", db_path
        ])

        assert result.exit_code == EXIT_CODE_PASS
        stored = EstimateRepository(db_path).get(saved_estimate.id)
        assert stored.name == "Launch v2"
        assert stored.total_cost == 42.11
        assert stored.created_at == saved_estimate.created_at

    def test_save_replace_keeps_fields_missing_from_profile(self, db_path, workdir):
        repository = EstimateRepository(db_path)
        repository.initialize_schema()
        saved = repository.save(Estimate.from_profiles(
            user_id="user-1",
            name="Launch",
            profiles=DEFAULT_USAGE_PROFILES.replace(Category.DATABASE, DatabaseUsage(storage_gb=108))
        ))
        profile = _write_profile(workdir, {
            "database": {"readsPerMonth": 5100000, "writesPerMonth": 2100000}
        })
        result = runner.invoke(app, [
            "save", "Launch v2", "--user", "user-1", "--profile", profile,
            "--replace", saved.id, "--db", db_path
        ])

        assert result.exit_code == EXIT_CODE_PASS
        stored = repository.get(saved.id)
        assert stored.profiles.database.storage_gb == 108
        assert stored.profiles.database.reads_per_month == 5100000
        assert stored.total_cost == 62.11

    def test_save_replace_unknown_id(self, db_path):
        result = runner.invoke(app, [
            "save", "Launch", "--user", "user-1", "--replace", "missing", "--db", db_path
        ])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Estimate not found: missing" in result.output

    def test_list_empty(self, db_path):
        result = runner.invoke(app, ["list", "--user", "user-1", "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        assert "No saved estimates" in result.output

    def test_list(self, db_path, saved_estimate):
        result = runner.invoke(app, ["list", "--user", "user-1", "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Launch" in result.output
        assert "$29.61" in result.output

    def test_show(self, db_path, saved_estimate):
        result = runner.invoke(app, ["show", saved_estimate.id, "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Launch" in result.output
        assert "Total (Supabase): $29.61" in result.output

    def test_show_missing(self, db_path):
        result = runner.invoke(app, ["show", "missing", "--db", db_path])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Estimate not found" in result.output

    def test_delete(self, db_path, saved_estimate):
        result = runner.invoke(app, ["delete", saved_estimate.id, "--user", "user-1", "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        assert EstimateRepository(db_path).get(saved_estimate.id) is None

    def test_delete_other_users_estimate_fails(self, db_path, saved_estimate):
        result = runner.invoke(app, ["delete", saved_estimate.id, "--user", "user-2", "--db", db_path])

        assert result.exit_code == EXIT_CODE_FAIL
        assert EstimateRepository(db_path).get(saved_estimate.id) is not None


class TestExport:
    """Test the export command."""

    def test_export_csv(self, db_path, saved_estimate, workdir):
        output = os.path.join(workdir, "out.csv")
        result = runner.invoke(app, ["export", saved_estimate.id, "--output", output, "--db", db_path])

        assert result.exit_code == EXIT_CODE_PASS
        with open(output, newline='', encoding='utf-8') as f:
            rows = list(csv.reader(f))
        assert rows[0] == ["Service", "supabase", "firebase", "aws", "neon", "planetscale"]
        assert rows[-1][:2] == ["Total", "29.61"]

    def test_export_unsupported_format(self, db_path, saved_estimate):
        result = runner.invoke(app, ["export", saved_estimate.id, "--format", "pdf", "--db", db_path])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Unsupported export format" in result.output

    def test_export_missing(self, db_path):
        result = runner.invoke(app, ["export", "missing", "--db", db_path])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Estimate not found" in result.output
