"""Tests for the command-line interface."""

import json
import stat

import pytest
from click.testing import CliRunner

from specbridge.cli import main

SPEC_SOURCE = """\
describe("outer", function()
  it("works", function()
  end)
end)
"""

REPORT = {
    "results": {"pass": [{"descriptions": ["outer", "works"]}], "fail": [], "errs": [], "fatal": []},
    "locations": {"outer::works": 2},
}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project(tmp_path):
    """A project with a config, a spec file and a runner script."""
    (tmp_path / "example_spec.lua").write_text(SPEC_SOURCE)
    script = tmp_path / "run_tests.sh"
    script.write_text(f"#!/bin/sh\ncat > \"$1\" <<'JSON'\n{json.dumps(REPORT)}\nJSON\n")
    script.chmod(script.stat().st_mode | stat.S_IXUSR)
    (tmp_path / "specbridge.json").write_text(json.dumps({"runner": {"script": "run_tests.sh"}}))
    return tmp_path


class TestInit:
    """Tests for the init command."""

    def test_creates_config(self, runner, tmp_path):
        output = tmp_path / "specbridge.json"
        result = runner.invoke(main, ["init", "-o", str(output)])
        assert result.exit_code == 0
        assert "runner" in json.loads(output.read_text())

    def test_refuses_to_overwrite(self, runner, tmp_path):
        output = tmp_path / "specbridge.json"
        output.write_text("{}")
        result = runner.invoke(main, ["init", "-o", str(output)])
        assert result.exit_code == 1
        assert output.read_text() == "{}"


class TestDiscover:
    """Tests for the discover command."""

    def test_json_tree(self, runner, project):
        config = str(project / "specbridge.json")
        result = runner.invoke(main, ["-c", config, "discover", str(project / "example_spec.lua"), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["type"] == "file"
        assert data["children"][0]["name"] == '"outer"'
        assert data["children"][0]["children"][0]["type"] == "test"

    def test_rich_tree(self, runner, project):
        config = str(project / "specbridge.json")
        result = runner.invoke(main, ["-c", config, "discover", str(project)])
        assert result.exit_code == 0
        assert "example_spec.lua" in result.output

    def test_nothing_found(self, runner, project, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        config = str(project / "specbridge.json")
        result = runner.invoke(main, ["-c", config, "discover", str(empty)])
        assert result.exit_code == 1


class TestFilters:
    """Tests for the filters command."""

    def test_prints_filters(self, runner, project):
        spec = (project / "example_spec.lua").resolve()
        config = str(project / "specbridge.json")
        result = runner.invoke(main, ["-c", config, "filters", str(spec), f'{spec}::"outer"::"works"'])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == [[1, 4], [2, 3]]

    def test_unknown_position(self, runner, project):
        config = str(project / "specbridge.json")
        result = runner.invoke(main, ["-c", config, "filters", str(project / "example_spec.lua"), "nope"])
        assert result.exit_code == 1


class TestRunAndReconcile:
    """Tests for the run and reconcile commands."""

    def test_run_json(self, runner, project):
        spec = (project / "example_spec.lua").resolve()
        config = str(project / "specbridge.json")
        result = runner.invoke(main, ["-c", config, "run", str(spec), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["results"][f'{spec}::"outer"::"works"'] == {"status": "passed"}
        assert data["results"][str(spec)]["status"] == "passed"

    def test_run_directory_fails(self, runner, project):
        config = str(project / "specbridge.json")
        result = runner.invoke(main, ["-c", config, "run", str(project)])
        assert result.exit_code == 1

    def test_run_unknown_position(self, runner, project):
        spec = (project / "example_spec.lua").resolve()
        config = str(project / "specbridge.json")
        result = runner.invoke(main, ["-c", config, "run", str(spec), "--position", "nope"])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Unknown position" in result.output

    def test_reconcile_failed_report(self, runner, project):
        report = {
            "results": {"fail": [{"descriptions": ["outer", "works"], "msg": "nope"}]},
            "locations": {"outer::works": 2},
        }
        report_path = project / "results.json"
        report_path.write_text(json.dumps(report))
        spec = (project / "example_spec.lua").resolve()
        config = str(project / "specbridge.json")

        result = runner.invoke(main, ["-c", config, "reconcile", str(report_path), str(spec), "--json"])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data[f'{spec}::"outer"::"works"']["errors"] == [{"message": "nope"}]
