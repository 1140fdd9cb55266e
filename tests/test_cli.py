"""Tests for the stateflow CLI commands."""

import json

import pytest
from typer.testing import CliRunner

from stateflow_cli import __version__
from stateflow_cli.__main__ import app
from stateflow_cli.exit_codes import EX_OK, EX_RUNTIME, EX_SCHEMA, EX_USAGE

runner = CliRunner()


@pytest.fixture(autouse=True)
def _quiet_env(config, monkeypatch):
    """Start from a clean STATEFLOW_ environment and keep info logs off the output."""
    monkeypatch.setenv("STATEFLOW_LOG_LEVEL", "WARNING")


def _failing_workflow() -> dict:
    return {
        "StartAt": "FanOut",
        "States": {
            "FanOut": {
                "Type": "Parallel",
                "Branches": [
                    {
                        "StartAt": "Broken",
                        "States": {"Broken": {"Type": "Fail", "Error": "Custom.Error"}},
                    }
                ],
                "End": True,
            }
        },
    }


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == EX_OK
    assert __version__ in result.stdout


def test_run_prints_output_as_json(write_definition, parallel_workflow):
    path = write_definition(parallel_workflow)

    result = runner.invoke(app, ["run", str(path), "--input", '{"seed": 1}'])

    assert result.exit_code == EX_OK
    assert json.loads(result.stdout) == [{"left": 1}, {"right": 2}]


def test_run_reads_input_file(write_definition, tmp_path):
    path = write_definition(
        {"StartAt": "Echo", "States": {"Echo": {"Type": "Pass", "OutputPath": "$.v", "End": True}}}
    )
    input_file = tmp_path / "input.json"
    input_file.write_text('{"v": [1, 2]}', encoding="utf-8")

    result = runner.invoke(app, ["run", str(path), "--input-file", str(input_file)])

    assert result.exit_code == EX_OK
    assert json.loads(result.stdout) == [1, 2]


def test_failed_workflow_exits_with_runtime_code(write_definition):
    path = write_definition(_failing_workflow())

    result = runner.invoke(app, ["run", str(path)])

    assert result.exit_code == EX_RUNTIME
    assert "Workflow failed" in result.stdout
    assert "Custom.Error" in result.stdout


def test_missing_definition_file(tmp_path):
    result = runner.invoke(app, ["run", str(tmp_path / "missing.json")])

    assert result.exit_code == EX_SCHEMA
    assert "not found" in result.stdout


def test_unknown_state_type_exits_with_schema_code(write_definition):
    path = write_definition({"StartAt": "A", "States": {"A": {"Type": "Wait", "End": True}}})

    result = runner.invoke(app, ["run", str(path)])

    assert result.exit_code == EX_SCHEMA
    assert "Invalid definition" in result.stdout


def test_invalid_input_json(write_definition, parallel_workflow):
    path = write_definition(parallel_workflow)

    result = runner.invoke(app, ["run", str(path), "--input", "{nope"])

    assert result.exit_code == EX_USAGE
    assert "Invalid JSON input" in result.stdout


def test_input_flags_are_exclusive(write_definition, parallel_workflow, tmp_path):
    path = write_definition(parallel_workflow)
    input_file = tmp_path / "input.json"
    input_file.write_text("{}", encoding="utf-8")

    result = runner.invoke(
        app, ["run", str(path), "--input", "{}", "--input-file", str(input_file)]
    )

    assert result.exit_code == EX_USAGE


def test_history_flag_prints_table(write_definition, parallel_workflow):
    path = write_definition(parallel_workflow)

    result = runner.invoke(app, ["run", str(path), "--history"])

    assert result.exit_code == EX_OK
    assert "History" in result.stdout


def test_verbose_traces_events(write_definition, parallel_workflow):
    path = write_definition(parallel_workflow)

    result = runner.invoke(app, ["run", str(path), "--verbose"])

    assert result.exit_code == EX_OK
    assert "EXECUTION_STARTED" in result.stdout
