"""Pytest configuration and shared fixtures for stateflow-cli tests.

Provides fixtures for:
- Engine configuration isolated from STATEFLOW_ environment variables
- Execution contexts
- Scripted branch runners for driving ParallelState without a state machine
- Small branch/workflow definition builders
- Temporary definition files
"""

import asyncio
import json
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog

from stateflow_cli.config import StateflowConfig
from stateflow_cli.errors import StatesError
from stateflow_cli.history import ExecutionContext
from stateflow_cli.types import StateResult

# ============================================================================
# Environment / logging isolation
# ============================================================================


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Undo logging configuration installed by CLI invocations."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def config(monkeypatch: pytest.MonkeyPatch) -> StateflowConfig:
    """Default configuration, ignoring any STATEFLOW_ variables in the environment."""
    for key in list(os.environ.keys()):
        if key.upper().startswith("STATEFLOW_"):
            monkeypatch.delenv(key, raising=False)
    return StateflowConfig(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def context() -> ExecutionContext:
    """Fresh execution context with a fixed id."""
    return ExecutionContext(execution_id="test-execution")


# ============================================================================
# Scripted branch runners
# ============================================================================


class ScriptedRunnerFactory:
    """Branch runner factory whose runners follow instructions in the branch dict.

    Branch keys understood by the runners:
        id: Branch label used in ``calls``
        output: Value to return (defaults to echoing the input)
        delay: Seconds to sleep before finishing
        fail: Error name to raise on every attempt
        fail_times: Number of initial attempts that fail (then succeed)
        wait_for: Name of a gate (asyncio.Event) to wait on before finishing
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.finished: list[str] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.built_with: list[tuple[ExecutionContext, StateflowConfig]] = []
        self._attempts: dict[str, int] = {}

    def gate(self, name: str) -> asyncio.Event:
        return self.gates.setdefault(name, asyncio.Event())

    def __call__(
        self, branch: dict[str, Any], context: ExecutionContext, config: StateflowConfig
    ) -> "ScriptedRunner":
        self.built_with.append((context, config))
        return ScriptedRunner(self, branch)

    def attempt(self, branch_id: str) -> int:
        self._attempts[branch_id] = self._attempts.get(branch_id, 0) + 1
        return self._attempts[branch_id]


class ScriptedRunner:
    def __init__(self, factory: ScriptedRunnerFactory, branch: dict[str, Any]) -> None:
        self.factory = factory
        self.branch = branch

    async def execute(self, input_data: Any) -> StateResult:
        branch_id = self.branch.get("id", "?")
        self.factory.calls.append((branch_id, input_data))
        attempt = self.factory.attempt(branch_id)

        if "wait_for" in self.branch:
            await self.factory.gate(self.branch["wait_for"]).wait()
        elif self.branch.get("delay"):
            await asyncio.sleep(self.branch["delay"])

        if "fail" in self.branch:
            raise StatesError(self.branch["fail"], f"{branch_id} failed")
        if attempt <= self.branch.get("fail_times", 0):
            raise StatesError("Flaky.Error", f"{branch_id} failed attempt {attempt}")

        self.factory.finished.append(branch_id)
        output = self.branch.get("output", input_data)
        return StateResult(output=output, next_state=None)


@pytest.fixture
def scripted_factory() -> ScriptedRunnerFactory:
    """Factory producing scripted branch runners."""
    return ScriptedRunnerFactory()


# ============================================================================
# Definition builders
# ============================================================================


def _pass_branch(result: Any) -> dict[str, Any]:
    """Branch workflow with a single Pass state returning ``result``."""
    return {"StartAt": "Only", "States": {"Only": {"Type": "Pass", "Result": result, "End": True}}}


@pytest.fixture
def parallel_workflow() -> dict[str, Any]:
    """Top-level workflow: a Parallel state with two Pass branches."""
    return {
        "StartAt": "FanOut",
        "States": {
            "FanOut": {
                "Type": "Parallel",
                "Branches": [_pass_branch({"left": 1}), _pass_branch({"right": 2})],
                "End": True,
            }
        },
    }


@pytest.fixture
def write_definition(tmp_path: Path):
    """Write a definition dict to a JSON file and return its path."""

    def _write(definition: dict[str, Any], name: str = "workflow.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(definition), encoding="utf-8")
        return path

    return _write
