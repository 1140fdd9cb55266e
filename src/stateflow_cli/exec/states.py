"""Simple state executors: Pass, Succeed and Fail.

These are the states a branch needs to shape data and to end, successfully or
not. Each executor takes its parsed definition and returns a StateResult.
"""

from typing import Any

import structlog

from stateflow_cli.errors import StatesError
from stateflow_cli.paths import merge_result, resolve_input, select_output
from stateflow_cli.types import (
    FailStateDefinition,
    PassStateDefinition,
    StateResult,
    SucceedStateDefinition,
)

logger = structlog.get_logger(__name__)


class PassState:
    """Forward input to output, optionally merging a fixed ``Result``."""

    def __init__(self, definition: PassStateDefinition, name: str = "Pass") -> None:
        self.definition = definition
        self.name = name

    async def execute(self, input_data: Any) -> StateResult:
        effective_input = resolve_input(input_data, self.definition.input_path)
        result = self.definition.result if self.definition.has_result else effective_input
        merged = merge_result(effective_input, self.definition.result_path, result)
        output = select_output(merged, self.definition.output_path)
        next_state = self.definition.next or (True if self.definition.end else None)
        return StateResult(output=output, next_state=next_state)


class SucceedState:
    """Terminal state returning its filtered input."""

    def __init__(self, definition: SucceedStateDefinition, name: str = "Succeed") -> None:
        self.definition = definition
        self.name = name

    async def execute(self, input_data: Any) -> StateResult:
        effective_input = resolve_input(input_data, self.definition.input_path)
        return StateResult(
            output=select_output(effective_input, self.definition.output_path),
            next_state=True,
        )


class FailState:
    """Terminal state failing the enclosing workflow with its Error and Cause."""

    def __init__(self, definition: FailStateDefinition, name: str = "Fail") -> None:
        self.definition = definition
        self.name = name

    async def execute(self, input_data: Any) -> StateResult:
        logger.info(
            "fail_state_reached",
            state=self.name,
            error=self.definition.error,
            cause=self.definition.cause,
        )
        raise StatesError(self.definition.error, self.definition.cause)
