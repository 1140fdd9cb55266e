"""State machine driver.

Walks a workflow definition (``StartAt`` + ``States``) one state at a time,
following ``Next`` until a state ends the workflow. The same class runs the
top-level workflow and every branch of a Parallel state: Parallel states get
``StateMachine.branch_runner`` as their runner factory, so nesting is plain
recursion through injected construction.

States are built through a builder table keyed by ``Type``. The default table
covers Parallel, Pass, Succeed and Fail; callers can pass their own table to
add state types.
"""

import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any, Protocol, TypeVar

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from stateflow_cli.config import StateflowConfig
from stateflow_cli.errors import DefinitionError, StatesError, error_message, error_name
from stateflow_cli.events import EventBus
from stateflow_cli.exec.parallel import ParallelState
from stateflow_cli.exec.states import FailState, PassState, SucceedState
from stateflow_cli.history import ExecutionContext
from stateflow_cli.types import (
    FailStateDefinition,
    HistoryEventType,
    ParallelStateDefinition,
    PassStateDefinition,
    RunResult,
    StateResult,
    StateType,
    SucceedStateDefinition,
    WorkflowDefinition,
)

logger = structlog.get_logger(__name__)


class StateExecutor(Protocol):
    """Anything that can run one state."""

    async def execute(self, input_data: Any) -> StateResult: ...


StateBuilder = Callable[["StateMachine", str, dict[str, Any]], StateExecutor]

M = TypeVar("M", bound=BaseModel)


def _parse_state(model: type[M], name: str, raw: dict[str, Any]) -> M:
    try:
        return model.model_validate(raw)
    except PydanticValidationError as e:
        raise DefinitionError(f"Invalid definition for state '{name}': {e}") from e


def _build_parallel(machine: "StateMachine", name: str, raw: dict[str, Any]) -> StateExecutor:
    return ParallelState(
        _parse_state(ParallelStateDefinition, name, raw),
        machine.context,
        machine.config,
        runner_factory=machine.branch_runner,
        name=name,
    )


def _build_pass(machine: "StateMachine", name: str, raw: dict[str, Any]) -> StateExecutor:
    return PassState(_parse_state(PassStateDefinition, name, raw), name=name)


def _build_succeed(machine: "StateMachine", name: str, raw: dict[str, Any]) -> StateExecutor:
    return SucceedState(_parse_state(SucceedStateDefinition, name, raw), name=name)


def _build_fail(machine: "StateMachine", name: str, raw: dict[str, Any]) -> StateExecutor:
    return FailState(_parse_state(FailStateDefinition, name, raw), name=name)


DEFAULT_STATE_BUILDERS: Mapping[str, StateBuilder] = MappingProxyType(
    {
        StateType.PARALLEL.value: _build_parallel,
        StateType.PASS.value: _build_pass,
        StateType.SUCCEED.value: _build_succeed,
        StateType.FAIL.value: _build_fail,
    }
)


class StateMachine:
    """Runs one workflow definition against an input.

    Args:
        definition: Workflow definition, raw or already parsed
        context: Execution context shared across the whole run
        config: Engine configuration
        builders: State builder table (defaults to DEFAULT_STATE_BUILDERS)

    Raises:
        DefinitionError: If the definition has no StartAt/States
    """

    def __init__(
        self,
        definition: dict[str, Any] | WorkflowDefinition,
        context: ExecutionContext,
        config: StateflowConfig,
        *,
        builders: Mapping[str, StateBuilder] | None = None,
    ) -> None:
        if isinstance(definition, WorkflowDefinition):
            self.definition = definition
        else:
            try:
                self.definition = WorkflowDefinition.model_validate(definition)
            except PydanticValidationError as e:
                raise DefinitionError(f"Invalid workflow definition: {e}") from e
        self.context = context
        self.config = config
        self._builders = builders if builders is not None else DEFAULT_STATE_BUILDERS

    def branch_runner(
        self,
        branch: dict[str, Any],
        context: ExecutionContext,
        config: StateflowConfig,
    ) -> "StateMachine":
        """Build the runner for a nested branch, sharing this machine's builders."""
        return StateMachine(branch, context, config, builders=self._builders)

    def build_state(self, name: str) -> StateExecutor:
        """Build the executor for the named state.

        Raises:
            DefinitionError: If the state is missing or its Type is unknown
        """
        raw = self.definition.states.get(name)
        if raw is None:
            raise DefinitionError(f"State '{name}' is not defined")
        state_type = raw.get("Type")
        builder = self._builders.get(state_type) if isinstance(state_type, str) else None
        if builder is None:
            raise DefinitionError(f"State '{name}' has unsupported Type '{state_type}'")
        return builder(self, name, raw)

    async def execute(self, input_data: Any) -> StateResult:
        """Walk the graph from StartAt until a state ends the workflow.

        Raises:
            StatesError: (States.Runtime) if more than ``config.max_steps``
                states run, e.g. when Next transitions form a cycle
        """
        current = self.definition.start_at
        data = input_data
        max_steps = self.config.max_steps

        for _ in range(max_steps):
            state = self.build_state(current)
            logger.debug("state_entered", state=current, execution_id=self.context.execution_id)
            result = await state.execute(data)
            data = result.output

            if not isinstance(result.next_state, str):
                logger.debug(
                    "workflow_ended", state=current, execution_id=self.context.execution_id
                )
                return StateResult(output=data, next_state=None)
            current = result.next_state

        logger.error(
            "state_machine_max_steps_exceeded",
            max_steps=max_steps,
            last_state=current,
            execution_id=self.context.execution_id,
        )
        raise StatesError(
            "States.Runtime",
            f"Workflow exceeded max_steps limit ({max_steps}). "
            f"Possible Next cycle; next state was '{current}'",
        )


async def run_workflow(
    definition: dict[str, Any] | WorkflowDefinition,
    input_data: Any = None,
    config: StateflowConfig | None = None,
    event_bus: EventBus | None = None,
    execution_id: str | None = None,
) -> RunResult:
    """Execute a workflow definition end to end.

    Records EXECUTION_STARTED and one of EXECUTION_SUCCEEDED/EXECUTION_FAILED
    around the state-level history. Workflow failures are reported in the
    result rather than raised.

    Args:
        definition: Workflow definition
        input_data: Workflow input (defaults to ``{}``)
        config: Engine configuration (defaults to environment-loaded config)
        event_bus: Optional bus receiving every history event
        execution_id: Optional explicit execution id

    Returns:
        RunResult with output or error, timing and the full history

    Raises:
        DefinitionError: If the definition cannot be executed
    """
    config = config or StateflowConfig()
    context = ExecutionContext(execution_id=execution_id, event_bus=event_bus)
    input_data = {} if input_data is None else input_data

    started_at = datetime.now(UTC)
    start = time.perf_counter()

    with structlog.contextvars.bound_contextvars(execution_id=context.execution_id):
        machine = StateMachine(definition, context, config)
        logger.info("execution_started", start_at=machine.definition.start_at)
        await context.record(HistoryEventType.EXECUTION_STARTED)

        output: Any = None
        error: str | None = None
        cause: str | None = None
        try:
            output = (await machine.execute(input_data)).output
        except DefinitionError:
            raise
        except Exception as e:
            error, cause = error_name(e), error_message(e)
            await context.record(
                HistoryEventType.EXECUTION_FAILED, {"cause": error, "error": cause}
            )
            logger.error("execution_failed", error=error, cause=cause)
        else:
            await context.record(HistoryEventType.EXECUTION_SUCCEEDED)
            logger.info("execution_succeeded")

    duration = time.perf_counter() - start
    return RunResult(
        execution_id=context.execution_id,
        success=error is None,
        output=output,
        error=error,
        cause=cause,
        started_at=started_at.isoformat(),
        completed_at=datetime.now(UTC).isoformat(),
        duration_seconds=duration,
        history=[event.to_dict() for event in context.history],
    )
