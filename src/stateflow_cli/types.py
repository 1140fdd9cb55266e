"""Type definitions for Stateflow CLI.

Workflow definitions arrive as JSON-like dictionaries using the
Amazon-States-Language field names (``StartAt``, ``Branches``, ``ResultPath``).
They are converted once into immutable Pydantic v2 models whose Python
attribute names are snake_case, with the definition names kept as aliases.

Key Models:
    WorkflowDefinition: ``StartAt`` + ``States`` graph of one (sub-)workflow
    ParallelStateDefinition: Fork/join state with Retry and Catch
    PassStateDefinition / SucceedStateDefinition / FailStateDefinition
    RetryPolicy: Resolved retry parameters (defaults applied once)
    StateResult: ``{output, next_state}`` returned by every state
    HistoryEvent: Immutable lifecycle record of one execution
    RunResult: Outcome of a whole workflow run
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from stateflow_cli.config import StateflowConfig


class StateType(str, Enum):
    """State types understood by the state machine."""

    PARALLEL = "Parallel"
    PASS = "Pass"
    SUCCEED = "Succeed"
    FAIL = "Fail"


class HistoryEventType(str, Enum):
    """Lifecycle tags recorded in an execution's history."""

    EXECUTION_STARTED = "EXECUTION_STARTED"
    EXECUTION_SUCCEEDED = "EXECUTION_SUCCEEDED"
    EXECUTION_FAILED = "EXECUTION_FAILED"
    PARALLEL_STATE_ENTERED = "PARALLEL_STATE_ENTERED"
    PARALLEL_STATE_STARTED = "PARALLEL_STATE_STARTED"
    PARALLEL_STATE_SUCCEEDED = "PARALLEL_STATE_SUCCEEDED"
    PARALLEL_STATE_EXITED = "PARALLEL_STATE_EXITED"
    PARALLEL_STATE_FAILED = "PARALLEL_STATE_FAILED"


class _DefinitionModel(BaseModel):
    """Base for definition models: immutable, alias-driven, extra fields ignored."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class WorkflowDefinition(_DefinitionModel):
    """A workflow or branch: entry state name plus the named states."""

    start_at: str = Field(alias="StartAt")
    states: dict[str, dict[str, Any]] = Field(alias="States")
    comment: str | None = Field(default=None, alias="Comment")


class RetryConfig(_DefinitionModel):
    """``Retry`` block as written in the definition. Missing fields stay None."""

    interval_seconds: float | None = Field(default=None, alias="IntervalSeconds")
    backoff_rate: float | None = Field(default=None, alias="BackoffRate")
    max_attempts: int | None = Field(default=None, alias="MaxAttempts")


class CatchClause(_DefinitionModel):
    """``Catch`` block: where to merge the failure and which state to go to."""

    result_path: str | None = Field(default="$", alias="ResultPath")
    next: str = Field(alias="Next")


class RetryPolicy(BaseModel):
    """Retry parameters with defaults resolved.

    A state without a ``Retry`` block gets ``max_attempts=0``: the first
    failure is final.
    """

    model_config = ConfigDict(frozen=True)

    interval_seconds: float = 0.0
    backoff_rate: float = 0.0
    max_attempts: int = 0

    @classmethod
    def resolve(
        cls, retry: RetryConfig | None, config: StateflowConfig
    ) -> "RetryPolicy":
        """Build the policy for a state from its Retry block and config defaults."""
        if retry is None:
            return cls()
        return cls(
            interval_seconds=(
                retry.interval_seconds
                if retry.interval_seconds is not None
                else config.default_interval_seconds
            ),
            backoff_rate=(
                retry.backoff_rate
                if retry.backoff_rate is not None
                else config.default_backoff_rate
            ),
            max_attempts=(
                retry.max_attempts
                if retry.max_attempts is not None
                else config.default_max_attempts
            ),
        )

    def delay_for(self, retry_count: int) -> float:
        """Seconds to wait before the attempt following failure number ``retry_count``."""
        return self.interval_seconds * self.backoff_rate**retry_count


class _TransitionModel(_DefinitionModel):
    """States that continue the graph with ``Next`` or stop it with ``End``."""

    next: str | None = Field(default=None, alias="Next")
    end: bool | None = Field(default=None, alias="End")


class ParallelStateDefinition(_TransitionModel):
    """``Parallel`` state: run every branch on the same input and join."""

    type: Literal["Parallel"] = Field(default="Parallel", alias="Type")
    branches: list[dict[str, Any]] = Field(alias="Branches")
    input_path: str | None = Field(default="$", alias="InputPath")
    output_path: str | None = Field(default="$", alias="OutputPath")
    result_path: str | None = Field(default="$", alias="ResultPath")
    retry: RetryConfig | None = Field(default=None, alias="Retry")
    catch: CatchClause | None = Field(default=None, alias="Catch")


class PassStateDefinition(_TransitionModel):
    """``Pass`` state: forward input, optionally injecting a fixed ``Result``."""

    type: Literal["Pass"] = Field(default="Pass", alias="Type")
    result: Any = Field(default=None, alias="Result")
    input_path: str | None = Field(default="$", alias="InputPath")
    output_path: str | None = Field(default="$", alias="OutputPath")
    result_path: str | None = Field(default="$", alias="ResultPath")

    @property
    def has_result(self) -> bool:
        return "result" in self.model_fields_set


class SucceedStateDefinition(_DefinitionModel):
    """``Succeed`` state: terminal, returns its filtered input."""

    type: Literal["Succeed"] = Field(default="Succeed", alias="Type")
    input_path: str | None = Field(default="$", alias="InputPath")
    output_path: str | None = Field(default="$", alias="OutputPath")


class FailStateDefinition(_DefinitionModel):
    """``Fail`` state: terminal, fails the (sub-)workflow with Error/Cause."""

    type: Literal["Fail"] = Field(default="Fail", alias="Type")
    error: str = Field(default="States.Fail", alias="Error")
    cause: str = Field(default="", alias="Cause")


@dataclass(frozen=True)
class StateResult:
    """What a state (or a whole branch) hands back to its driver.

    Attributes:
        output: JSON-like output value
        next_state: Successor state name, True when the workflow ends here,
            or None when no transition is configured
    """

    output: Any
    next_state: str | bool | None = None


@dataclass(frozen=True)
class HistoryEvent:
    """Immutable lifecycle record.

    Attributes:
        type: Lifecycle tag
        timestamp: When the event was recorded (UTC)
        detail: Optional ``{"cause": ..., "error": ...}`` for failures
    """

    type: HistoryEventType
    timestamp: datetime
    detail: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary with ISO timestamp."""
        result: dict[str, Any] = {
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.detail is not None:
            result["detail"] = dict(self.detail)
        return result


class RunResult(BaseModel):
    """Result of executing a workflow definition end to end.

    Attributes:
        execution_id: Identifier bound to logs and history for this run
        success: True if the workflow completed without an unrecovered failure
        output: Final workflow output (None on failure)
        error: Error kind if execution failed
        cause: Error message if execution failed
        started_at: ISO 8601 timestamp of execution start
        completed_at: ISO 8601 timestamp of execution completion
        duration_seconds: Total execution time
        history: Recorded history events as dictionaries
    """

    execution_id: str
    success: bool
    output: Any = None
    error: str | None = None
    cause: str | None = None
    started_at: str
    completed_at: str
    duration_seconds: float
    history: list[dict[str, Any]] = Field(default_factory=list)
