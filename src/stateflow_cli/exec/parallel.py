"""Parallel state executor.

Forks execution into one nested workflow per branch, joins on completion, and
wraps the join with retry-with-backoff and catch/fallback recovery.

Execution Flow:
    1. Resolve InputPath; record PARALLEL_STATE_ENTERED, PARALLEL_STATE_STARTED
    2. Attempt: run every branch concurrently on the same input and join
        a. Each branch gets a fresh runner from the injected factory
        b. Per branch: merge its output with ResultPath, then apply OutputPath
        c. Join output keeps branch-definition order
    3. On join failure: wait IntervalSeconds * BackoffRate ** retry_count and
       re-run every branch from scratch, up to MaxAttempts retries
    4. Success: record SUCCEEDED, EXITED and return the ordered outputs
    5. Exhausted: record FAILED {cause, error}; re-raise, or with a Catch
       block merge {name, message} via Catch.ResultPath and route to Catch.Next

Branch Execution:
    - Fail-fast join: the first branch failure fails the attempt
      (asyncio.gather with return_exceptions=False)
    - Branches still running at that point are not cancelled; their eventual
      results are discarded
    - Branches share the execution context, so their history events interleave

Next State:
    Catch.Next when a catch fired, otherwise Next, otherwise End (True).
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)

from stateflow_cli.config import StateflowConfig
from stateflow_cli.errors import error_message, error_name, error_payload
from stateflow_cli.history import ExecutionContext
from stateflow_cli.paths import PathError, merge_result, resolve_input, select_output
from stateflow_cli.types import (
    HistoryEventType,
    ParallelStateDefinition,
    RetryPolicy,
    StateResult,
)

logger = structlog.get_logger(__name__)


class BranchRunner(Protocol):
    """A runnable sub-workflow bound to one branch definition."""

    async def execute(self, input_data: Any) -> StateResult: ...


BranchRunnerFactory = Callable[[dict[str, Any], ExecutionContext, StateflowConfig], BranchRunner]


@dataclass
class ParallelRunState:
    """Mutable bookkeeping for a single ``ParallelState.execute`` call."""

    input: Any
    retry_count: int = 0
    branch_outputs: Any = None
    failure_cause: BaseException | None = None
    catch_next: str | None = None


async def _backoff_sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


class ParallelState:
    """Executor for one ``Parallel`` state of a workflow.

    Args:
        definition: Parsed Parallel state definition
        context: Execution context shared with every branch
        config: Engine configuration, passed down to branch runners
        runner_factory: Builds the runner for a branch definition. The state
            machine passes itself here, which keeps this module free of any
            reference to it.
        name: State name, for logs
    """

    def __init__(
        self,
        definition: ParallelStateDefinition,
        context: ExecutionContext,
        config: StateflowConfig,
        *,
        runner_factory: BranchRunnerFactory,
        name: str = "Parallel",
    ) -> None:
        self.definition = definition
        self.context = context
        self.config = config
        self.name = name
        self.retry_policy = RetryPolicy.resolve(definition.retry, config)
        self._runner_factory = runner_factory
        self._log = logger.bind(
            state=name,
            execution_id=context.execution_id,
            branch_count=len(definition.branches),
        )

    async def execute(self, input_data: Any) -> StateResult:
        """Run all branches and return the joined output and next state.

        Raises:
            Exception: The last branch failure, when retries are exhausted and
                no Catch block recovers it
        """
        run = ParallelRunState(input=resolve_input(input_data, self.definition.input_path))
        await self.context.record(HistoryEventType.PARALLEL_STATE_ENTERED)
        await self.context.record(HistoryEventType.PARALLEL_STATE_STARTED)

        try:
            run.branch_outputs = await self._run_with_retry(run)
        except Exception as e:
            run.failure_cause = e
            await self.context.record(
                HistoryEventType.PARALLEL_STATE_FAILED,
                {"cause": error_name(e), "error": error_message(e)},
            )
            catch = self.definition.catch
            if catch is None or not self.catches(e):
                self._log.error(
                    "parallel_state_failed",
                    error=error_name(e),
                    cause=error_message(e),
                    retries=run.retry_count,
                )
                raise

            run.branch_outputs = self._catch_output(run, catch.result_path)
            run.catch_next = catch.next
            self._log.warning(
                "parallel_state_caught",
                error=error_name(e),
                cause=error_message(e),
                next_state=catch.next,
            )
        else:
            await self.context.record(HistoryEventType.PARALLEL_STATE_SUCCEEDED)
            await self.context.record(HistoryEventType.PARALLEL_STATE_EXITED)
            self._log.info("parallel_state_succeeded", retries=run.retry_count)

        return StateResult(output=run.branch_outputs, next_state=self._next_state(run))

    def catches(self, error: BaseException) -> bool:
        """Whether the Catch block recovers ``error``.

        Any failure is caught when a Catch block exists. Matching by error
        kind would go here.
        """
        return self.definition.catch is not None

    def _catch_output(self, run: ParallelRunState, result_path: str | None) -> Any:
        """Merge the failure payload into the state input for Catch.Next.

        Recovery never raises: if the merge itself fails, the payload alone
        becomes the output.
        """
        assert run.failure_cause is not None, "catch output needs a failure cause"
        payload = error_payload(run.failure_cause)
        try:
            return merge_result(run.input, result_path, payload)
        except PathError as e:
            self._log.warning(
                "parallel_catch_merge_failed",
                result_path=result_path,
                error=error_message(e),
            )
            return payload

    async def _run_with_retry(self, run: ParallelRunState) -> list[Any]:
        outputs: list[Any] = []
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_policy.max_attempts + 1),
            wait=self._backoff_wait,
            sleep=_backoff_sleep,
            retry=retry_if_exception_type(Exception),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                try:
                    outputs = await self._run_branches(run.input)
                except Exception as e:
                    run.retry_count += 1
                    self._log.warning(
                        "parallel_attempt_failed",
                        attempt=run.retry_count,
                        max_attempts=self.retry_policy.max_attempts,
                        error=error_name(e),
                        cause=error_message(e),
                    )
                    raise
        return outputs

    def _backoff_wait(self, retry_state: RetryCallState) -> float:
        return self.retry_policy.delay_for(retry_state.attempt_number)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        self._log.info(
            "parallel_retry_scheduled",
            retry=retry_state.attempt_number,
            delay_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        )

    async def _run_branches(self, input_data: Any) -> list[Any]:
        self._log.debug("parallel_attempt_started")
        results = await asyncio.gather(
            *(
                self._run_branch(index, branch, input_data)
                for index, branch in enumerate(self.definition.branches)
            )
        )
        return list(results)

    async def _run_branch(self, index: int, branch: dict[str, Any], input_data: Any) -> Any:
        runner = self._runner_factory(branch, self.context, self.config)
        try:
            result = await runner.execute(input_data)
        except Exception as e:
            self._log.debug(
                "parallel_branch_failed",
                branch_index=index,
                error=error_name(e),
            )
            raise
        merged = merge_result(input_data, self.definition.result_path, result.output)
        return select_output(merged, self.definition.output_path)

    def _next_state(self, run: ParallelRunState) -> str | bool | None:
        if run.catch_next:
            return run.catch_next
        if self.definition.next:
            return self.definition.next
        if self.definition.end:
            return True
        return None
