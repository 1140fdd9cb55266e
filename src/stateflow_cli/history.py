"""Execution context and history recording.

One ExecutionContext exists per workflow run and is shared by every state and
every nested branch of that run. Its history is append-only: branches running
concurrently may only add events, and appends are serialized by a lock.
Readers take a copy, so a read racing an append simply observes it later.
"""

import threading
import uuid
from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any

import structlog

from stateflow_cli.events import EventBus, WorkflowEvent
from stateflow_cli.types import HistoryEvent, HistoryEventType

logger = structlog.get_logger(__name__)


class History:
    """Append-only, thread-safe list of history events."""

    def __init__(self) -> None:
        self._events: list[HistoryEvent] = []
        self._lock = threading.Lock()

    def append(self, event: HistoryEvent) -> None:
        with self._lock:
            self._events.append(event)

    def snapshot(self) -> list[HistoryEvent]:
        """Return a copy of the events recorded so far."""
        with self._lock:
            return list(self._events)

    def types(self) -> list[HistoryEventType]:
        """Return the event tags in recording order."""
        return [event.type for event in self.snapshot()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def __iter__(self) -> Iterator[HistoryEvent]:
        return iter(self.snapshot())


class ExecutionContext:
    """Shared record of one workflow execution.

    Attributes:
        execution_id: Identifier for logs, events and results
        history: Append-only event log
        event_bus: Optional bus every recorded event is published to
    """

    def __init__(
        self,
        execution_id: str | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.execution_id = execution_id or str(uuid.uuid4())
        self.history = History()
        self.event_bus = event_bus

    async def record(
        self,
        event_type: HistoryEventType,
        detail: dict[str, Any] | None = None,
    ) -> HistoryEvent:
        """Append a lifecycle event and publish it.

        Args:
            event_type: Lifecycle tag
            detail: Optional ``{"cause": ..., "error": ...}`` payload

        Returns:
            The recorded event
        """
        event = HistoryEvent(type=event_type, timestamp=datetime.now(UTC), detail=detail)
        self.history.append(event)

        logger.debug(
            "history_event_recorded",
            execution_id=self.execution_id,
            event_type=event_type.value,
            history_length=len(self.history),
        )

        if self.event_bus is not None:
            await self.event_bus.emit(
                WorkflowEvent(
                    event_type=event_type.value,
                    timestamp=event.timestamp,
                    execution_id=self.execution_id,
                    data=dict(detail) if detail else {},
                )
            )

        return event
