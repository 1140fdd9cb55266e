"""Event system for workflow execution.

Provides EventBus for pub/sub event handling with support for both
sync and async event handlers. Every history event recorded for an
execution is also published here, so callers can observe a run live.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

# Event handler type (supports both sync and async)
EventHandler = Callable[["WorkflowEvent"], None] | Callable[["WorkflowEvent"], Awaitable[None]]

# Subscribing to this event type receives every event
ALL_EVENTS = "*"


@dataclass
class WorkflowEvent:
    """Event emitted during workflow execution.

    Attributes:
        event_type: History event tag (e.g., 'PARALLEL_STATE_ENTERED')
        timestamp: When the underlying history event was recorded
        execution_id: Execution the event belongs to
        data: Event-specific data (failure detail, etc.)
    """

    event_type: str
    timestamp: datetime
    execution_id: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary with ISO timestamp."""
        result = asdict(self)
        result["timestamp"] = self.timestamp.isoformat()
        return result


class EventBus:
    """Event bus for workflow events.

    Supports both synchronous and asynchronous event handlers.
    Handlers are called in subscription order; handlers subscribed to
    ``ALL_EVENTS`` run after the type-specific ones.

    Example:
        >>> bus = EventBus()
        >>> def on_failed(event: WorkflowEvent):
        >>>     print(f"Failed: {event.data}")
        >>> bus.subscribe("PARALLEL_STATE_FAILED", on_failed)
        >>> result = await run_workflow(definition, {}, event_bus=bus)
    """

    def __init__(self) -> None:
        """Initialize event bus."""
        self._handlers: dict[str, list[EventHandler]] = {}
        self._lock = asyncio.Lock()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe handler to event type.

        Args:
            event_type: Type of event to subscribe to, or ALL_EVENTS
            handler: Callable to invoke when event is emitted
        """
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)
        handler_name = getattr(handler, "__name__", handler.__class__.__name__)
        logger.debug("event_handler_subscribed", event_type=event_type, handler=handler_name)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        """Unsubscribe handler from event type.

        Args:
            event_type: Type of event to unsubscribe from
            handler: Handler to remove
        """
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                handler_name = getattr(handler, "__name__", handler.__class__.__name__)
                logger.debug(
                    "event_handler_unsubscribed",
                    event_type=event_type,
                    handler=handler_name,
                )
            except ValueError:
                pass  # Handler not found, ignore

    async def emit(self, event: WorkflowEvent) -> None:
        """Emit event to all subscribed handlers.

        Async handlers are awaited, sync handlers are called directly.
        Errors in handlers are logged but don't stop other handlers from
        executing and never reach the workflow.

        Args:
            event: Event to emit
        """
        handlers = self._handlers.get(event.event_type, []) + self._handlers.get(ALL_EVENTS, [])

        if not handlers:
            return

        logger.debug(
            "event_emitting",
            event_type=event.event_type,
            handler_count=len(handlers),
            execution_id=event.execution_id,
        )

        async with self._lock:
            for handler in handlers:
                try:
                    result = handler(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    handler_name = getattr(handler, "__name__", handler.__class__.__name__)
                    logger.error(
                        "event_handler_failed",
                        event_type=event.event_type,
                        handler=handler_name,
                        error=str(e),
                        exc_info=True,
                    )

    def clear(self) -> None:
        """Remove all event handlers."""
        self._handlers.clear()
        logger.debug("event_handlers_cleared")
