"""structlog configuration for Stateflow CLI.

Uses ConsoleRenderer for user-friendly output by default and JSONRenderer
when ``log_format`` is ``json``. Logs go to stderr so the workflow output on
stdout stays machine-readable.
"""

import logging
import sys
from collections.abc import Callable
from typing import Any

import structlog

from stateflow_cli.config import StateflowConfig

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def make_level_filter(
    min_level: int,
) -> Callable[[Any, str, dict[str, Any]], dict[str, Any]]:
    """Build a processor dropping events below ``min_level``."""

    def filter_by_level_processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        level_name = event_dict.get("level", "info").upper()
        if _LEVELS.get(level_name, logging.INFO) < min_level:
            raise structlog.DropEvent
        return event_dict

    return filter_by_level_processor


def configure_logging(config: StateflowConfig, verbose: bool = False) -> None:
    """Install the structlog processor chain.

    Args:
        config: Provides log_level and log_format
        verbose: Force DEBUG level regardless of config
    """
    min_level = logging.DEBUG if verbose else _LEVELS.get(config.log_level.upper(), logging.INFO)
    renderer = (
        structlog.processors.JSONRenderer()
        if config.log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            make_level_filter(min_level),  # type: ignore[list-item]
            renderer,
        ],
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
