"""Path transformer for InputPath, ResultPath and OutputPath.

Paths are JSONPath expressions evaluated with jsonpath-ng. ``"$"`` is the
identity everywhere; an explicit ``None`` (JSON null) follows the
States-Language meaning:

- InputPath null: the state sees ``{}``
- ResultPath null: the result is discarded and the input passes through
- OutputPath null: the state emits ``{}``

A ResultPath below the root needs an object to write into; when the input is
not one, the result is placed into a new object.
"""

import copy
from functools import lru_cache
from typing import Any

import structlog
from jsonpath_ng import JSONPath
from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError

from stateflow_cli.errors import StatesError

logger = structlog.get_logger(__name__)

ROOT_PATH = "$"


class PathError(StatesError):
    """Raised when a path cannot be parsed or does not match the document."""

    def __init__(self, message: str) -> None:
        super().__init__("States.Runtime", message)


@lru_cache(maxsize=256)
def _compile(path: str) -> JSONPath:
    try:
        return jsonpath_parse(path)
    except (JsonPathLexerError, JsonPathParserError) as e:
        raise PathError(f"Invalid path expression '{path}': {e}") from e


def _select(value: Any, path: str) -> Any:
    matches = _compile(path).find(value)
    if not matches:
        raise PathError(f"Path '{path}' did not match anything in the input")
    if len(matches) == 1:
        return matches[0].value
    return [match.value for match in matches]


def resolve_input(value: Any, path: str | None = ROOT_PATH) -> Any:
    """Apply an InputPath to the raw state input."""
    if path is None:
        return {}
    if path == ROOT_PATH:
        return value
    return _select(value, path)


def merge_result(value: Any, path: str | None, result: Any) -> Any:
    """Apply a ResultPath: place ``result`` into ``value`` at ``path``.

    The default ``"$"`` replaces the whole value with the result. A value that
    is not an object (a list from a previous Parallel state, a scalar) cannot
    hold a field, so the result is placed into a new object instead. ``value``
    is never mutated; a merged copy is returned.
    """
    if path is None:
        return value
    if path == ROOT_PATH:
        return result
    if isinstance(value, dict):
        target = copy.deepcopy(value)
    else:
        logger.debug(
            "result_merged_into_new_object",
            result_path=path,
            input_type=type(value).__name__,
        )
        target = {}
    merged = _compile(path).update_or_create(target, copy.deepcopy(result))
    logger.debug("result_merged", result_path=path)
    return merged


def select_output(value: Any, path: str | None = ROOT_PATH) -> Any:
    """Apply an OutputPath to a state's merged result."""
    if path is None:
        return {}
    if path == ROOT_PATH:
        return value
    return _select(value, path)
