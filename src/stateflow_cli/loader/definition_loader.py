"""YAML/JSON loader for workflow definitions.

Handles loading and parsing state-machine definitions from YAML or JSON files,
and parsing JSON execution input given on the command line.

Validation Flow:
    1. Check the file exists and is within the size ceiling
    2. Read and parse YAML/JSON
    3. Require a mapping with StartAt and States

Supported Formats:
    - .yaml, .yml: Parsed with ruamel.yaml (safe mode)
    - .json: Parsed with standard json module

Deeper checks (state types, Next targets) happen when the state machine
builds each state.
"""

import json
from pathlib import Path
from typing import Any

import structlog
from ruamel.yaml import YAML

from stateflow_cli.config import StateflowConfig

logger = structlog.get_logger(__name__)


class LoadError(Exception):
    """Raised when a definition file or input cannot be loaded or parsed."""

    pass


def _validate_file_path(file_path: Path, max_bytes: int) -> None:
    """Validate file exists and is not too large.

    Raises:
        LoadError: If file doesn't exist or is too large
    """
    if not file_path.exists():
        raise LoadError(f"Definition file not found: {file_path}")

    file_size = file_path.stat().st_size
    if file_size > max_bytes:
        size_mb = file_size / (1024 * 1024)
        max_mb = max_bytes / (1024 * 1024)
        raise LoadError(
            f"Definition file too large: {size_mb:.1f}MB exceeds maximum of {max_mb:.1f}MB"
        )


def _parse_file_content(file_path: Path, content: str) -> dict[str, Any]:
    """Parse file content based on extension.

    Raises:
        LoadError: If parsing fails or format unsupported
    """
    suffix = file_path.suffix.lower()
    if suffix not in {".yaml", ".yml", ".json"}:
        raise LoadError(f"Unsupported file extension: {suffix}. Use .yaml, .yml, or .json")

    try:
        if suffix == ".json":
            data = json.loads(content)
        else:
            yaml = YAML(typ="safe", pure=True)
            data = yaml.load(content)
    except Exception as e:
        raise LoadError(f"Failed to parse {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise LoadError(f"Definition must be a dictionary/object, got {type(data).__name__}")

    return data


def load_definition(
    file_path: str | Path, config: StateflowConfig | None = None
) -> dict[str, Any]:
    """Load a workflow definition from YAML or JSON.

    Args:
        file_path: Path to the definition file (.yaml, .yml, or .json)
        config: Configuration providing the file size ceiling

    Returns:
        The raw definition dictionary

    Raises:
        LoadError: If the file cannot be read or parsed, or lacks StartAt/States
    """
    config = config or StateflowConfig()
    file_path = Path(file_path)

    _validate_file_path(file_path, config.max_definition_bytes)

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise LoadError(f"Failed to read {file_path}: {e}") from e

    data = _parse_file_content(file_path, content)

    missing = [key for key in ("StartAt", "States") if key not in data]
    if missing:
        raise LoadError(f"Definition {file_path} is missing {', '.join(missing)}")
    if not isinstance(data["States"], dict):
        raise LoadError(f"Definition {file_path}: States must be an object")

    logger.debug(
        "definition_loaded",
        file_path=str(file_path),
        start_at=data["StartAt"],
        state_count=len(data["States"]),
    )
    return data


def parse_input(text: str | None) -> Any:
    """Parse JSON execution input. Empty input means ``{}``.

    Raises:
        LoadError: If the text is not valid JSON
    """
    if text is None or not text.strip():
        return {}
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise LoadError(f"Invalid JSON input: {e}") from e
