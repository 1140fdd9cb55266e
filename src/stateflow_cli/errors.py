"""Error types shared by the state executors.

Failures crossing a branch boundary are described by a stable kind (``name``)
and a human-readable ``message``. Exceptions raised by the engine itself carry
both attributes; any other exception is described by its class name and
``str(exc)`` via :func:`error_name` and :func:`error_message`.
"""


class StatesError(Exception):
    """A workflow-level failure with a stable error kind.

    Raised by Fail states and by anything that wants its failure to surface
    in history and catch output under a chosen name (e.g. ``States.TaskFailed``).
    """

    def __init__(self, name: str, message: str = "") -> None:
        super().__init__(message or name)
        self.name = name
        self.message = message


class DefinitionError(Exception):
    """Raised when a workflow definition cannot be turned into executable states."""

    pass


def error_name(exc: BaseException) -> str:
    """Return the stable kind of a failure."""
    name = getattr(exc, "name", None)
    if isinstance(name, str) and name:
        return name
    return type(exc).__name__


def error_message(exc: BaseException) -> str:
    """Return the human-readable message of a failure."""
    message = getattr(exc, "message", None)
    if isinstance(message, str):
        return message
    return str(exc)


def error_payload(exc: BaseException) -> dict[str, str]:
    """Describe a failure as the JSON object merged into catch output."""
    return {"name": error_name(exc), "message": error_message(exc)}
