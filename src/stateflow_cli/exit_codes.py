"""Exit codes for the Stateflow CLI.

Follows Unix conventions for consistent error reporting across different
failure modes. These codes allow shell scripts and CI/CD pipelines to
distinguish between bad definitions and workflows that failed at runtime.

Usage:
    Always use named constants instead of raw integers:

    from stateflow_cli.exit_codes import EX_SCHEMA, EX_OK
    sys.exit(EX_SCHEMA)  # GOOD
    sys.exit(3)  # BAD - unclear meaning

Exit Code Categories:
    0: Success
    2-3: User/input errors (bad flags, unreadable or malformed definition)
    10: Workflow runtime failure
    70: System/unexpected errors
"""

# Success
EX_OK = 0
"""Successful execution."""

# User errors
EX_USAGE = 2
"""Command-line usage error (bad flags, invalid --input JSON, etc.)."""

EX_SCHEMA = 3
"""Definition error.

The workflow definition could not be read, parsed, or converted into typed
state models (unknown state type, missing StartAt, dangling Next, ...).
"""

# Runtime errors
EX_RUNTIME = 10
"""Workflow execution failed.

An unrecovered failure reached the top of the workflow: a Fail state, or a
Parallel state whose branches kept failing after retries with no Catch.
"""

# System errors
EX_UNKNOWN = 70
"""Unexpected exception not handled by specific error codes.

Indicates a bug in the CLI or an unhandled edge case. When this occurs,
use --verbose to see the full traceback and report the issue.
"""
