"""Stateflow CLI - Run declarative state-machine workflows with parallel branches."""

from stateflow_cli.exec import run_workflow

# Version (managed in pyproject.toml)
__version__ = "0.1.0"

__all__ = ["__version__", "run_workflow"]
