"""Execution module for running workflow definitions."""

from stateflow_cli.exec.parallel import ParallelState
from stateflow_cli.exec.state_machine import StateMachine, run_workflow

__all__ = ["ParallelState", "StateMachine", "run_workflow"]
