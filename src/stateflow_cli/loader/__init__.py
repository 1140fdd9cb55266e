"""Loader module for YAML/JSON workflow definitions."""

from stateflow_cli.loader.definition_loader import LoadError, load_definition, parse_input

__all__ = ["LoadError", "load_definition", "parse_input"]
