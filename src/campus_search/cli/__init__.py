"""
CLI Module - Command-line interface for Campus Search.
======================================================

Provides CLI commands for:
- Rebuilding the indices from JSONL snapshots
- Running searches against a term
- Inspecting subjects and course occurrences

Usage:
    campussearch --help
    campussearch reindex
    campussearch search "cs 2500" --term 202010
    campussearch occurrences CS 2500 --latest

Components:
- main: Typer CLI application
"""

from campus_search.cli.main import app, cli

__all__ = ["app", "cli"]
