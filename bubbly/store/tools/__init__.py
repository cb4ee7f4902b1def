"""
CLI tools for Bubbly store administration.

This module provides command-line tools for:
- schema: Plan migrations and inspect schema definitions

Invariants:
    - Tools work offline (no running store required)
    - Tools never apply a plan, they only compute and print it
"""

from .schema_cli import SchemaCLI

__all__ = ["SchemaCLI"]
