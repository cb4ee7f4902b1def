"""
Schema module for the Bubbly store.

This module provides the structural model of the store and the migration
planner that diffs two versions of it:
- Type definitions (Table, Field, Join)
- Schema snapshots keyed by table name
- Changelog of create/update/delete entries
- Schema diffing (compare_schema)

Invariants:
    - Tables, fields and sub-tables are identified by name, joins by target
    - A schema's key for a table always equals the table's name
    - Diffing never mutates either schema

How to change safely:
    - Renaming an element is a delete plus a create
    - Review the changelog before applying it to a live store
    - Use the schema CLI to diff release schemas in CI
"""

from .changelog import Changelog, DiffAction, ElementType, Entry, TableInfo
from .diff import (
    calculate_diff,
    check_destructive_changes,
    compare_fields,
    compare_joins,
    compare_schema,
    compare_tables,
    plan_migration,
)
from .errors import (
    DestructiveChangeError,
    DuplicateTableError,
    SchemaError,
    SchemaFrozenError,
    SchemaKeyMismatchError,
    UnsupportedSchemaFormatError,
)
from .registry import INTERNAL_TABLES, Schema, generate_fingerprint
from .types import Field, Join, Table

__all__ = [
    # Types
    "Field",
    "Join",
    "Table",
    # Schema
    "Schema",
    "INTERNAL_TABLES",
    "generate_fingerprint",
    # Changelog
    "Changelog",
    "Entry",
    "TableInfo",
    "DiffAction",
    "ElementType",
    # Diffing
    "compare_schema",
    "calculate_diff",
    "compare_fields",
    "compare_joins",
    "compare_tables",
    "check_destructive_changes",
    "plan_migration",
    # Errors
    "SchemaError",
    "SchemaKeyMismatchError",
    "SchemaFrozenError",
    "DuplicateTableError",
    "UnsupportedSchemaFormatError",
    "DestructiveChangeError",
]
