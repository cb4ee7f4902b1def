"""
Error types for the Bubbly store schema package.

Invariants:
    - Every error raised by this package derives from SchemaError
    - compare_schema raises exactly one error kind: SchemaKeyMismatchError
    - Absent tables, fields or joins are never errors, they are changelog entries
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from .changelog import Entry


class SchemaError(Exception):
    """Base class for schema errors."""


class SchemaKeyMismatchError(SchemaError):
    """Raised when a schema maps a table under a key other than its name.

    Attributes:
        table_key: The key the table is stored under
        table_name: The name the table declares
    """

    def __init__(self, table_key: str, table_name: str):
        self.table_key = table_key
        self.table_name = table_name
        super().__init__(
            f"map key and table name do not match for table {table_name!r} "
            f"(stored under key {table_key!r})"
        )


class SchemaFrozenError(SchemaError):
    """Raised when attempting to modify a frozen schema."""
    pass


class DuplicateTableError(SchemaError):
    """Raised when a table name is registered twice in one schema."""
    pass


class UnsupportedSchemaFormatError(SchemaError):
    """Raised when a schema file has an extension the loader cannot read."""
    pass


class DestructiveChangeError(SchemaError):
    """Raised when a migration plan drops data and destructive changes are not allowed.

    Attributes:
        entries: The destructive changelog entries
    """

    def __init__(self, entries: List[Entry]):
        self.entries = entries
        messages = [str(e) for e in entries]
        super().__init__(
            f"Migration plan contains {len(entries)} destructive change(s):\n"
            + "\n".join(messages)
        )
