"""
Core type definitions for the Bubbly store schema.

This module defines the structural model the store is built from:
- Field: A named, typed column of a table
- Join: A reference from one table to another
- Table: A named unit with fields, joins and nested sub-tables

Invariants:
    - Names are the identity of every element; there are no hidden IDs
    - Field names, join targets and sub-table names are unique among siblings
    - Field types are opaque descriptors, compared for equality only
    - All values are immutable once constructed

How to change safely:
    - A renamed element is a different element (delete + create on diff)
    - Keep to_dict() output stable, it feeds the schema fingerprint

Example:
    >>> from bubbly.store.schema.types import Table, Field, Join
    >>> release = Table(
    ...     name="release",
    ...     fields=(Field("name", "string", unique=True), Field("version", "string")),
    ...     joins=(Join("project"),),
    ... )
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Any, Iterator


def require_mapping(data: Any, what: str) -> dict[str, Any]:
    """Return data if it is a mapping, otherwise raise ValueError naming what it should be."""
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be a mapping, got {type(data).__name__}")
    return data


def require_list(data: Any, what: str) -> list[Any]:
    """Return data as a list; None reads as empty."""
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"{what} must be a list, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class Field:
    """A single field (column) of a table.

    Attributes:
        name: Identity of the field within its table
        type: Type descriptor, e.g. "string", "number", "bool", "list(string)"
        unique: Whether values of this field must be unique
    """

    name: str
    type: str
    unique: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise ValueError(f"Field name must be a string, got {self.name!r}")
        if not self.name:
            raise ValueError("Field name cannot be empty")
        if not isinstance(self.type, str):
            raise ValueError(f"Field '{self.name}' type must be a string, got {self.type!r}")
        if not self.type:
            raise ValueError(f"Field '{self.name}' must declare a type")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation for serialization."""
        result: dict[str, Any] = {"name": self.name, "type": self.type}
        if self.unique:
            result["unique"] = True
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Field:
        """Create from dictionary representation."""
        data = require_mapping(data, "Field")
        return cls(
            name=data["name"],
            type=data["type"],
            unique=data.get("unique", False),
        )


@dataclass(frozen=True)
class Join:
    """A reference from the owning table to another table.

    Attributes:
        table: Name of the referenced table (identity of the join)
        unique: True for one-to-one, False for one-to-many
    """

    table: str
    unique: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.table, str):
            raise ValueError(f"Join target must be a table name, got {self.table!r}")
        if not self.table:
            raise ValueError("Join must reference a table")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation for serialization."""
        result: dict[str, Any] = {"table": self.table}
        if self.unique:
            result["unique"] = True
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Join:
        """Create from dictionary representation."""
        data = require_mapping(data, "Join")
        return cls(table=data["table"], unique=data.get("unique", False))


@dataclass(frozen=True)
class Table:
    """A structural unit of the store.

    Tables own their fields, their joins and any nested sub-tables. A
    sub-table has the same shape as a top-level table and is owned by its
    parent: dropping the parent drops the whole subtree.

    Attributes:
        name: Identity of the table among its siblings
        fields: Ordered field definitions
        joins: Ordered joins to other tables
        tables: Ordered nested sub-tables
        unique: Whether rows of the table must be unique

    Invariants:
        - Field names are unique within the table
        - At most one join per target table
        - Sub-table names are unique within the table

    Example:
        >>> project = Table(
        ...     name="project",
        ...     fields=(Field("name", "string", unique=True),),
        ...     tables=(Table(name="repo", fields=(Field("url", "string"),)),),
        ... )
    """

    name: str
    fields: tuple[Field, ...] = dataclass_field(default_factory=tuple)
    joins: tuple[Join, ...] = dataclass_field(default_factory=tuple)
    tables: tuple[Table, ...] = dataclass_field(default_factory=tuple)
    unique: bool = False

    def __post_init__(self) -> None:
        """Validate table definition."""
        if not isinstance(self.name, str):
            raise ValueError(f"Table name must be a string, got {self.name!r}")
        if not self.name:
            raise ValueError("Table name cannot be empty")

        field_names = [f.name for f in self.fields]
        if len(field_names) != len(set(field_names)):
            raise ValueError(f"Duplicate field name in table '{self.name}'")

        join_targets = [j.table for j in self.joins]
        if len(join_targets) != len(set(join_targets)):
            raise ValueError(f"Duplicate join target in table '{self.name}'")

        table_names = [t.name for t in self.tables]
        if len(table_names) != len(set(table_names)):
            raise ValueError(f"Duplicate sub-table name in table '{self.name}'")

    def get_field(self, name: str) -> Field | None:
        """Get a field by name."""
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def get_join(self, table: str) -> Join | None:
        """Get the join to the given target table."""
        for j in self.joins:
            if j.table == table:
                return j
        return None

    def get_table(self, name: str) -> Table | None:
        """Get a nested sub-table by name."""
        for t in self.tables:
            if t.name == name:
                return t
        return None

    def walk(self) -> Iterator[Table]:
        """Yield this table and every nested sub-table, depth first."""
        yield self
        for t in self.tables:
            yield from t.walk()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        result: dict[str, Any] = {"name": self.name}
        if self.fields:
            result["fields"] = [f.to_dict() for f in self.fields]
        if self.joins:
            result["joins"] = [j.to_dict() for j in self.joins]
        if self.tables:
            result["tables"] = [t.to_dict() for t in self.tables]
        if self.unique:
            result["unique"] = True
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Table:
        """Create from dictionary representation."""
        data = require_mapping(data, "Table")
        name = data["name"]
        fields = require_list(data.get("fields"), f"Fields of table '{name}'")
        joins = require_list(data.get("joins"), f"Joins of table '{name}'")
        tables = require_list(data.get("tables"), f"Sub-tables of table '{name}'")
        return cls(
            name=name,
            fields=tuple(Field.from_dict(f) for f in fields),
            joins=tuple(Join.from_dict(j) for j in joins),
            tables=tuple(cls.from_dict(t) for t in tables),
            unique=data.get("unique", False),
        )
