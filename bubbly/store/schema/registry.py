"""
Schema snapshots for the Bubbly store.

A Schema is one complete version of the store's structure: a mapping from
table name to Table. The diff engine compares two of them to plan a
migration. It provides:
- Registration of tables by name
- Loading from JSON, YAML or plain dictionaries
- Schema fingerprinting for change detection
- Freeze mechanism so a snapshot cannot change under a running diff

Invariants:
    - A table's key in the mapping equals its name (checked by the differ,
      enforced by register_table)
    - Once frozen, no tables can be registered
    - Fingerprint changes when the schema changes

How to change safely:
    - Build a new Schema per release instead of mutating a frozen one
    - Keep to_dict() sorted by key, it is the fingerprint input

Example:
    >>> from bubbly.store.schema import Schema, Table, Field
    >>> schema = Schema()
    >>> schema.register_table(Table(name="release", fields=(Field("name", "string"),)))
    >>> schema.freeze()
    'sha256:...'
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, ItemsView, Iterator, Mapping, Optional, Union

import yaml

from .errors import DuplicateTableError, SchemaFrozenError, UnsupportedSchemaFormatError
from .types import Field, Join, Table, require_list, require_mapping

logger = logging.getLogger(__name__)

RESOURCE_TABLE_NAME = "_resource"
EVENT_TABLE_NAME = "_event"
SCHEMA_TABLE_NAME = "_schema"

# Tables the store maintains for itself regardless of user configuration.
INTERNAL_TABLES: tuple[Table, ...] = (
    Table(
        name=RESOURCE_TABLE_NAME,
        fields=(
            Field("id", "string", unique=True),
            Field("name", "string"),
            Field("kind", "string"),
            Field("api_version", "string"),
            Field("spec", "string"),
        ),
        unique=True,
    ),
    Table(
        name=EVENT_TABLE_NAME,
        fields=(
            Field("status", "string"),
            Field("time", "string"),
            Field("error", "string"),
        ),
        joins=(Join(RESOURCE_TABLE_NAME),),
    ),
    Table(
        name=SCHEMA_TABLE_NAME,
        fields=(Field("tables", "string"),),
    ),
)


class Schema:
    """A name-keyed collection of tables describing one store version.

    Thread-safety:
        - Registration is thread-safe (uses internal lock)
        - Reads never lock; diffing a frozen schema is safe from any thread

    Attributes:
        tables: Mapping from table key to Table
        frozen: Whether the schema is frozen (immutable)
        fingerprint: SHA-256 hash of the schema (computed on freeze)

    Example:
        >>> schema = Schema.from_tables([release, project])
        >>> schema.get_table("release")
        Table(name='release', ...)
    """

    def __init__(self, tables: Optional[Mapping[str, Table]] = None) -> None:
        """Create a schema.

        Args:
            tables: Optional raw mapping of key to table. Keys are taken
                as given; a key that differs from its table's name is
                reported by the differ, not here.
        """
        self._tables: Dict[str, Table] = dict(tables or {})
        self._frozen = False
        self._fingerprint: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def tables(self) -> Mapping[str, Table]:
        """Read-only view of the table mapping."""
        return dict(self._tables)

    @property
    def frozen(self) -> bool:
        """Whether the schema is frozen."""
        return self._frozen

    @property
    def fingerprint(self) -> Optional[str]:
        """Schema fingerprint (available after freeze)."""
        return self._fingerprint

    def __len__(self) -> int:
        return len(self._tables)

    def __contains__(self, name: object) -> bool:
        return name in self._tables

    def __iter__(self) -> Iterator[str]:
        return iter(self._tables)

    def items(self) -> ItemsView[str, Table]:
        """(key, table) pairs in registration order."""
        return self._tables.items()

    def register_table(self, table: Table) -> None:
        """Register a table under its own name.

        Args:
            table: The table to register

        Raises:
            SchemaFrozenError: If the schema is frozen
            DuplicateTableError: If a table with the same name exists
        """
        with self._lock:
            if self._frozen:
                raise SchemaFrozenError(
                    f"Cannot register table '{table.name}': schema is frozen"
                )

            if table.name in self._tables:
                raise DuplicateTableError(f"Table '{table.name}' already registered")

            self._tables[table.name] = table
            logger.debug(f"Registered table: {table.name}")

    def get_table(self, name: str) -> Optional[Table]:
        """Get a top-level table by name."""
        return self._tables.get(name)

    def freeze(self) -> str:
        """Freeze the schema and compute its fingerprint.

        Returns:
            Schema fingerprint string

        Raises:
            SchemaFrozenError: If already frozen
        """
        with self._lock:
            if self._frozen:
                raise SchemaFrozenError("Schema is already frozen")

            self._fingerprint = generate_fingerprint(self)
            self._frozen = True
            logger.info(
                f"Schema frozen with {len(self._tables)} tables, "
                f"fingerprint={self._fingerprint}"
            )
            return self._fingerprint

    def validate_all(self) -> list[str]:
        """Validate all tables for consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        for key, table in self._tables.items():
            if key != table.name:
                errors.append(
                    f"Table '{table.name}' is stored under mismatched key '{key}'"
                )

        # Joins may target any table in the schema, nested ones included
        known = {t.name for table in self._tables.values() for t in table.walk()}
        for table in self._tables.values():
            for t in table.walk():
                for join in t.joins:
                    if join.table not in known:
                        errors.append(
                            f"Join in table '{t.name}' references unknown table '{join.table}'"
                        )

        return errors

    def with_internal_tables(self) -> Schema:
        """Return a new schema holding these tables plus the store's internal tables.

        Internal tables already present with their exact definition (as in a
        snapshot taken with internal tables) are kept as they are.

        Raises:
            DuplicateTableError: If a user table uses an internal table name
        """
        schema = Schema(self._tables)
        for table in INTERNAL_TABLES:
            if schema.get_table(table.name) == table:
                continue
            schema.register_table(table)
        return schema

    def to_dict(self) -> dict:
        """Convert schema to dictionary representation.

        Returns:
            Dictionary with a 'tables' list sorted by key for determinism.
            Keys that differ from the table name are preserved under 'key'.
        """
        tables = []
        for key in sorted(self._tables):
            entry = self._tables[key].to_dict()
            if key != self._tables[key].name:
                entry["key"] = key
            tables.append(entry)
        return {"tables": tables}

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Convert schema to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    @classmethod
    def from_tables(cls, tables: Iterable[Table]) -> Schema:
        """Create a schema by registering each table under its name."""
        schema = cls()
        for table in tables:
            schema.register_table(table)
        return schema

    @classmethod
    def from_dict(cls, data: dict) -> Schema:
        """Create schema from dictionary representation.

        Accepts both the raw form ({"tables": [...]}) and the snapshot
        form written by the schema CLI ({"version": 1, "schema": {...}}).

        Args:
            data: Dictionary representation

        Returns:
            New Schema (not frozen)
        """
        data = require_mapping(data, "Schema document")
        if "schema" in data:
            data = require_mapping(data["schema"], "Snapshot schema")
        tables: Dict[str, Table] = {}
        for table_data in require_list(data.get("tables"), "Schema tables"):
            table = Table.from_dict(table_data)
            key = table_data.get("key", table.name)
            if not isinstance(key, str):
                raise ValueError(f"Key of table '{table.name}' must be a string, got {key!r}")
            if key in tables:
                raise DuplicateTableError(f"Table '{key}' defined more than once")
            tables[key] = table
        return cls(tables)

    @classmethod
    def from_json(cls, json_str: str) -> Schema:
        """Create schema from JSON string."""
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def from_yaml(cls, yaml_str: str) -> Schema:
        """Create schema from YAML string. An empty document is an empty schema."""
        return cls.from_dict(yaml.safe_load(yaml_str) or {})

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> Schema:
        """Load a schema from a .json, .yaml or .yml file.

        Raises:
            UnsupportedSchemaFormatError: For any other extension
        """
        path = Path(path)
        suffix = path.suffix.lower()
        text = path.read_text(encoding="utf-8")
        if suffix == ".json":
            schema = cls.from_json(text)
        elif suffix in (".yaml", ".yml"):
            schema = cls.from_yaml(text)
        else:
            raise UnsupportedSchemaFormatError(
                f"Unsupported schema file format '{suffix}' for {path}. "
                "Use .json, .yaml or .yml"
            )
        logger.debug(f"Loaded {len(schema)} tables from {path}")
        return schema


def generate_fingerprint(schema: Schema) -> str:
    """Generate a schema fingerprint.

    The fingerprint is a SHA-256 hash of the canonical schema
    representation. It changes when the schema changes.

    Returns:
        Fingerprint string in format 'sha256:<hash>'
    """
    canonical = json.dumps(schema.to_dict(), sort_keys=True, separators=(',', ':'))
    hash_bytes = hashlib.sha256(canonical.encode('utf-8')).hexdigest()
    return f"sha256:{hash_bytes}"
