"""
Changelog types produced by the schema differ.

A Changelog is the migration plan: an ordered list of entries, each one
create/update/delete of a single table, field, join or uniqueness flag.
The migration executor reads it in order.

Invariants:
    - Order is discovery order of the diff traversal, never re-sorted
    - Entries are only appended or combined, never removed or merged
    - from_value is None for create, to_value is None for delete

How to change safely:
    - Keep the string values of DiffAction and ElementType stable, the
      executor and the JSON output depend on them
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, List, Optional, Union, overload

from .types import Field, Join, Table


class DiffAction(Enum):
    """What happens to an element."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ElementType(Enum):
    """Kind of element an entry targets."""

    TABLE = "table"
    FIELD = "field"
    JOIN = "join"
    UNIQUE = "unique"


@dataclass(frozen=True)
class TableInfo:
    """Locates the element an entry changes.

    Attributes:
        table_name: Table that owns the element (the table itself for table entries)
        element_name: Which element: field name, join target or table name
        element_type: Kind of element
    """

    table_name: str
    element_name: str
    element_type: ElementType


@dataclass(frozen=True)
class Entry:
    """One atomic structural change.

    Attributes:
        action: create, update or delete
        table_info: Where the change applies
        from_value: Prior value (None for create)
        to_value: New value (None for delete)
    """

    action: DiffAction
    table_info: TableInfo
    from_value: Optional[Any] = None
    to_value: Optional[Any] = None

    @property
    def element_type(self) -> ElementType:
        return self.table_info.element_type

    @property
    def is_destructive(self) -> bool:
        """Whether applying this entry can lose stored data.

        Deletions drop data; changing a field's type may not convert
        existing values.
        """
        if self.action == DiffAction.DELETE:
            return True
        return self.action == DiffAction.UPDATE and self.element_type == ElementType.FIELD

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "action": self.action.value,
            "table_name": self.table_info.table_name,
            "element_name": self.table_info.element_name,
            "element_type": self.table_info.element_type.value,
            "from": _value_to_dict(self.from_value),
            "to": _value_to_dict(self.to_value),
        }

    def __str__(self) -> str:
        info = self.table_info
        text = f"{self.action.value} {info.element_type.value} {info.table_name}.{info.element_name}"
        if self.action == DiffAction.UPDATE:
            text += f": {self.from_value!r} -> {self.to_value!r}"
        return text


def _value_to_dict(value: Any) -> Any:
    if isinstance(value, (Field, Join, Table)):
        return value.to_dict()
    return value


class Changelog:
    """Ordered, append-only list of entries.

    Example:
        >>> changelog = Changelog()
        >>> changelog.append(entry)
        >>> changelog.combine(sub_changelog)
        >>> [str(e) for e in changelog]
    """

    def __init__(self, entries: Optional[Iterable[Entry]] = None) -> None:
        self._entries: List[Entry] = list(entries or [])

    def append(self, entry: Entry) -> None:
        """Append one entry."""
        self._entries.append(entry)

    def combine(self, other: Changelog) -> None:
        """Append every entry of another changelog, keeping its order."""
        self._entries.extend(other._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    @overload
    def __getitem__(self, index: int) -> Entry: ...

    @overload
    def __getitem__(self, index: slice) -> List[Entry]: ...

    def __getitem__(self, index: Union[int, slice]) -> Union[Entry, List[Entry]]:
        return self._entries[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Changelog):
            return self._entries == other._entries
        if isinstance(other, list):
            return self._entries == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"Changelog({self._entries!r})"

    def by_action(self, action: DiffAction) -> List[Entry]:
        """Entries with the given action, in order."""
        return [e for e in self._entries if e.action == action]

    def by_element_type(self, element_type: ElementType) -> List[Entry]:
        """Entries targeting the given element kind, in order."""
        return [e for e in self._entries if e.element_type == element_type]

    def for_table(self, table_name: str) -> List[Entry]:
        """Entries whose owning table is table_name, in order."""
        return [e for e in self._entries if e.table_info.table_name == table_name]

    def destructive(self) -> List[Entry]:
        """Entries that can lose stored data."""
        return [e for e in self._entries if e.is_destructive]

    def to_list(self) -> List[dict[str, Any]]:
        """Convert to a list of dictionaries."""
        return [e.to_dict() for e in self._entries]

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_list(), indent=indent)
