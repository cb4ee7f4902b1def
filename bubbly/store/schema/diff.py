"""
Schema diffing for the Bubbly store.

This module plans store migrations. Given the schema currently applied to
the store and the schema of a new release, it produces the Changelog of
create/update/delete entries that turns the old structure into the new one.

Matching rules:
    - Tables and sub-tables are matched by name
    - Fields are matched by name within their table
    - Joins are matched by the name of the table they reference
    - Structural equality only short-circuits an unchanged element; it
      never decides identity

Invariants:
    - The differ is a pure function of two snapshots; inputs are never mutated
    - Top-level tables are visited in name order so plans are reproducible
    - A created or deleted table yields one entry, its subtree is implied
    - A key/name mismatch fails the whole call; no partial plan is returned

How to change safely:
    - Renames are delete + create; add a stable identity before changing that
    - Keep entry order stable, plans are reviewed as diffs themselves

Example:
    >>> from bubbly.store.schema.diff import compare_schema
    >>> changelog = compare_schema(current_schema, release_schema)
    >>> for entry in changelog:
    ...     print(entry)
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict

from .changelog import Changelog, DiffAction, ElementType, Entry, TableInfo
from .errors import DestructiveChangeError, SchemaKeyMismatchError
from .registry import Schema
from .types import Field, Join, Table

logger = logging.getLogger(__name__)


def compare_schema(old: Schema, new: Schema) -> Changelog:
    """Compute the changelog that migrates ``old`` into ``new``.

    Args:
        old: The schema currently applied to the store
        new: The schema to migrate to

    Returns:
        Changelog in discovery order

    Raises:
        SchemaKeyMismatchError: If either schema stores a table under a key
            other than its name
    """
    _check_keys(old)
    _check_keys(new)

    changelog = Changelog()
    old_tables = old.tables
    new_tables = new.tables

    for name in sorted(old_tables):
        table1 = old_tables[name]
        table2 = new_tables.get(name)
        if table2 is not None:
            logger.debug(f"Diffing table {name}")
            calculate_diff(table1, table2, changelog)
        else:
            changelog.append(_table_entry(DiffAction.DELETE, table1))

    for name in sorted(new_tables):
        if name not in old_tables:
            changelog.append(_table_entry(DiffAction.CREATE, new_tables[name]))

    if logger.isEnabledFor(logging.DEBUG):
        counts = Counter(e.action.value for e in changelog)
        logger.debug(
            f"Schema diff produced {len(changelog)} entries "
            f"(create={counts['create']}, update={counts['update']}, delete={counts['delete']})"
        )
    return changelog


def calculate_diff(t1: Table, t2: Table, changelog: Changelog) -> None:
    """Append the changes between two versions of the same table.

    Fields, joins and sub-tables are compared in that order, followed by
    the table's own uniqueness flag. Recurses into matched sub-tables.
    """
    compare_fields(t1, t2, changelog)
    compare_joins(t1, t2, changelog)
    compare_tables(t1, t2, changelog)
    if t1.unique != t2.unique:
        changelog.append(Entry(
            action=DiffAction.UPDATE,
            table_info=TableInfo(t2.name, t2.name, ElementType.UNIQUE),
            from_value=t1.unique,
            to_value=t2.unique,
        ))


def compare_fields(t1: Table, t2: Table, changelog: Changelog) -> None:
    """Append field changes between two versions of a table.

    A type change and a uniqueness change on the same field are reported
    as two separate entries.
    """
    new_fields: Dict[str, Field] = {f.name: f for f in t2.fields}

    for field1 in t1.fields:
        field2 = new_fields.get(field1.name)
        if field2 is None:
            changelog.append(Entry(
                action=DiffAction.DELETE,
                table_info=TableInfo(t1.name, field1.name, ElementType.FIELD),
                from_value=field1,
            ))
            continue
        if field1 == field2:
            continue
        if field1.type != field2.type:
            changelog.append(Entry(
                action=DiffAction.UPDATE,
                table_info=TableInfo(t2.name, field2.name, ElementType.FIELD),
                from_value=field1.type,
                to_value=field2.type,
            ))
        if field1.unique != field2.unique:
            changelog.append(Entry(
                action=DiffAction.UPDATE,
                table_info=TableInfo(t2.name, field2.name, ElementType.UNIQUE),
                from_value=field1.unique,
                to_value=field2.unique,
            ))

    old_names = {f.name for f in t1.fields}
    for field2 in t2.fields:
        if field2.name not in old_names:
            changelog.append(Entry(
                action=DiffAction.CREATE,
                table_info=TableInfo(t2.name, field2.name, ElementType.FIELD),
                to_value=field2,
            ))


def compare_joins(t1: Table, t2: Table, changelog: Changelog) -> None:
    """Append join changes between two versions of a table."""
    new_joins: Dict[str, Join] = {j.table: j for j in t2.joins}

    for join1 in t1.joins:
        join2 = new_joins.get(join1.table)
        if join2 is None:
            changelog.append(Entry(
                action=DiffAction.DELETE,
                table_info=TableInfo(t1.name, join1.table, ElementType.JOIN),
                from_value=join1,
            ))
        elif join1.unique != join2.unique:
            changelog.append(Entry(
                action=DiffAction.UPDATE,
                table_info=TableInfo(t2.name, join2.table, ElementType.JOIN),
                from_value=join1.unique,
                to_value=join2.unique,
            ))

    old_targets = {j.table for j in t1.joins}
    for join2 in t2.joins:
        if join2.table not in old_targets:
            changelog.append(Entry(
                action=DiffAction.CREATE,
                table_info=TableInfo(t2.name, join2.table, ElementType.JOIN),
                to_value=join2,
            ))


def compare_tables(t1: Table, t2: Table, changelog: Changelog) -> None:
    """Append sub-table changes between two versions of a table.

    Matched sub-tables are diffed recursively into their own changelog,
    which is then combined into the parent's.
    """
    new_tables: Dict[str, Table] = {t.name: t for t in t2.tables}

    for table1 in t1.tables:
        table2 = new_tables.get(table1.name)
        sub_changelog = Changelog()
        if table2 is not None:
            calculate_diff(table1, table2, sub_changelog)
        else:
            sub_changelog.append(_table_entry(DiffAction.DELETE, table1))
        changelog.combine(sub_changelog)

    old_names = {t.name for t in t1.tables}
    for table2 in t2.tables:
        if table2.name not in old_names:
            changelog.append(_table_entry(DiffAction.CREATE, table2))


def check_destructive_changes(changelog: Changelog) -> None:
    """Fail if the changelog would drop tables, fields, joins or retype fields.

    Raises:
        DestructiveChangeError: If any entry is destructive
    """
    destructive = changelog.destructive()
    if destructive:
        raise DestructiveChangeError(destructive)


def plan_migration(old: Schema, new: Schema, allow_destructive: bool = True) -> Changelog:
    """Diff two schemas and optionally reject destructive plans.

    Args:
        old: Schema currently applied to the store
        new: Schema to migrate to
        allow_destructive: When False, raise instead of returning a plan
            that deletes or retypes anything

    Returns:
        The migration changelog

    Raises:
        SchemaKeyMismatchError: If either schema is malformed
        DestructiveChangeError: If destructive changes are not allowed
    """
    changelog = compare_schema(old, new)
    if not allow_destructive:
        check_destructive_changes(changelog)
    logger.info(
        f"Migration plan has {len(changelog)} change(s), "
        f"{len(changelog.destructive())} destructive"
    )
    return changelog


def _check_keys(schema: Schema) -> None:
    for key, table in schema.items():
        if key != table.name:
            raise SchemaKeyMismatchError(key, table.name)


def _table_entry(action: DiffAction, table: Table) -> Entry:
    info = TableInfo(table.name, table.name, ElementType.TABLE)
    if action == DiffAction.CREATE:
        return Entry(action=action, table_info=info, to_value=table)
    return Entry(action=action, table_info=info, from_value=table)
