"""
Schema CLI tool for the Bubbly store.

This tool plans and inspects store migrations:
- diff: Show the changelog between two schema files
- snapshot: Export a schema file as a fingerprinted lock file
- fingerprint: Print the fingerprint of a schema file
- validate: Check a schema file for consistency

Usage:
    bubbly-schema diff --old schema.lock.json --new release.yaml
    bubbly-schema snapshot release.yaml -o schema.lock.json
    bubbly-schema fingerprint release.yaml
    bubbly-schema validate release.yaml

Invariants:
    - diff exits 1 when --fail-on-destructive rejects the plan
    - diff exits 2 when a schema cannot be loaded or is malformed
    - Output of --format json is stable for CI parsing

How to change safely:
    - Add new commands, don't modify existing ones
    - Keep exit codes stable, pipelines branch on them
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

import yaml

from ..config import StoreConfig, setup_logging
from ..schema import (
    Changelog,
    DestructiveChangeError,
    Schema,
    SchemaError,
    plan_migration,
)

logger = logging.getLogger(__name__)

# A schema file that cannot be read or is malformed
LOAD_ERRORS = (SchemaError, ValueError, KeyError, OSError, yaml.YAMLError)


class SchemaCLI:
    """CLI tool for schema management.

    Example:
        >>> cli = SchemaCLI()
        >>> changelog = cli.diff("schema.lock.json", "release.yaml")
        >>> print(cli.render_text(changelog))
    """

    def __init__(self, config: Optional[StoreConfig] = None) -> None:
        self.config = config or StoreConfig()

    def load(self, path: str) -> Schema:
        """Load a schema file, adding internal tables when configured."""
        schema = Schema.from_file(path)
        if self.config.diff.include_internal_tables:
            schema = schema.with_internal_tables()
        return schema

    def diff(self, old_path: str, new_path: str) -> Changelog:
        """Compute the changelog between two schema files.

        Raises:
            SchemaKeyMismatchError: If either schema is malformed
            DestructiveChangeError: If destructive changes are not allowed
        """
        old_schema = self.load(old_path)
        new_schema = self.load(new_path)
        return plan_migration(
            old_schema,
            new_schema,
            allow_destructive=self.config.diff.allow_destructive,
        )

    def snapshot(self, path: str) -> str:
        """Export a schema file as a fingerprinted JSON lock file."""
        schema = self.load(path)
        fingerprint = schema.freeze()
        output = {
            "version": 1,
            "fingerprint": fingerprint,
            "schema": schema.to_dict(),
        }
        return json.dumps(output, indent=2, sort_keys=True)

    def fingerprint(self, path: str) -> str:
        """Fingerprint of a schema file."""
        return self.load(path).freeze()

    def validate(self, path: str) -> list[str]:
        """Validate a schema file for internal consistency.

        Returns:
            List of validation errors
        """
        try:
            schema = self.load(path)
        except LOAD_ERRORS as e:
            return [f"Failed to load {path}: {e}"]
        return schema.validate_all()

    @staticmethod
    def render_text(changelog: Changelog) -> str:
        """Render a changelog for humans."""
        if not changelog:
            return "No changes detected"
        lines = [f"Found {len(changelog)} change(s):"]
        for entry in changelog:
            marker = "!" if entry.is_destructive else " "
            lines.append(f"  {marker} {entry}")
        return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bubbly-schema", description="Bubbly store schema migration planner"
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # diff command
    diff_parser = subparsers.add_parser("diff", help="Show changes between two schemas")
    diff_parser.add_argument("--old", required=True, help="Path to the current schema")
    diff_parser.add_argument("--new", required=True, help="Path to the new schema")
    diff_parser.add_argument(
        "--format", choices=["text", "json"], default="text", help="Output format"
    )
    diff_parser.add_argument(
        "--fail-on-destructive",
        action="store_true",
        help="Exit 1 if the plan deletes or retypes anything",
    )
    diff_parser.add_argument(
        "--with-internal",
        action="store_true",
        help="Include the store's internal tables in both schemas",
    )

    # snapshot command
    snapshot_parser = subparsers.add_parser("snapshot", help="Export schema lock file")
    snapshot_parser.add_argument("file", help="Schema file (.json, .yaml, .yml)")
    snapshot_parser.add_argument("--output", "-o", help="Output file (default: stdout)")

    # fingerprint command
    fingerprint_parser = subparsers.add_parser("fingerprint", help="Print schema fingerprint")
    fingerprint_parser.add_argument("file", help="Schema file (.json, .yaml, .yml)")

    # validate command
    validate_parser = subparsers.add_parser("validate", help="Validate schema for consistency")
    validate_parser.add_argument("file", help="Schema file (.json, .yaml, .yml)")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for schema tool."""
    args = build_parser().parse_args(argv)

    try:
        config = StoreConfig.from_env()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    if args.log_level:
        config = dataclasses.replace(
            config,
            observability=dataclasses.replace(config.observability, log_level=args.log_level),
        )
    if getattr(args, "fail_on_destructive", False):
        config = dataclasses.replace(
            config, diff=dataclasses.replace(config.diff, allow_destructive=False)
        )
    if getattr(args, "with_internal", False):
        config = dataclasses.replace(
            config, diff=dataclasses.replace(config.diff, include_internal_tables=True)
        )
    try:
        config.validate()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging(config)
    config.log_config()
    cli = SchemaCLI(config)

    if args.command == "diff":
        try:
            changelog = cli.diff(args.old, args.new)
        except DestructiveChangeError as e:
            print(f"Migration plan REJECTED: {e}", file=sys.stderr)
            sys.exit(1)
        except LOAD_ERRORS as e:
            print(f"Failed to diff schemas: {e}", file=sys.stderr)
            sys.exit(2)

        if args.format == "json":
            print(changelog.to_json())
        else:
            print(cli.render_text(changelog))
        sys.exit(0)

    elif args.command == "snapshot":
        output = _run_or_exit(cli.snapshot, args.file)
        if args.output:
            Path(args.output).write_text(output + "\n", encoding="utf-8")
            print(f"Schema exported to {args.output}", file=sys.stderr)
        else:
            print(output)

    elif args.command == "fingerprint":
        print(_run_or_exit(cli.fingerprint, args.file))

    elif args.command == "validate":
        errors = cli.validate(args.file)

        if not errors:
            print("Schema is valid")
            sys.exit(0)
        else:
            print(f"Schema validation failed with {len(errors)} error(s):")
            for error in errors:
                print(f"  - {error}")
            sys.exit(1)


def _run_or_exit(func, path: str) -> Any:
    try:
        return func(path)
    except LOAD_ERRORS as e:
        print(f"Failed to load {path}: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
