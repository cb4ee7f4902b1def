"""
Bubbly store test suite.

This package contains:
- unit/: Unit tests for schema types, snapshots, diffing, config and the CLI
"""
