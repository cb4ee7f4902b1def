"""
Bubbly Store - structured storage for release-governance data.

Pipeline resources (importers, translators, releases) produce structured
data that is persisted into a relational store whose shape is declared in
configuration. This package holds the store's schema model and the
migration planner that computes, from two versions of a schema, the
structural changes needed to move the store from one to the other.

Architecture:
    ┌──────────────┐     ┌──────────────┐     ┌──────────────────┐
    │  Old Schema  │────▶│              │     │                  │
    └──────────────┘     │ Schema Diff  │────▶│    Changelog     │
    ┌──────────────┐     │              │     │ (migration plan) │
    │  New Schema  │────▶│              │     │                  │
    └──────────────┘     └──────────────┘     └────────┬─────────┘
                                                       │
                                                       ▼
                                              ┌──────────────────┐
                                              │Migration Executor│
                                              │   (external)     │
                                              └──────────────────┘

Invariants:
    - Planning is pure; nothing here touches a live store
    - A plan is only valid against the exact schema it was computed from
    - Callers serialize plan-and-apply against concurrent schema changes

Version: see _version.py.
"""

from ._version import __version__

__all__ = ["__version__"]
