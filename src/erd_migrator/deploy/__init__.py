"""Schema deployment: payload generation and convergence.

Provides typed payloads (``OptionSetPayload``, ``TablePayload``,
``RelationshipPayload``), the operation generator (``plan_*`` and
``build_*``), and the convergence driver (``run_migration``).

Usage:
    from erd_migrator.deploy import run_migration, MigrationResult
"""

from erd_migrator.deploy.generator import (
    CreateObject,
    ExistingObject,
    build_option_set_payload,
    build_relationship_payload,
    build_table_payload,
    plan_option_set,
    plan_relationship,
    plan_table,
)
from erd_migrator.deploy.models import (
    CategoryReport,
    CreatedObjectRegistry,
    ItemOutcome,
    ItemResult,
    MigrationResult,
    ObjectCategory,
    StageResult,
)
from erd_migrator.deploy.payloads import OptionSetPayload, RelationshipPayload, TablePayload
from erd_migrator.deploy.driver import run_migration

__all__ = [
    "run_migration",
    "MigrationResult",
    "CategoryReport",
    "CreatedObjectRegistry",
    "ItemOutcome",
    "ItemResult",
    "ObjectCategory",
    "StageResult",
    "CreateObject",
    "ExistingObject",
    "build_option_set_payload",
    "build_table_payload",
    "build_relationship_payload",
    "plan_option_set",
    "plan_table",
    "plan_relationship",
    "OptionSetPayload",
    "TablePayload",
    "RelationshipPayload",
]
