"""Convergence driver.

Runs the stages of a schema deployment in dependency order::

    option sets -> tables -> table relationships -> user relationships

Each stage sweeps its whole input in parse order and returns a
``StageResult``; the driver folds every stage into one
``MigrationResult``.  A failure on one item is recorded against that item
and the stage moves on.  The summary is always produced.

Usage:
    from erd_migrator.deploy.driver import run_migration

    model = load_erd("schema.erd", prefix=settings.prefix)
    with get_client(profile) as client:
        result = run_migration(model, client, settings)
    print(result.format_report())
"""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from erd_migrator.config.models import SchemaSettings
from erd_migrator.dataverse.client import DataverseError
from erd_migrator.deploy.generator import (
    ExistingObject,
    Operation,
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
from erd_migrator.erd.models import MissingPrimaryKeyError, ResolvedRelationship, SchemaModel

if TYPE_CHECKING:
    from erd_migrator.dataverse.base import MetadataClient

logger = logging.getLogger(__name__)

# Per-item failures that do not stop a stage
ITEM_ERRORS = (DataverseError, MissingPrimaryKeyError)


def _converge(
    name: str,
    plan: Callable[[], Operation],
    create: Callable[[Any], str] | None,
) -> ItemResult:
    """Plan one object and create it if missing.

    ``create`` is None in dry-run mode: missing objects are only reported.
    """
    try:
        operation = plan()
        if isinstance(operation, ExistingObject):
            logger.info(f"{operation.name} already exists ({operation.identifier})")
            return ItemResult(
                name=operation.name,
                outcome=ItemOutcome.EXISTING,
                identifier=operation.identifier,
            )
        if create is None:
            return ItemResult(name=operation.name, outcome=ItemOutcome.SKIPPED, note="would create")
        identifier = create(operation.payload)
        logger.info(f"Created {operation.name} ({identifier})")
        return ItemResult(name=operation.name, outcome=ItemOutcome.CREATED, identifier=identifier)
    except ITEM_ERRORS as e:
        logger.error(f"Failed to converge {name}: {e}")
        return ItemResult(name=name, outcome=ItemOutcome.FAILED, error=str(e))


# ------------------------------------------------------------------
# Stages
# ------------------------------------------------------------------


def create_option_sets(
    model: SchemaModel,
    client: "MetadataClient | None",
    settings: SchemaSettings,
    dry_run: bool = False,
) -> StageResult:
    """Converge one global option set per enum."""
    items: list[ItemResult] = []
    for enum in model.enums.values():
        item = _converge(
            enum.name,
            lambda: plan_option_set(client, enum, settings),
            None if dry_run else client.create_option_set,
        )
        items.append(item)

    return StageResult(
        report=CategoryReport(category=ObjectCategory.OPTION_SETS, items=tuple(items)),
        registry=CreatedObjectRegistry(
            option_sets={i.name: i.identifier for i in items if i.identifier is not None}
        ),
    )


def create_tables(
    model: SchemaModel,
    client: "MetadataClient | None",
    settings: SchemaSettings,
    option_set_ids: dict[str, str],
    dry_run: bool = False,
) -> StageResult:
    """Converge every non-reserved table.

    Reserved tables are reported as skipped.  A table without a primary
    key fails on its own; the stage carries on with the next table.
    """
    items: list[ItemResult] = []
    for table in model.tables.values():
        if table.is_reserved:
            items.append(
                ItemResult(
                    name=table.schema_name,
                    outcome=ItemOutcome.SKIPPED,
                    note="extends existing table",
                )
            )
            continue
        item = _converge(
            table.schema_name,
            lambda: plan_table(client, table, settings, option_set_ids),
            None if dry_run else client.create_table,
        )
        items.append(item)

    return StageResult(
        report=CategoryReport(category=ObjectCategory.TABLES, items=tuple(items)),
        registry=CreatedObjectRegistry(
            tables={i.name: i.identifier for i in items if i.identifier is not None}
        ),
    )


def _create_relationships(
    relationships: tuple[ResolvedRelationship, ...],
    client: "MetadataClient | None",
    settings: SchemaSettings,
    dry_run: bool,
) -> StageResult:
    items: list[ItemResult] = []
    seen: set[str] = set()
    for relationship in relationships:
        if relationship.schema_name in seen:
            # A second declaration under the same name would only find the first one
            logger.error(f"Relationship name {relationship.schema_name} declared twice")
            items.append(
                ItemResult(
                    name=relationship.schema_name,
                    outcome=ItemOutcome.FAILED,
                    error=(
                        f"Lookup {relationship.lookup_display_name}: relationship name "
                        f"already used by another declaration"
                    ),
                )
            )
            continue
        seen.add(relationship.schema_name)
        item = _converge(
            relationship.schema_name,
            lambda: plan_relationship(client, relationship, settings),
            None if dry_run else client.create_relationship,
        )
        items.append(item)

    return StageResult(
        report=CategoryReport(category=ObjectCategory.RELATIONSHIPS, items=tuple(items)),
        registry=CreatedObjectRegistry(
            relationships={i.name: i.identifier for i in items if i.identifier is not None}
        ),
    )


def create_table_relationships(
    model: SchemaModel,
    client: "MetadataClient | None",
    settings: SchemaSettings,
    dry_run: bool = False,
) -> StageResult:
    """Converge every resolved table-to-table relationship."""
    return _create_relationships(model.resolved_relationships, client, settings, dry_run)


def create_user_relationships(
    model: SchemaModel,
    client: "MetadataClient | None",
    settings: SchemaSettings,
    dry_run: bool = False,
) -> StageResult:
    """Converge every ``Person`` field's system-user relationship."""
    return _create_relationships(model.user_relationships, client, settings, dry_run)


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


def run_migration(
    model: SchemaModel,
    client: "MetadataClient | None",
    settings: SchemaSettings,
    dry_run: bool = False,
) -> MigrationResult:
    """Converge the remote schema towards *model*.

    Args:
        model: Parsed schema from ``parse_erd()``/``load_erd()``.
        client: Metadata client.  May be None only with ``dry_run``, in
            which case no existence checks are made either.
        settings: Naming and encoding settings (must match the prefix the
            model was parsed with).
        dry_run: If True, only report what would be created.

    Returns:
        ``MigrationResult`` with per-item outcomes, counts and the
        registry of remote identifiers.

    Raises:
        ValueError: If *client* is None outside dry-run mode.
    """
    if client is None and not dry_run:
        raise ValueError("A metadata client is required unless dry_run=True")

    result = MigrationResult(diagnostics=model.diagnostics, dry_run=dry_run)

    logger.info(f"Converging {len(model.enums)} option sets")
    result = result.with_stage(create_option_sets(model, client, settings, dry_run))

    logger.info(f"Converging {len(model.creatable_tables)} tables")
    result = result.with_stage(
        create_tables(model, client, settings, result.registry.option_sets, dry_run)
    )

    logger.info(f"Converging {len(model.resolved_relationships)} table relationships")
    result = result.with_stage(create_table_relationships(model, client, settings, dry_run))

    logger.info(f"Converging {len(model.user_relationships)} user relationships")
    result = result.with_stage(create_user_relationships(model, client, settings, dry_run))

    return result
