"""Relationship resolution.

Two phases over the interpreted tables:

- ``inject_lookups``: every many-to-one declaration adds a lookup field
  named ``<fromTable>id`` to the many-side table.
- ``resolve_relationships``: every many-to-one declaration whose endpoints
  are both known tables becomes a ``ResolvedRelationship`` with final
  platform-facing names.

``resolve_user_references`` turns every ``Person`` field into a
relationship against the built-in system user table.

Declarations in the inverse direction are kept on the model but produce
nothing here.

Usage:
    tables, diagnostics = inject_lookups(tables, declarations)
    resolved, diagnostics = resolve_relationships(tables, declarations, naming)
    user_refs = resolve_user_references(tables, naming)
"""

from erd_migrator.erd.models import (
    FieldDefinition,
    FieldKind,
    ParseDiagnostic,
    RelationshipDeclaration,
    RelationshipKind,
    ResolvedRelationship,
    Severity,
    TableDefinition,
)
from erd_migrator.erd.naming import NamingRules

SYSTEM_USER_ENTITY = "systemuser"
SYSTEM_USER_KEY = "systemuserid"


def _as_lookup(field: FieldDefinition, declaration: RelationshipDeclaration) -> FieldDefinition:
    return FieldDefinition(
        name=field.name,
        type_token=field.type_token,
        kind=FieldKind.LOOKUP,
        is_required=field.is_required,
        lookup_table=declaration.from_table,
        lookup_field=declaration.from_field,
        line=field.line,
    )


def inject_lookups(
    tables: dict[str, TableDefinition],
    declarations: tuple[RelationshipDeclaration, ...],
) -> tuple[dict[str, TableDefinition], list[ParseDiagnostic]]:
    """Inject a lookup field into the many side of each many-to-one declaration.

    The injected field is named ``<fromTable>id`` (lower-cased) and records
    the referenced table and field.  A field of that name that is already
    declared is taken over as the lookup, keeping its required-ness.  The
    field named on the many side of the ``Ref:`` line, when declared, is
    also reclassified: the relationship owns that column.

    A primary-key field is left as it is and a warning is recorded; the
    table keeps its key and the relationship still gets its own lookup
    column.

    Args:
        tables: Interpreted tables keyed by name.
        declarations: Parsed ``Ref:`` declarations in source order.

    Returns:
        Tuple of (new tables dict, diagnostics).  Input tables are untouched.
    """
    result = dict(tables)
    diagnostics: list[ParseDiagnostic] = []

    for declaration in declarations:
        if not declaration.is_many_to_one:
            continue

        missing = [
            name for name in (declaration.from_table, declaration.to_table)
            if name not in result
        ]
        if missing:
            diagnostics.append(
                ParseDiagnostic(
                    line=declaration.line,
                    message=f"Relationship references unknown table(s): {', '.join(missing)}",
                    severity=Severity.WARNING,
                )
            )
            continue

        many_side = result[declaration.to_table]
        fields = dict(many_side.fields)
        lookup_name = declaration.lookup_field_name

        # Primary keys are never taken over by a relationship
        keys = sorted({
            name for name in (lookup_name, declaration.to_field)
            if name in fields and fields[name].is_primary_key
        })
        for key in keys:
            diagnostics.append(
                ParseDiagnostic(
                    line=declaration.line,
                    message=(
                        f"'{declaration.to_table}.{key}' is the primary key; "
                        f"it is not turned into a lookup"
                    ),
                    severity=Severity.WARNING,
                )
            )

        existing = fields.get(lookup_name)
        if existing is None:
            fields[lookup_name] = FieldDefinition(
                name=lookup_name,
                type_token="Lookup",
                kind=FieldKind.LOOKUP,
                lookup_table=declaration.from_table,
                lookup_field=declaration.from_field,
                line=declaration.line,
            )
        elif not existing.is_primary_key and not (
            existing.is_lookup and existing.lookup_table is not None
        ):
            fields[lookup_name] = _as_lookup(existing, declaration)

        column = fields.get(declaration.to_field)
        if (
            column is not None
            and column.name != lookup_name
            and not column.is_lookup
            and not column.is_primary_key
        ):
            fields[declaration.to_field] = _as_lookup(column, declaration)

        result[declaration.to_table] = many_side.model_copy(update={"fields": fields})

    return result, diagnostics


def resolve_relationships(
    tables: dict[str, TableDefinition],
    declarations: tuple[RelationshipDeclaration, ...],
    naming: NamingRules,
) -> tuple[tuple[ResolvedRelationship, ...], list[ParseDiagnostic]]:
    """Materialize each many-to-one declaration with resolved names.

    Names are marker-aware: a reserved endpoint uses its un-prefixed,
    lower-cased name, any other endpoint the namespace-prefixed one.  The
    lookup column name is the prefixed, lower-cased many-side field name
    followed by the relationship schema name.

    Two declarations between the same pair of tables share a schema name.
    Both stay in the result; a warning names the later one, which the
    deploy driver reports as failed.

    Example:
        ``Ref: "Customer"."id" < "Invoice"."customerid"`` with prefix
        ``new_`` resolves to schema name ``new_Customer_Invoice``,
        referencing ``new_invoice`` and referenced ``new_customer``
        through the lookup column ``new_customeridnew_Customer_Invoice``.

    Returns:
        Tuple of (resolved relationships in declaration order, diagnostics).
    """
    resolved: list[ResolvedRelationship] = []
    diagnostics: list[ParseDiagnostic] = []
    first_line: dict[str, int] = {}

    for declaration in declarations:
        if not declaration.is_many_to_one:
            continue
        if declaration.from_table not in tables or declaration.to_table not in tables:
            continue

        schema_name = naming.relationship_schema_name(
            declaration.from_table, declaration.to_table
        )
        if schema_name in first_line:
            diagnostics.append(
                ParseDiagnostic(
                    line=declaration.line,
                    message=(
                        f"Relationship name '{schema_name}' already used on line "
                        f"{first_line[schema_name]}; this relationship cannot be created"
                    ),
                    severity=Severity.WARNING,
                )
            )
        else:
            first_line[schema_name] = declaration.line

        many_side = tables[declaration.to_table]
        lookup = many_side.fields.get(declaration.lookup_field_name)
        resolved.append(
            ResolvedRelationship(
                kind=RelationshipKind.TABLE,
                schema_name=schema_name,
                referenced_entity=naming.table_logical_name(declaration.from_table),
                referenced_attribute=naming.primary_key_name(declaration.from_table),
                referencing_entity=naming.table_logical_name(declaration.to_table),
                lookup_schema_name=naming.attribute_schema_name(declaration.to_field) + schema_name,
                lookup_display_name=declaration.to_field,
                is_required=lookup.is_required if lookup is not None and lookup.is_lookup else False,
            )
        )

    return tuple(resolved), diagnostics


def resolve_user_references(
    tables: dict[str, TableDefinition],
    naming: NamingRules,
) -> tuple[ResolvedRelationship, ...]:
    """Build one system-user relationship per ``Person`` field."""
    resolved: list[ResolvedRelationship] = []

    for table in tables.values():
        for field in table.fields.values():
            if not field.is_user_reference:
                continue
            resolved.append(
                ResolvedRelationship(
                    kind=RelationshipKind.SYSTEM_USER,
                    schema_name=naming.user_relationship_schema_name(table.name, field.name),
                    referenced_entity=SYSTEM_USER_ENTITY,
                    referenced_attribute=SYSTEM_USER_KEY,
                    referencing_entity=table.schema_name,
                    lookup_schema_name=naming.attribute_schema_name(field.name),
                    lookup_display_name=field.name,
                    is_required=field.is_required,
                )
            )

    return tuple(resolved)
