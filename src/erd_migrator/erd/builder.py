"""Schema model builder.

Runs the parse pipeline as a sequence of stages, each taking the previous
stage's output and returning a new value::

    text -> RawErd -> enums -> interpreted tables
         -> tables with injected lookups -> resolved relationships
         -> SchemaModel

Usage:
    from erd_migrator.erd.builder import parse_erd, load_erd

    model = parse_erd(text, prefix="new_")
    model = load_erd("schema.erd", prefix="new_", strict=True)
"""

import logging
from pathlib import Path

from erd_migrator.erd.fields import interpret_table
from erd_migrator.erd.grammar import RawErd, extract_blocks
from erd_migrator.erd.models import (
    EnumDefinition,
    ErdSyntaxError,
    ParseDiagnostic,
    RelationshipDeclaration,
    SchemaModel,
    Severity,
    TableDefinition,
)
from erd_migrator.erd.naming import NamingRules
from erd_migrator.erd.relationships import (
    inject_lookups,
    resolve_relationships,
    resolve_user_references,
)

logger = logging.getLogger(__name__)


def build_enums(raw: RawErd) -> tuple[dict[str, EnumDefinition], list[ParseDiagnostic]]:
    """Build enum definitions; a repeated enum name replaces the earlier one."""
    enums: dict[str, EnumDefinition] = {}
    diagnostics: list[ParseDiagnostic] = []
    for block in raw.enums:
        if block.name in enums:
            diagnostics.append(
                ParseDiagnostic(
                    line=block.line,
                    message=f"Enum '{block.name}' redeclared; earlier definition is overridden",
                    severity=Severity.WARNING,
                )
            )
        enums[block.name] = EnumDefinition(name=block.name, values=block.values)
    return enums, diagnostics


def build_tables(
    raw: RawErd,
    enums: dict[str, EnumDefinition],
    naming: NamingRules,
) -> tuple[dict[str, TableDefinition], list[ParseDiagnostic]]:
    """Interpret every table block against the known enums."""
    tables: dict[str, TableDefinition] = {}
    diagnostics: list[ParseDiagnostic] = []
    for block in raw.tables:
        table, table_diagnostics = interpret_table(block, enums, naming)
        diagnostics.extend(table_diagnostics)
        if table.name in tables:
            diagnostics.append(
                ParseDiagnostic(
                    line=block.line,
                    message=f"Table '{table.name}' redeclared; earlier definition is overridden",
                    severity=Severity.WARNING,
                )
            )
        tables[table.name] = table
    return tables, diagnostics


def build_declarations(raw: RawErd) -> tuple[RelationshipDeclaration, ...]:
    return tuple(
        RelationshipDeclaration(
            from_table=ref.from_table,
            from_field=ref.from_field,
            direction=ref.direction,
            to_table=ref.to_table,
            to_field=ref.to_field,
            line=ref.line,
        )
        for ref in raw.refs
    )


def parse_erd(
    text: str,
    prefix: str = "new_",
    reserved_marker: str = "existing_",
    strict: bool = False,
) -> SchemaModel:
    """Parse ERD text into a fully resolved ``SchemaModel``.

    Parsing is deterministic: the same text always yields an equal model.

    Args:
        text: Raw ERD source.
        prefix: Namespace prefix for schema names (e.g. ``"new_"``).
        reserved_marker: Table-name prefix marking already-existing tables.
        strict: If True, raise instead of dropping malformed statements.

    Returns:
        ``SchemaModel`` with enums, tables, declarations, resolved
        relationships and every diagnostic collected along the way.

    Raises:
        ErdSyntaxError: In strict mode, if any error-level diagnostic was
            produced.

    Example:
        >>> model = parse_erd('Table Invoice {\\n id GUID [pk]\\n}')
        >>> model.tables["Invoice"].schema_name
        'new_invoice'
    """
    naming = NamingRules(prefix=prefix, reserved_marker=reserved_marker)

    raw = extract_blocks(text)
    diagnostics: list[ParseDiagnostic] = list(raw.diagnostics)

    enums, enum_diagnostics = build_enums(raw)
    diagnostics.extend(enum_diagnostics)

    interpreted, table_diagnostics = build_tables(raw, enums, naming)
    diagnostics.extend(table_diagnostics)

    declarations = build_declarations(raw)
    tables, lookup_diagnostics = inject_lookups(interpreted, declarations)
    diagnostics.extend(lookup_diagnostics)

    resolved, relationship_diagnostics = resolve_relationships(tables, declarations, naming)
    diagnostics.extend(relationship_diagnostics)
    user_relationships = resolve_user_references(tables, naming)

    errors = [d for d in diagnostics if d.severity is Severity.ERROR]
    if strict and errors:
        raise ErdSyntaxError(errors)
    for diagnostic in diagnostics:
        logger.debug(f"ERD {diagnostic.format()}")

    logger.info(
        f"Parsed {len(enums)} enums, {len(tables)} tables, "
        f"{len(resolved)} relationships, {len(user_relationships)} user references"
    )

    return SchemaModel(
        prefix=prefix,
        enums=enums,
        tables=tables,
        relationships=declarations,
        resolved_relationships=resolved,
        user_relationships=user_relationships,
        diagnostics=tuple(diagnostics),
    )


def load_erd(
    path: str | Path,
    prefix: str = "new_",
    reserved_marker: str = "existing_",
    strict: bool = False,
) -> SchemaModel:
    """Read an ERD file and parse it.

    Raises:
        FileNotFoundError: If the file does not exist.
        ErdSyntaxError: In strict mode, on syntax errors.
    """
    erd_path = Path(path)
    if not erd_path.exists():
        raise FileNotFoundError(f"ERD file not found: {erd_path}")
    return parse_erd(
        erd_path.read_text(encoding="utf-8"),
        prefix=prefix,
        reserved_marker=reserved_marker,
        strict=strict,
    )
