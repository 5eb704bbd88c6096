"""Field interpretation.

Decomposes a table body line into name, type token and annotation text,
classifies the field and maps free-text types to attribute types.

Classification precedence:
1. primary-key marker in the annotation -> primary key
2. type token names a known enum        -> enum-typed
3. type token ``Lookup``                -> lookup placeholder
4. type token ``Person``                -> user reference
5. anything else                        -> scalar (type table lookup)

Required-ness (``not null``) is recorded independently of the kind.

Usage:
    from erd_migrator.erd.fields import interpret_field_line

    field = interpret_field_line("total Decimal [not null]", enums={})
    field.attribute_type   # AttributeType.DECIMAL
    field.is_required      # True
"""

import logging
import re

from erd_migrator.erd.grammar import RawTableBlock
from erd_migrator.erd.models import (
    AttributeType,
    EnumDefinition,
    FieldDefinition,
    FieldKind,
    ParseDiagnostic,
    Severity,
    TableDefinition,
)
from erd_migrator.erd.naming import NamingRules

logger = logging.getLogger(__name__)

LOOKUP_TYPE = "Lookup"
PERSON_TYPE = "Person"

_PRIMARY_KEY_MARKER = re.compile(r"\b(?:pk|primary\s+key)\b", re.IGNORECASE)
_REQUIRED_MARKER = re.compile(r"\bnot\s+null\b", re.IGNORECASE)
_TYPE_ARGS = re.compile(r"^(?P<base>[\w.]+)\s*(?:\((?P<args>[^)]*)\))?$")

# Free-text type (lower-cased, without arguments) -> attribute type
TYPE_TABLE: dict[str, AttributeType] = {
    "guid": AttributeType.IDENTIFIER,
    "uuid": AttributeType.IDENTIFIER,
    "uniqueidentifier": AttributeType.IDENTIFIER,
    "string": AttributeType.STRING,
    "varchar": AttributeType.STRING,
    "nvarchar": AttributeType.STRING,
    "char": AttributeType.STRING,
    "nchar": AttributeType.STRING,
    "text": AttributeType.MEMO,
    "ntext": AttributeType.MEMO,
    "memo": AttributeType.MEMO,
    "longtext": AttributeType.MEMO,
    "int": AttributeType.INTEGER,
    "integer": AttributeType.INTEGER,
    "bigint": AttributeType.INTEGER,
    "smallint": AttributeType.INTEGER,
    "tinyint": AttributeType.INTEGER,
    "decimal": AttributeType.DECIMAL,
    "numeric": AttributeType.DECIMAL,
    "float": AttributeType.DECIMAL,
    "double": AttributeType.DECIMAL,
    "real": AttributeType.DECIMAL,
    "money": AttributeType.MONEY,
    "currency": AttributeType.MONEY,
    "bool": AttributeType.BOOLEAN,
    "boolean": AttributeType.BOOLEAN,
    "bit": AttributeType.BOOLEAN,
    "date": AttributeType.DATE,
    "datetime": AttributeType.DATETIME,
    "datetime2": AttributeType.DATETIME,
    "timestamp": AttributeType.DATETIME,
}


def map_type(type_token: str) -> tuple[AttributeType, int | None]:
    """Map a free-text type to an attribute type and optional length.

    Matching is case-insensitive; unknown types default to short text.

    Example:
        >>> map_type("VARCHAR(255)")
        (<AttributeType.STRING: 'string'>, 255)
        >>> map_type("Blob")
        (<AttributeType.STRING: 'string'>, None)
    """
    match = _TYPE_ARGS.match(type_token.strip())
    if match is None:
        return AttributeType.STRING, None

    attribute_type = TYPE_TABLE.get(match.group("base").lower(), AttributeType.STRING)
    max_length = None
    args = match.group("args")
    if args and attribute_type in (AttributeType.STRING, AttributeType.IDENTIFIER):
        first = args.split(",")[0].strip()
        if first.isdigit():
            max_length = int(first)
    return attribute_type, max_length


def split_field_line(text: str) -> tuple[str, str, str] | None:
    """Split a body line into (name, type token, annotation text).

    A type with arguments that contain spaces (``decimal(10, 2)``) is kept
    whole.  Returns None when the line has fewer than two tokens.
    """
    parts = text.strip().split(None, 1)
    if len(parts) < 2:
        return None
    name, rest = parts[0].strip("\"'`"), parts[1].strip()

    if "(" in rest.split(None, 1)[0] and ")" in rest:
        close = rest.index(")") + 1
        type_token, annotation = rest[:close], rest[close:]
    else:
        pieces = rest.split(None, 1)
        type_token = pieces[0]
        annotation = pieces[1] if len(pieces) > 1 else ""

    # "total Decimal[not null]" -> annotation glued to the type
    if "[" in type_token:
        cut = type_token.index("[")
        type_token, annotation = type_token[:cut], type_token[cut:] + " " + annotation

    type_token = type_token.strip("\"'`")
    if not name or not type_token:
        return None
    return name, type_token, annotation.strip()


def interpret_field_line(
    text: str,
    enums: dict[str, EnumDefinition],
    line: int = 0,
) -> FieldDefinition | None:
    """Interpret one table body line.

    Args:
        text: The body line, e.g. ``"status Status [not null]"``.
        enums: Enums known at parse time, keyed by name.
        line: Source line number, kept for diagnostics.

    Returns:
        The classified ``FieldDefinition``, or None for lines with fewer
        than two tokens.
    """
    parts = split_field_line(text)
    if parts is None:
        return None
    name, type_token, annotation = parts
    is_required = bool(_REQUIRED_MARKER.search(annotation))

    if _PRIMARY_KEY_MARKER.search(annotation):
        attribute_type, max_length = map_type(type_token)
        return FieldDefinition(
            name=name,
            type_token=type_token,
            kind=FieldKind.PRIMARY_KEY,
            is_required=True,
            attribute_type=attribute_type,
            max_length=max_length,
            line=line,
        )

    if type_token in enums:
        enum = enums[type_token]
        return FieldDefinition(
            name=name,
            type_token=type_token,
            kind=FieldKind.ENUM,
            is_required=is_required,
            enum_name=enum.name,
            enum_values=enum.values,
            line=line,
        )

    if type_token == LOOKUP_TYPE:
        return FieldDefinition(
            name=name, type_token=type_token, kind=FieldKind.LOOKUP,
            is_required=is_required, line=line,
        )

    if type_token == PERSON_TYPE:
        return FieldDefinition(
            name=name, type_token=type_token, kind=FieldKind.USER_REFERENCE,
            is_required=is_required, line=line,
        )

    attribute_type, max_length = map_type(type_token)
    return FieldDefinition(
        name=name,
        type_token=type_token,
        kind=FieldKind.SCALAR,
        is_required=is_required,
        attribute_type=attribute_type,
        max_length=max_length,
        line=line,
    )


def interpret_table(
    block: RawTableBlock,
    enums: dict[str, EnumDefinition],
    naming: NamingRules,
) -> tuple[TableDefinition, list[ParseDiagnostic]]:
    """Interpret every body line of a table block.

    Lines with fewer than two tokens are dropped.  A repeated field name
    replaces the earlier definition and yields a warning.

    Returns:
        Tuple of (TableDefinition, diagnostics).
    """
    diagnostics: list[ParseDiagnostic] = []
    fields: dict[str, FieldDefinition] = {}

    for raw in block.lines:
        field = interpret_field_line(raw.text, enums, raw.line)
        if field is None:
            logger.debug(f"Dropping field line {raw.line} of '{block.name}': {raw.text!r}")
            continue
        if field.name in fields:
            diagnostics.append(
                ParseDiagnostic(
                    line=raw.line,
                    message=(
                        f"Field '{field.name}' redeclared in table '{block.name}'; "
                        f"line {fields[field.name].line} is overridden"
                    ),
                    severity=Severity.WARNING,
                )
            )
        fields[field.name] = field

    table = TableDefinition(
        name=block.name,
        schema_name=naming.table_logical_name(block.name),
        fields=fields,
        is_reserved=naming.is_reserved(block.name),
        line=block.line,
    )
    return table, diagnostics
