"""Pydantic models for the parsed ERD schema.

This module contains the in-memory schema model built from one ERD source:
- Declarations: EnumDefinition, FieldDefinition, TableDefinition,
  RelationshipDeclaration
- Derived objects: ResolvedRelationship
- Root aggregate: SchemaModel
- Parse diagnostics and the data errors raised while reading the model

All models are frozen.  Each pipeline stage returns new instances instead
of mutating the ones it was given.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# Errors
# ============================================================================


class ErdSyntaxError(Exception):
    """Raised by a strict parse when the source has error-level diagnostics."""

    def __init__(self, diagnostics: list["ParseDiagnostic"]) -> None:
        self.diagnostics = diagnostics
        lines = [d.format() for d in diagnostics]
        super().__init__("ERD source has syntax errors:\n  " + "\n  ".join(lines))


class MissingPrimaryKeyError(Exception):
    """Raised when a table has no primary-key field to use as display name."""

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(
            f"Table '{table}' declares no primary-key field; "
            f"cannot derive its display-name attribute"
        )


# ============================================================================
# Diagnostics
# ============================================================================


class Severity(str, Enum):
    """Diagnostic severity.  Only errors fail a strict parse."""

    WARNING = "warning"
    ERROR = "error"


class ParseDiagnostic(BaseModel):
    """A problem found while reading the ERD source.

    Example:
        >>> d = ParseDiagnostic(line=3, column=1, message="Unterminated block")
        >>> d.format()
        'line 3, column 1: error: Unterminated block'
    """

    model_config = ConfigDict(frozen=True)

    line: int
    column: int = 1
    message: str
    severity: Severity = Severity.ERROR

    def format(self) -> str:
        return f"line {self.line}, column {self.column}: {self.severity.value}: {self.message}"


# ============================================================================
# Declarations
# ============================================================================


class EnumDefinition(BaseModel):
    """A named, ordered set of option values."""

    model_config = ConfigDict(frozen=True)

    name: str
    values: tuple[str, ...] = ()


class AttributeType(str, Enum):
    """Target attribute type for a scalar field."""

    IDENTIFIER = "identifier"
    STRING = "string"
    MEMO = "memo"
    INTEGER = "integer"
    DECIMAL = "decimal"
    MONEY = "money"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"


class FieldKind(str, Enum):
    """Classification of a field, derived from its declaration."""

    PRIMARY_KEY = "primary_key"
    ENUM = "enum"
    LOOKUP = "lookup"
    USER_REFERENCE = "user_reference"
    SCALAR = "scalar"


class FieldDefinition(BaseModel):
    """A single field of a table.

    Exactly one ``kind`` applies.  Enum fields carry the enum name and its
    values; lookup fields carry the table and field they point at.

    Example:
        >>> f = FieldDefinition(name="total", type_token="Decimal",
        ...                     kind=FieldKind.SCALAR,
        ...                     attribute_type=AttributeType.DECIMAL,
        ...                     is_required=True)
        >>> f.is_required, f.is_lookup
        (True, False)
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type_token: str
    kind: FieldKind
    is_required: bool = False
    attribute_type: AttributeType | None = None
    max_length: int | None = None
    enum_name: str | None = None
    enum_values: tuple[str, ...] = ()
    lookup_table: str | None = None
    lookup_field: str | None = None
    line: int = 0

    @model_validator(mode="after")
    def _check_kind_facts(self) -> "FieldDefinition":
        if self.kind is FieldKind.ENUM and self.enum_name is None:
            raise ValueError(f"Enum field '{self.name}' has no enum name")
        if self.kind is not FieldKind.ENUM and self.enum_name is not None:
            raise ValueError(f"Field '{self.name}' cannot be both enum-typed and {self.kind.value}")
        if self.kind is not FieldKind.LOOKUP and self.lookup_table is not None:
            raise ValueError(f"Field '{self.name}' cannot carry a lookup target as {self.kind.value}")
        return self

    @property
    def is_primary_key(self) -> bool:
        return self.kind is FieldKind.PRIMARY_KEY

    @property
    def is_enum(self) -> bool:
        return self.kind is FieldKind.ENUM

    @property
    def is_lookup(self) -> bool:
        return self.kind is FieldKind.LOOKUP

    @property
    def is_user_reference(self) -> bool:
        return self.kind is FieldKind.USER_REFERENCE

    @property
    def is_deferred(self) -> bool:
        """True for fields materialized by a relationship, not the table."""
        return self.kind in (FieldKind.LOOKUP, FieldKind.USER_REFERENCE)


class TableDefinition(BaseModel):
    """A table with its fields keyed by name, in declaration order."""

    model_config = ConfigDict(frozen=True)

    name: str
    schema_name: str
    fields: dict[str, FieldDefinition] = Field(default_factory=dict)
    is_reserved: bool = False
    line: int = 0

    def display_field(self) -> FieldDefinition:
        """Return the primary-key field, reused as the display-name field.

        Raises:
            MissingPrimaryKeyError: If no field is marked as primary key.
        """
        for field in self.fields.values():
            if field.is_primary_key:
                return field
        raise MissingPrimaryKeyError(self.name)

    def attribute_fields(self) -> list[FieldDefinition]:
        """Fields the table payload creates itself (no key, no deferred fields)."""
        return [
            f for f in self.fields.values()
            if not f.is_primary_key and not f.is_deferred
        ]


class RelationshipDirection(str, Enum):
    """Direction glyph of a ``Ref:`` line.

    ``<`` says the right-hand table holds many rows pointing at one row of
    the left-hand table; it is the only direction with schema effects.
    ``>`` is its inverse and is kept for completeness only.
    """

    MANY_TO_ONE = "<"
    ONE_TO_MANY = ">"


class RelationshipDeclaration(BaseModel):
    """A raw ``Ref:`` line: ``"from"."field" <dir> "to"."field"``."""

    model_config = ConfigDict(frozen=True)

    from_table: str
    from_field: str
    direction: RelationshipDirection
    to_table: str
    to_field: str
    line: int = 0

    @property
    def is_many_to_one(self) -> bool:
        return self.direction is RelationshipDirection.MANY_TO_ONE

    @property
    def lookup_field_name(self) -> str:
        """Name of the lookup field injected into the many side."""
        return f"{self.from_table.lower()}id"


# ============================================================================
# Derived objects
# ============================================================================


class RelationshipKind(str, Enum):
    """What the referenced side of a resolved relationship is."""

    TABLE = "table"
    SYSTEM_USER = "system_user"


class ResolvedRelationship(BaseModel):
    """A relationship with every platform-facing name resolved."""

    model_config = ConfigDict(frozen=True)

    kind: RelationshipKind = RelationshipKind.TABLE
    schema_name: str
    referenced_entity: str
    referenced_attribute: str
    referencing_entity: str
    lookup_schema_name: str
    lookup_display_name: str
    is_required: bool = False


# ============================================================================
# Root aggregate
# ============================================================================


class SchemaModel(BaseModel):
    """Everything parsed from one ERD source, ready for emission."""

    model_config = ConfigDict(frozen=True)

    prefix: str
    enums: dict[str, EnumDefinition] = Field(default_factory=dict)
    tables: dict[str, TableDefinition] = Field(default_factory=dict)
    relationships: tuple[RelationshipDeclaration, ...] = ()
    resolved_relationships: tuple[ResolvedRelationship, ...] = ()
    user_relationships: tuple[ResolvedRelationship, ...] = ()
    diagnostics: tuple[ParseDiagnostic, ...] = ()

    @property
    def creatable_tables(self) -> list[TableDefinition]:
        """Tables that need a creation payload (reserved tables excluded)."""
        return [t for t in self.tables.values() if not t.is_reserved]

    @property
    def errors(self) -> list[ParseDiagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.ERROR]
