"""ERD parsing: grammar extraction, field interpretation, relationship resolution.

Usage:
    from erd_migrator.erd import parse_erd, load_erd, SchemaModel
"""

from erd_migrator.erd.builder import load_erd, parse_erd
from erd_migrator.erd.models import (
    AttributeType,
    EnumDefinition,
    ErdSyntaxError,
    FieldDefinition,
    FieldKind,
    MissingPrimaryKeyError,
    ParseDiagnostic,
    RelationshipDeclaration,
    RelationshipDirection,
    RelationshipKind,
    ResolvedRelationship,
    SchemaModel,
    Severity,
    TableDefinition,
)
from erd_migrator.erd.naming import NamingRules

__all__ = [
    "parse_erd",
    "load_erd",
    "NamingRules",
    "AttributeType",
    "EnumDefinition",
    "ErdSyntaxError",
    "FieldDefinition",
    "FieldKind",
    "MissingPrimaryKeyError",
    "ParseDiagnostic",
    "RelationshipDeclaration",
    "RelationshipDirection",
    "RelationshipKind",
    "ResolvedRelationship",
    "SchemaModel",
    "Severity",
    "TableDefinition",
]
