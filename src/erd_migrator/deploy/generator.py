"""Operation generator.

Turns parts of a ``SchemaModel`` into typed creation payloads and decides,
per named object, whether it must be created or already exists.

The ``build_*`` functions are pure.  The ``plan_*`` functions first ask
the metadata client for an object with the same name; a hit short-circuits
payload generation and yields ``ExistingObject`` with the remote
identifier, a miss yields ``CreateObject`` with the payload to send.

Usage:
    from erd_migrator.deploy.generator import plan_option_set, plan_table

    op = plan_option_set(client, model.enums["Status"], settings)
    if isinstance(op, CreateObject):
        identifier = client.create_option_set(op.payload)
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from erd_migrator.config.models import SchemaSettings
from erd_migrator.deploy.payloads import (
    AttributePayload,
    BooleanAttribute,
    DateTimeAttribute,
    DecimalAttribute,
    IntegerAttribute,
    LookupAttribute,
    MemoAttribute,
    MetadataPayload,
    MoneyAttribute,
    OptionSetPayload,
    OptionValue,
    PicklistAttribute,
    RelationshipPayload,
    StringAttribute,
    TablePayload,
)
from erd_migrator.erd.models import (
    AttributeType,
    EnumDefinition,
    FieldDefinition,
    ResolvedRelationship,
    TableDefinition,
)
from erd_migrator.erd.naming import NamingRules

if TYPE_CHECKING:
    from erd_migrator.dataverse.base import MetadataClient

logger = logging.getLogger(__name__)

IDENTIFIER_LENGTH = 36
DEFAULT_TEXT_LENGTH = 100


# ------------------------------------------------------------------
# Operations
# ------------------------------------------------------------------


@dataclass(frozen=True)
class ExistingObject:
    """The object is already present remotely."""

    name: str
    identifier: str


@dataclass(frozen=True)
class CreateObject:
    """The object is missing and *payload* creates it."""

    name: str
    payload: MetadataPayload


Operation = ExistingObject | CreateObject


def naming_rules(settings: SchemaSettings) -> NamingRules:
    return NamingRules(prefix=settings.prefix, reserved_marker=settings.reserved_marker)


# ------------------------------------------------------------------
# Payload builders
# ------------------------------------------------------------------


def build_option_set_payload(enum: EnumDefinition, settings: SchemaSettings) -> OptionSetPayload:
    """Build a global option set from an enum.

    The first value gets ``settings.option_value_base``; each following
    value the next integer, in declaration order.
    """
    return OptionSetPayload(
        name=naming_rules(settings).option_set_name(enum.name),
        display_name=enum.name,
        options=[
            OptionValue(value=settings.option_value_base + index, label=value)
            for index, value in enumerate(enum.values)
        ],
        language_code=settings.language_code,
    )


def build_attribute_payload(
    field: FieldDefinition,
    settings: SchemaSettings,
    option_set_ids: dict[str, str],
) -> AttributePayload | None:
    """Build the attribute payload for one non-key, non-deferred field.

    Returns None for an enum field whose option set has no identifier yet.
    """
    common = {
        "schema_name": naming_rules(settings).attribute_schema_name(field.name),
        "display_name": field.name,
        "is_required": field.is_required,
        "language_code": settings.language_code,
    }

    if field.is_enum:
        option_set_name = naming_rules(settings).option_set_name(field.enum_name)
        option_set_id = option_set_ids.get(option_set_name)
        if option_set_id is None:
            logger.warning(
                f"Option set '{option_set_name}' unavailable; leaving out field '{field.name}'"
            )
            return None
        return PicklistAttribute(option_set_id=option_set_id, **common)

    match field.attribute_type:
        case AttributeType.IDENTIFIER:
            return StringAttribute(max_length=field.max_length or IDENTIFIER_LENGTH, **common)
        case AttributeType.MEMO:
            return MemoAttribute(**common)
        case AttributeType.INTEGER:
            return IntegerAttribute(**common)
        case AttributeType.DECIMAL:
            return DecimalAttribute(**common)
        case AttributeType.MONEY:
            return MoneyAttribute(**common)
        case AttributeType.BOOLEAN:
            return BooleanAttribute(**common)
        case AttributeType.DATE:
            return DateTimeAttribute(date_only=True, **common)
        case AttributeType.DATETIME:
            return DateTimeAttribute(**common)
        case _:
            return StringAttribute(max_length=field.max_length or DEFAULT_TEXT_LENGTH, **common)


def build_display_attribute(table: TableDefinition, settings: SchemaSettings) -> StringAttribute:
    """Build the primary-name attribute from the table's primary-key field.

    Raises:
        MissingPrimaryKeyError: If the table has no primary-key field.
    """
    key = table.display_field()
    return StringAttribute(
        schema_name=naming_rules(settings).attribute_schema_name(key.name),
        display_name=key.name,
        is_required=True,
        is_primary_name=True,
        max_length=key.max_length or DEFAULT_TEXT_LENGTH,
        language_code=settings.language_code,
    )


def build_table_payload(
    table: TableDefinition,
    settings: SchemaSettings,
    option_set_ids: dict[str, str],
) -> TablePayload:
    """Build a table payload: the display-name attribute plus every scalar
    and enum field.  Key, lookup and person fields are left out.

    Raises:
        MissingPrimaryKeyError: If the table has no primary-key field.
    """
    attributes: list[AttributePayload] = [build_display_attribute(table, settings)]
    for field in table.attribute_fields():
        attribute = build_attribute_payload(field, settings, option_set_ids)
        if attribute is not None:
            attributes.append(attribute)

    return TablePayload(
        schema_name=table.schema_name,
        display_name=table.name,
        attributes=attributes,
        language_code=settings.language_code,
    )


def build_relationship_payload(
    relationship: ResolvedRelationship,
    settings: SchemaSettings,
) -> RelationshipPayload:
    """Build a one-to-many relationship payload with its lookup column."""
    return RelationshipPayload(
        schema_name=relationship.schema_name,
        referenced_entity=relationship.referenced_entity,
        referenced_attribute=relationship.referenced_attribute,
        referencing_entity=relationship.referencing_entity,
        lookup=LookupAttribute(
            schema_name=relationship.lookup_schema_name,
            display_name=relationship.lookup_display_name,
            is_required=relationship.is_required,
            language_code=settings.language_code,
        ),
    )


# ------------------------------------------------------------------
# Planning (existence check, then payload)
# ------------------------------------------------------------------


def plan_option_set(
    client: "MetadataClient | None",
    enum: EnumDefinition,
    settings: SchemaSettings,
) -> Operation:
    name = naming_rules(settings).option_set_name(enum.name)
    if client is not None:
        identifier = client.find_option_set_by_name(name)
        if identifier is not None:
            return ExistingObject(name=name, identifier=identifier)
    return CreateObject(name=name, payload=build_option_set_payload(enum, settings))


def plan_table(
    client: "MetadataClient | None",
    table: TableDefinition,
    settings: SchemaSettings,
    option_set_ids: dict[str, str],
) -> Operation:
    if client is not None:
        identifier = client.find_table_by_name(table.schema_name)
        if identifier is not None:
            return ExistingObject(name=table.schema_name, identifier=identifier)
    return CreateObject(
        name=table.schema_name,
        payload=build_table_payload(table, settings, option_set_ids),
    )


def plan_relationship(
    client: "MetadataClient | None",
    relationship: ResolvedRelationship,
    settings: SchemaSettings,
) -> Operation:
    if client is not None:
        identifier = client.find_relationship_by_name(relationship.schema_name)
        if identifier is not None:
            return ExistingObject(name=relationship.schema_name, identifier=identifier)
    return CreateObject(
        name=relationship.schema_name,
        payload=build_relationship_payload(relationship, settings),
    )
