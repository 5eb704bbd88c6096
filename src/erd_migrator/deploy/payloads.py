"""Typed metadata payloads.

One model per remote object kind.  Every model knows the exact JSON body
the Web API expects and renders it with ``to_payload()``:

- ``OptionSetPayload``    -> ``GlobalOptionSetDefinitions``
- ``TablePayload``        -> ``EntityDefinitions`` (embeds attributes)
- ``RelationshipPayload`` -> ``RelationshipDefinitions`` (embeds a lookup)

Attributes are a tagged union (``AttributePayload``) discriminated by
``kind``, so a table payload can only hold attribute kinds that exist.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

_NS = "Microsoft.Dynamics.CRM"


def label(text: str, language_code: int = 1033) -> dict[str, Any]:
    """Render a localized label.

    Example:
        >>> label("Invoice")["LocalizedLabels"][0]["Label"]
        'Invoice'
    """
    return {
        "@odata.type": f"{_NS}.Label",
        "LocalizedLabels": [
            {
                "@odata.type": f"{_NS}.LocalizedLabel",
                "Label": text,
                "LanguageCode": language_code,
            }
        ],
    }


def required_level(is_required: bool) -> dict[str, Any]:
    return {
        "Value": "ApplicationRequired" if is_required else "None",
        "CanBeChanged": True,
        "ManagedPropertyLogicalName": "canmodifyrequirementlevelsettings",
    }


# ============================================================================
# Attributes
# ============================================================================


class _Attribute(BaseModel):
    schema_name: str
    display_name: str
    is_required: bool = False
    language_code: int = 1033

    def _base(self, odata_type: str, attribute_type: str) -> dict[str, Any]:
        return {
            "@odata.type": f"{_NS}.{odata_type}",
            "AttributeType": attribute_type,
            "AttributeTypeName": {"Value": f"{attribute_type}Type"},
            "SchemaName": self.schema_name,
            "DisplayName": label(self.display_name, self.language_code),
            "Description": label(self.display_name, self.language_code),
            "RequiredLevel": required_level(self.is_required),
        }


class StringAttribute(_Attribute):
    kind: Literal["string"] = "string"
    max_length: int = 100
    is_primary_name: bool = False

    def to_payload(self) -> dict[str, Any]:
        payload = self._base("StringAttributeMetadata", "String")
        payload["MaxLength"] = self.max_length
        payload["FormatName"] = {"Value": "Text"}
        if self.is_primary_name:
            payload["IsPrimaryName"] = True
        return payload


class MemoAttribute(_Attribute):
    kind: Literal["memo"] = "memo"
    max_length: int = 4000

    def to_payload(self) -> dict[str, Any]:
        payload = self._base("MemoAttributeMetadata", "Memo")
        payload["Format"] = "TextArea"
        payload["MaxLength"] = self.max_length
        return payload


class IntegerAttribute(_Attribute):
    kind: Literal["integer"] = "integer"

    def to_payload(self) -> dict[str, Any]:
        payload = self._base("IntegerAttributeMetadata", "Integer")
        payload["Format"] = "None"
        payload["MinValue"] = -2147483648
        payload["MaxValue"] = 2147483647
        return payload


class DecimalAttribute(_Attribute):
    kind: Literal["decimal"] = "decimal"
    precision: int = 2

    def to_payload(self) -> dict[str, Any]:
        payload = self._base("DecimalAttributeMetadata", "Decimal")
        payload["Precision"] = self.precision
        payload["MinValue"] = -100000000000
        payload["MaxValue"] = 100000000000
        return payload


class MoneyAttribute(_Attribute):
    kind: Literal["money"] = "money"
    precision: int = 2

    def to_payload(self) -> dict[str, Any]:
        payload = self._base("MoneyAttributeMetadata", "Money")
        payload["Precision"] = self.precision
        payload["PrecisionSource"] = 2
        payload["MinValue"] = -922337203685477
        payload["MaxValue"] = 922337203685477
        return payload


class BooleanAttribute(_Attribute):
    kind: Literal["boolean"] = "boolean"

    def to_payload(self) -> dict[str, Any]:
        payload = self._base("BooleanAttributeMetadata", "Boolean")
        payload["DefaultValue"] = False
        payload["OptionSet"] = {
            "@odata.type": f"{_NS}.BooleanOptionSetMetadata",
            "OptionSetType": "Boolean",
            "TrueOption": {"Value": 1, "Label": label("Yes", self.language_code)},
            "FalseOption": {"Value": 0, "Label": label("No", self.language_code)},
        }
        return payload


class DateTimeAttribute(_Attribute):
    kind: Literal["datetime"] = "datetime"
    date_only: bool = False

    def to_payload(self) -> dict[str, Any]:
        payload = self._base("DateTimeAttributeMetadata", "DateTime")
        payload["Format"] = "DateOnly" if self.date_only else "DateAndTime"
        payload["DateTimeBehavior"] = {"Value": "DateOnly" if self.date_only else "UserLocal"}
        return payload


class PicklistAttribute(_Attribute):
    """Choice column bound to an existing global option set."""

    kind: Literal["picklist"] = "picklist"
    option_set_id: str

    def to_payload(self) -> dict[str, Any]:
        payload = self._base("PicklistAttributeMetadata", "Picklist")
        payload["GlobalOptionSet@odata.bind"] = f"/GlobalOptionSetDefinitions({self.option_set_id})"
        return payload


class LookupAttribute(_Attribute):
    kind: Literal["lookup"] = "lookup"

    def to_payload(self) -> dict[str, Any]:
        return self._base("LookupAttributeMetadata", "Lookup")


AttributePayload = Annotated[
    Union[
        StringAttribute,
        MemoAttribute,
        IntegerAttribute,
        DecimalAttribute,
        MoneyAttribute,
        BooleanAttribute,
        DateTimeAttribute,
        PicklistAttribute,
        LookupAttribute,
    ],
    Field(discriminator="kind"),
]


# ============================================================================
# Top-level objects
# ============================================================================


class OptionValue(BaseModel):
    value: int
    label: str


class OptionSetPayload(BaseModel):
    """A global option set built from an enum.

    Example:
        >>> p = OptionSetPayload(name="new_status", display_name="Status",
        ...                      options=[OptionValue(value=100000000, label="Draft")])
        >>> p.to_payload()["Options"][0]["Value"]
        100000000
    """

    kind: Literal["option_set"] = "option_set"
    name: str
    display_name: str
    options: list[OptionValue] = Field(default_factory=list)
    language_code: int = 1033

    def to_payload(self) -> dict[str, Any]:
        return {
            "@odata.type": f"{_NS}.OptionSetMetadata",
            "Name": self.name,
            "DisplayName": label(self.display_name, self.language_code),
            "Description": label(self.display_name, self.language_code),
            "OptionSetType": "Picklist",
            "IsGlobal": True,
            "Options": [
                {"Value": option.value, "Label": label(option.label, self.language_code)}
                for option in self.options
            ],
        }


class TablePayload(BaseModel):
    """A user-owned table with its primary-name and scalar attributes."""

    kind: Literal["table"] = "table"
    schema_name: str
    display_name: str
    attributes: list[AttributePayload] = Field(default_factory=list)
    language_code: int = 1033

    @property
    def primary_name_attribute(self) -> StringAttribute | None:
        for attribute in self.attributes:
            if isinstance(attribute, StringAttribute) and attribute.is_primary_name:
                return attribute
        return None

    def to_payload(self) -> dict[str, Any]:
        return {
            "@odata.type": f"{_NS}.EntityMetadata",
            "SchemaName": self.schema_name,
            "DisplayName": label(self.display_name, self.language_code),
            "DisplayCollectionName": label(f"{self.display_name}s", self.language_code),
            "Description": label(self.display_name, self.language_code),
            "OwnershipType": "UserOwned",
            "IsActivity": False,
            "HasActivities": False,
            "HasNotes": False,
            "Attributes": [attribute.to_payload() for attribute in self.attributes],
        }


class RelationshipPayload(BaseModel):
    """A one-to-many relationship and the lookup column it creates."""

    kind: Literal["relationship"] = "relationship"
    schema_name: str
    referenced_entity: str
    referenced_attribute: str
    referencing_entity: str
    lookup: LookupAttribute

    def to_payload(self) -> dict[str, Any]:
        return {
            "@odata.type": f"{_NS}.OneToManyRelationshipMetadata",
            "SchemaName": self.schema_name,
            "ReferencedEntity": self.referenced_entity,
            "ReferencedAttribute": self.referenced_attribute,
            "ReferencingEntity": self.referencing_entity,
            "CascadeConfiguration": {
                "Assign": "NoCascade",
                "Delete": "RemoveLink",
                "Merge": "NoCascade",
                "Reparent": "NoCascade",
                "Share": "NoCascade",
                "Unshare": "NoCascade",
            },
            "Lookup": self.lookup.to_payload(),
        }


MetadataPayload = Annotated[
    Union[OptionSetPayload, TablePayload, RelationshipPayload],
    Field(discriminator="kind"),
]
