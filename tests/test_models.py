"""Tests for schema models and naming rules."""

import pytest
from pydantic import ValidationError

from erd_migrator.erd.models import (
    FieldDefinition,
    FieldKind,
    MissingPrimaryKeyError,
    ParseDiagnostic,
    Severity,
    TableDefinition,
)
from erd_migrator.erd.naming import NamingRules


class TestFieldDefinition:
    """Kind invariants."""

    def test_enum_and_lookup_are_exclusive(self) -> None:
        with pytest.raises(ValidationError):
            FieldDefinition(
                name="x", type_token="Status", kind=FieldKind.ENUM,
                enum_name="Status", lookup_table="Customer",
            )

    def test_enum_needs_enum_name(self) -> None:
        with pytest.raises(ValidationError):
            FieldDefinition(name="x", type_token="Status", kind=FieldKind.ENUM)

    def test_frozen(self) -> None:
        field = FieldDefinition(name="x", type_token="int", kind=FieldKind.SCALAR)
        with pytest.raises(ValidationError):
            field.name = "y"


class TestTableDefinition:
    def test_missing_primary_key(self) -> None:
        table = TableDefinition(name="Note", schema_name="new_note")
        with pytest.raises(MissingPrimaryKeyError) as exc_info:
            table.display_field()
        assert exc_info.value.table == "Note"

    def test_attribute_fields_exclude_key_and_deferred(self) -> None:
        fields = [
            FieldDefinition(name="id", type_token="GUID", kind=FieldKind.PRIMARY_KEY),
            FieldDefinition(name="owner", type_token="Person", kind=FieldKind.USER_REFERENCE),
            FieldDefinition(name="customerid", type_token="Lookup", kind=FieldKind.LOOKUP),
            FieldDefinition(name="total", type_token="Decimal", kind=FieldKind.SCALAR),
        ]
        table = TableDefinition(name="Invoice", schema_name="new_invoice", fields={f.name: f for f in fields})
        assert [f.name for f in table.attribute_fields()] == ["total"]


class TestParseDiagnostic:
    def test_format(self) -> None:
        diagnostic = ParseDiagnostic(line=4, column=9, message="Odd", severity=Severity.WARNING)
        assert diagnostic.format() == "line 4, column 9: warning: Odd"


class TestNamingRules:
    """Platform-facing names."""

    rules = NamingRules(prefix="new_", reserved_marker="existing_")

    def test_table_names(self) -> None:
        assert self.rules.table_logical_name("SalesOrder") == "new_salesorder"
        assert self.rules.table_logical_name("existing_Contact") == "contact"
        assert self.rules.primary_key_name("existing_Contact") == "contactid"

    def test_relationship_name_keeps_casing(self) -> None:
        assert self.rules.relationship_schema_name("Customer", "SalesOrder") == "new_Customer_SalesOrder"

    def test_attribute_and_option_set_names(self) -> None:
        assert self.rules.attribute_schema_name("DueDate") == "new_duedate"
        assert self.rules.option_set_name("OrderStatus") == "new_orderstatus"

    def test_user_relationship_name(self) -> None:
        assert self.rules.user_relationship_schema_name("Invoice", "owner") == "new_Invoice_owner_systemuser"

    def test_empty_marker_reserves_nothing(self) -> None:
        assert not NamingRules(reserved_marker="").is_reserved("Invoice")
