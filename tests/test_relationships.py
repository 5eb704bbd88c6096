"""Tests for relationship resolution (erd/relationships.py)."""

from erd_migrator.erd.models import (
    FieldDefinition,
    FieldKind,
    RelationshipDeclaration,
    RelationshipDirection,
    RelationshipKind,
    Severity,
    TableDefinition,
)
from erd_migrator.erd.naming import NamingRules
from erd_migrator.erd.relationships import (
    SYSTEM_USER_ENTITY,
    SYSTEM_USER_KEY,
    inject_lookups,
    resolve_relationships,
    resolve_user_references,
)

NAMING = NamingRules(prefix="new_", reserved_marker="existing_")


def _pk(name: str = "id") -> FieldDefinition:
    return FieldDefinition(name=name, type_token="GUID", kind=FieldKind.PRIMARY_KEY, is_required=True)


def _table(name: str, *fields: FieldDefinition) -> TableDefinition:
    return TableDefinition(
        name=name,
        schema_name=NAMING.table_logical_name(name),
        fields={f.name: f for f in fields},
        is_reserved=NAMING.is_reserved(name),
    )


def _ref(
    from_table: str,
    from_field: str,
    to_table: str,
    to_field: str,
    direction: RelationshipDirection = RelationshipDirection.MANY_TO_ONE,
) -> RelationshipDeclaration:
    return RelationshipDeclaration(
        from_table=from_table,
        from_field=from_field,
        direction=direction,
        to_table=to_table,
        to_field=to_field,
        line=10,
    )


class TestInjectLookups:
    """Phase A: lookup injection into the many side."""

    def test_injects_lookup_named_after_referenced_table(self) -> None:
        tables = {"Customer": _table("Customer", _pk()), "Invoice": _table("Invoice", _pk())}
        result, diagnostics = inject_lookups(tables, (_ref("Customer", "id", "Invoice", "customerid"),))

        lookup = result["Invoice"].fields["customerid"]
        assert lookup.kind is FieldKind.LOOKUP
        assert lookup.lookup_table == "Customer"
        assert lookup.lookup_field == "id"
        assert diagnostics == []

    def test_input_tables_untouched(self) -> None:
        invoice = _table("Invoice", _pk())
        tables = {"Customer": _table("Customer", _pk()), "Invoice": invoice}
        inject_lookups(tables, (_ref("Customer", "id", "Invoice", "customerid"),))
        assert "customerid" not in invoice.fields
        assert tables["Invoice"] is invoice

    def test_existing_field_reclassified_not_duplicated(self) -> None:
        declared = FieldDefinition(
            name="customerid", type_token="GUID", kind=FieldKind.SCALAR, is_required=True
        )
        tables = {
            "Customer": _table("Customer", _pk()),
            "Invoice": _table("Invoice", _pk(), declared),
        }
        result, _ = inject_lookups(tables, (_ref("Customer", "id", "Invoice", "customerid"),))
        fields = result["Invoice"].fields
        assert list(fields) == ["id", "customerid"]
        assert fields["customerid"].is_lookup
        assert fields["customerid"].is_required

    def test_declared_to_field_column_reclassified(self) -> None:
        """The column named on the many side of the Ref belongs to the relationship."""
        column = FieldDefinition(name="buyer", type_token="GUID", kind=FieldKind.SCALAR)
        tables = {
            "Customer": _table("Customer", _pk()),
            "Invoice": _table("Invoice", _pk(), column),
        }
        result, _ = inject_lookups(tables, (_ref("Customer", "id", "Invoice", "buyer"),))
        fields = result["Invoice"].fields
        assert fields["buyer"].is_lookup
        assert fields["customerid"].is_lookup

    def test_primary_key_named_like_lookup_kept(self) -> None:
        tables = {
            "Customer": _table("Customer", _pk()),
            "CustomerProfile": _table("CustomerProfile", _pk("customerid")),
        }
        result, diagnostics = inject_lookups(
            tables, (_ref("Customer", "id", "CustomerProfile", "customerid"),)
        )

        key = result["CustomerProfile"].fields["customerid"]
        assert key.kind is FieldKind.PRIMARY_KEY
        assert result["CustomerProfile"].display_field() == key
        assert len(diagnostics) == 1
        assert diagnostics[0].severity is Severity.WARNING
        assert "CustomerProfile.customerid" in diagnostics[0].message

    def test_primary_key_as_ref_column_kept(self) -> None:
        tables = {
            "Customer": _table("Customer", _pk()),
            "Invoice": _table("Invoice", _pk("number")),
        }
        result, diagnostics = inject_lookups(tables, (_ref("Customer", "id", "Invoice", "number"),))

        fields = result["Invoice"].fields
        assert fields["number"].is_primary_key
        assert fields["customerid"].is_lookup
        assert "Invoice.number" in diagnostics[0].message

    def test_injected_field_is_not_a_table_attribute(self) -> None:
        """The relationship creates the lookup column, the table payload does not."""
        tables = {"Customer": _table("Customer", _pk()), "Invoice": _table("Invoice", _pk())}
        result, _ = inject_lookups(tables, (_ref("Customer", "id", "Invoice", "buyer"),))
        assert result["Invoice"].fields["customerid"].is_deferred
        assert result["Invoice"].attribute_fields() == []

    def test_inverse_direction_injects_nothing(self) -> None:
        tables = {"Customer": _table("Customer", _pk()), "Invoice": _table("Invoice", _pk())}
        ref = _ref("Invoice", "customerid", "Customer", "id", RelationshipDirection.ONE_TO_MANY)
        result, _ = inject_lookups(tables, (ref,))
        assert result == tables

    def test_unknown_table_warns(self) -> None:
        tables = {"Invoice": _table("Invoice", _pk())}
        result, diagnostics = inject_lookups(tables, (_ref("Customer", "id", "Invoice", "customerid"),))
        assert "customerid" not in result["Invoice"].fields
        assert diagnostics[0].severity is Severity.WARNING
        assert "Customer" in diagnostics[0].message
        assert diagnostics[0].line == 10


class TestResolveRelationships:
    """Phase B: resolved names."""

    def test_resolved_names(self) -> None:
        tables = {"Customer": _table("Customer", _pk()), "Invoice": _table("Invoice", _pk())}
        declarations = (_ref("Customer", "id", "Invoice", "customerid"),)
        tables, _ = inject_lookups(tables, declarations)

        (rel,), _ = resolve_relationships(tables, declarations, NAMING)
        assert rel.kind is RelationshipKind.TABLE
        assert rel.schema_name == "new_Customer_Invoice"
        assert rel.referenced_entity == "new_customer"
        assert rel.referenced_attribute == "new_customerid"
        assert rel.referencing_entity == "new_invoice"
        assert rel.lookup_schema_name == "new_customeridnew_Customer_Invoice"
        assert rel.lookup_display_name == "customerid"
        assert not rel.is_required

    def test_reserved_endpoint_unprefixed(self) -> None:
        tables = {
            "existing_Account": _table("existing_Account", _pk("accountid")),
            "Customer": _table("Customer", _pk()),
        }
        declarations = (_ref("existing_Account", "accountid", "Customer", "accountid"),)
        tables, _ = inject_lookups(tables, declarations)

        (rel,), _ = resolve_relationships(tables, declarations, NAMING)
        assert rel.referenced_entity == "account"
        assert rel.referenced_attribute == "accountid"
        assert rel.referencing_entity == "new_customer"

    def test_required_lookup(self) -> None:
        required = FieldDefinition(
            name="customerid", type_token="GUID", kind=FieldKind.SCALAR, is_required=True
        )
        tables = {
            "Customer": _table("Customer", _pk()),
            "Invoice": _table("Invoice", _pk(), required),
        }
        declarations = (_ref("Customer", "id", "Invoice", "customerid"),)
        tables, _ = inject_lookups(tables, declarations)
        (rel,), _ = resolve_relationships(tables, declarations, NAMING)
        assert rel.is_required

    def test_same_table_pair_twice_warns(self) -> None:
        tables = {"Customer": _table("Customer", _pk()), "Invoice": _table("Invoice", _pk())}
        declarations = (
            _ref("Customer", "id", "Invoice", "billto"),
            RelationshipDeclaration(
                from_table="Customer",
                from_field="id",
                direction=RelationshipDirection.MANY_TO_ONE,
                to_table="Invoice",
                to_field="shipto",
                line=11,
            ),
        )
        tables, _ = inject_lookups(tables, declarations)

        resolved, diagnostics = resolve_relationships(tables, declarations, NAMING)
        assert [r.schema_name for r in resolved] == ["new_Customer_Invoice"] * 2
        assert [r.lookup_schema_name for r in resolved] == [
            "new_billtonew_Customer_Invoice",
            "new_shiptonew_Customer_Invoice",
        ]
        (diagnostic,) = diagnostics
        assert diagnostic.line == 11
        assert diagnostic.severity is Severity.WARNING
        assert "already used on line 10" in diagnostic.message

    def test_inverse_and_unknown_endpoints_produce_nothing(self) -> None:
        tables = {"Customer": _table("Customer", _pk()), "Invoice": _table("Invoice", _pk())}
        declarations = (
            _ref("Invoice", "customerid", "Customer", "id", RelationshipDirection.ONE_TO_MANY),
            _ref("Vendor", "id", "Invoice", "vendorid"),
        )
        assert resolve_relationships(tables, declarations, NAMING) == ((), [])


class TestResolveUserReferences:
    """Person fields become system-user relationships."""

    def test_person_field(self) -> None:
        owner = FieldDefinition(
            name="owner", type_token="Person", kind=FieldKind.USER_REFERENCE, is_required=True
        )
        tables = {"Invoice": _table("Invoice", _pk(), owner)}

        (rel,) = resolve_user_references(tables, NAMING)
        assert rel.kind is RelationshipKind.SYSTEM_USER
        assert rel.schema_name == "new_Invoice_owner_systemuser"
        assert rel.referenced_entity == SYSTEM_USER_ENTITY
        assert rel.referenced_attribute == SYSTEM_USER_KEY
        assert rel.referencing_entity == "new_invoice"
        assert rel.lookup_schema_name == "new_owner"
        assert rel.is_required

    def test_no_person_fields(self) -> None:
        assert resolve_user_references({"Invoice": _table("Invoice", _pk())}, NAMING) == ()
