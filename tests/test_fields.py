"""Tests for field interpretation (erd/fields.py)."""

import pytest

from erd_migrator.erd.fields import interpret_field_line, interpret_table, map_type, split_field_line
from erd_migrator.erd.grammar import RawLine, RawTableBlock
from erd_migrator.erd.models import AttributeType, EnumDefinition, FieldKind, Severity
from erd_migrator.erd.naming import NamingRules

STATUS = EnumDefinition(name="Status", values=("Draft", "Sent", "Paid"))


class TestMapType:
    """Free-text type mapping."""

    @pytest.mark.parametrize(
        "token,expected",
        [
            ("GUID", AttributeType.IDENTIFIER),
            ("uuid", AttributeType.IDENTIFIER),
            ("nvarchar", AttributeType.STRING),
            ("Text", AttributeType.MEMO),
            ("bigint", AttributeType.INTEGER),
            ("Decimal", AttributeType.DECIMAL),
            ("money", AttributeType.MONEY),
            ("bit", AttributeType.BOOLEAN),
            ("Date", AttributeType.DATE),
            ("timestamp", AttributeType.DATETIME),
        ],
    )
    def test_known_types(self, token: str, expected: AttributeType) -> None:
        assert map_type(token)[0] is expected

    def test_unknown_type_defaults_to_short_text(self) -> None:
        assert map_type("Geography") == (AttributeType.STRING, None)

    def test_length_argument(self) -> None:
        assert map_type("varchar(255)") == (AttributeType.STRING, 255)

    def test_length_ignored_for_non_text(self) -> None:
        assert map_type("decimal(10, 2)") == (AttributeType.DECIMAL, None)


class TestSplitFieldLine:
    """Decomposition into name, type token and annotation text."""

    def test_three_parts(self) -> None:
        assert split_field_line("total Decimal [not null]") == ("total", "Decimal", "[not null]")

    def test_type_arguments_with_spaces(self) -> None:
        assert split_field_line("amount decimal(10, 2) [not null]") == (
            "amount",
            "decimal(10, 2)",
            "[not null]",
        )

    def test_annotation_glued_to_type(self) -> None:
        name, type_token, annotation = split_field_line("id GUID[pk]")
        assert (name, type_token) == ("id", "GUID")
        assert "pk" in annotation

    def test_single_token_line(self) -> None:
        assert split_field_line("orphan") is None


class TestInterpretFieldLine:
    """Classification precedence and required-ness."""

    def test_primary_key(self) -> None:
        field = interpret_field_line("id GUID [pk]", {})
        assert field.kind is FieldKind.PRIMARY_KEY
        assert field.attribute_type is AttributeType.IDENTIFIER

    def test_primary_key_long_form(self) -> None:
        field = interpret_field_line("code varchar(20) [primary key]", {})
        assert field.is_primary_key
        assert field.max_length == 20

    def test_primary_key_wins_over_enum(self) -> None:
        field = interpret_field_line("status Status [pk]", {"Status": STATUS})
        assert field.is_primary_key
        assert field.enum_name is None

    def test_enum_field_carries_values_in_order(self) -> None:
        field = interpret_field_line("status Status", {"Status": STATUS})
        assert field.kind is FieldKind.ENUM
        assert field.enum_name == "Status"
        assert field.enum_values == ("Draft", "Sent", "Paid")
        assert not field.is_lookup

    def test_enum_match_is_case_sensitive(self) -> None:
        field = interpret_field_line("status status", {"Status": STATUS})
        assert field.kind is FieldKind.SCALAR

    def test_lookup_placeholder(self) -> None:
        field = interpret_field_line("customerid Lookup", {})
        assert field.kind is FieldKind.LOOKUP
        assert field.is_deferred

    def test_person_field(self) -> None:
        field = interpret_field_line("owner Person [not null]", {})
        assert field.kind is FieldKind.USER_REFERENCE
        assert field.is_required
        assert field.is_deferred

    def test_required_marker_anywhere(self) -> None:
        field = interpret_field_line("total Decimal [note: 'x', NOT NULL]", {})
        assert field.is_required
        assert field.attribute_type is AttributeType.DECIMAL

    def test_optional_by_default(self) -> None:
        assert not interpret_field_line("notes Text", {}).is_required

    def test_line_number_kept(self) -> None:
        assert interpret_field_line("notes Text", {}, line=7).line == 7


class TestInterpretTable:
    """Whole-table interpretation."""

    def _block(self, *lines: str) -> RawTableBlock:
        return RawTableBlock(
            name="Invoice",
            lines=tuple(RawLine(text=text, line=i + 2) for i, text in enumerate(lines)),
            line=1,
        )

    def test_fields_in_declaration_order(self) -> None:
        table, diagnostics = interpret_table(
            self._block("id GUID [pk]", "status Status", "total Decimal [not null]"),
            {"Status": STATUS},
            NamingRules(),
        )
        assert list(table.fields) == ["id", "status", "total"]
        assert table.schema_name == "new_invoice"
        assert not table.is_reserved
        assert diagnostics == []

    def test_short_lines_dropped(self) -> None:
        table, _ = interpret_table(self._block("id GUID [pk]", "orphan"), {}, NamingRules())
        assert list(table.fields) == ["id"]

    def test_duplicate_field_last_wins_with_warning(self) -> None:
        table, diagnostics = interpret_table(
            self._block("id GUID [pk]", "total int", "notes Text", "total Decimal"),
            {},
            NamingRules(),
        )
        assert table.fields["total"].attribute_type is AttributeType.DECIMAL
        assert list(table.fields) == ["id", "total", "notes"]
        assert len(diagnostics) == 1
        assert diagnostics[0].severity is Severity.WARNING
        assert diagnostics[0].line == 5

    def test_reserved_table(self) -> None:
        block = RawTableBlock(name="existing_Account", lines=(), line=1)
        table, _ = interpret_table(block, {}, NamingRules())
        assert table.is_reserved
        assert table.schema_name == "account"
