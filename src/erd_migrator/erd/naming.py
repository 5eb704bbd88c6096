"""Schema naming rules.

Turns source-declared names into platform-facing schema names.  Tables
whose name starts with the reserved marker already exist remotely: they
keep their own un-prefixed, lower-cased name.

Usage:
    from erd_migrator.erd.naming import NamingRules

    rules = NamingRules(prefix="new_", reserved_marker="existing_")
    rules.table_logical_name("Invoice")           # 'new_invoice'
    rules.table_logical_name("existing_Account")  # 'account'
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class NamingRules:
    """Namespace prefix and reserved-table marker used for one run."""

    prefix: str = "new_"
    reserved_marker: str = "existing_"

    def is_reserved(self, table_name: str) -> bool:
        return bool(self.reserved_marker) and table_name.startswith(self.reserved_marker)

    def table_logical_name(self, table_name: str) -> str:
        """Logical name of a table, marker-aware."""
        if self.is_reserved(table_name):
            return table_name[len(self.reserved_marker):].lower()
        return f"{self.prefix}{table_name}".lower()

    def primary_key_name(self, table_name: str) -> str:
        """The platform's primary-key attribute for a table."""
        return f"{self.table_logical_name(table_name)}id"

    def attribute_schema_name(self, field_name: str) -> str:
        return f"{self.prefix}{field_name}".lower()

    def option_set_name(self, enum_name: str) -> str:
        return f"{self.prefix}{enum_name}".lower()

    def relationship_schema_name(self, from_table: str, to_table: str) -> str:
        # Declared casing is kept on purpose
        return f"{self.prefix}{from_table}_{to_table}"

    def user_relationship_schema_name(self, table_name: str, field_name: str) -> str:
        return f"{self.prefix}{table_name}_{field_name}_systemuser"
