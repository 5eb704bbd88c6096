"""Shared fixtures: an in-memory metadata client and sample ERD sources."""

import textwrap

import pytest

from erd_migrator.config.models import SchemaSettings
from erd_migrator.dataverse.client import DataverseError


class InMemoryMetadataClient:
    """Simulated remote side implementing the ``MetadataClient`` protocol.

    Objects are stored by name.  ``fail_on`` names objects whose creation
    raises ``DataverseError`` to exercise partial-failure handling.
    """

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.option_sets: dict[str, object] = {}
        self.tables: dict[str, object] = {}
        self.relationships: dict[str, object] = {}
        self.fail_on = fail_on or set()
        self.create_calls = 0
        self.closed = False
        self._counter = 0

    def _next_id(self) -> str:
        self._counter += 1
        return f"00000000-0000-0000-0000-{self._counter:012d}"

    def _store(self, registry: dict[str, object], name: str, payload: object) -> str:
        self.create_calls += 1
        if name in self.fail_on:
            raise DataverseError(f"Create {name}: simulated failure", status_code=400)
        identifier = self._next_id()
        registry[name] = (identifier, payload)
        return identifier

    @staticmethod
    def _find(registry: dict[str, object], name: str) -> str | None:
        entry = registry.get(name)
        return entry[0] if entry is not None else None

    def find_option_set_by_name(self, name):
        return self._find(self.option_sets, name)

    def create_option_set(self, payload):
        return self._store(self.option_sets, payload.name, payload)

    def find_table_by_name(self, schema_name):
        return self._find(self.tables, schema_name)

    def create_table(self, payload):
        return self._store(self.tables, payload.schema_name, payload)

    def find_relationship_by_name(self, schema_name):
        return self._find(self.relationships, schema_name)

    def create_relationship(self, payload):
        return self._store(self.relationships, payload.schema_name, payload)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


INVOICE_ERD = textwrap.dedent("""\
    // Billing schema
    Enum Status {
        Draft
        Sent
        Paid
    }

    Table Customer {
        id GUID [pk]
        name varchar(200) [not null]
    }

    Table Invoice {
        id GUID [pk]
        status Status
        total Decimal [not null]
        owner Person
    }

    Table existing_Account {
        accountid GUID [pk]
    }

    Ref: "Customer"."id" < "Invoice"."customerid"
    Ref: "existing_Account"."accountid" < "Customer"."accountid"
    """)


@pytest.fixture
def client() -> InMemoryMetadataClient:
    return InMemoryMetadataClient()


@pytest.fixture
def settings() -> SchemaSettings:
    return SchemaSettings()


@pytest.fixture
def invoice_erd() -> str:
    return INVOICE_ERD


@pytest.fixture
def make_client():
    """Factory for clients configured with failing object names."""
    return InMemoryMetadataClient
