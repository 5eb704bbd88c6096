"""Metadata client protocol definition.

Defines the ``MetadataClient`` Protocol the convergence driver talks to.
Every method is a blocking call.  Lookups return the object's identifier
or ``None`` when nothing with that name exists; creates return the new
object's identifier.  Any method may raise ``DataverseError``.

Usage:
    from erd_migrator.dataverse.base import MetadataClient

    def ensure_option_set(client: MetadataClient, payload) -> str:
        existing = client.find_option_set_by_name(payload.name)
        return existing or client.create_option_set(payload)
"""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from erd_migrator.deploy.payloads import OptionSetPayload, RelationshipPayload, TablePayload


class MetadataClient(Protocol):
    """Metadata read/create interface of the target platform."""

    def find_option_set_by_name(self, name: str) -> str | None:
        """Return the identifier of the global option set named *name*.

        Args:
            name: Exact option set name (e.g. ``"new_status"``).

        Returns:
            Identifier string, or None if no such option set exists.
        """
        ...

    def create_option_set(self, payload: "OptionSetPayload") -> str:
        """Create a global option set and return its identifier."""
        ...

    def find_table_by_name(self, schema_name: str) -> str | None:
        """Return the identifier of the table with *schema_name*, or None."""
        ...

    def create_table(self, payload: "TablePayload") -> str:
        """Create a table with its attributes and return its identifier."""
        ...

    def find_relationship_by_name(self, schema_name: str) -> str | None:
        """Return the identifier of the relationship with *schema_name*, or None."""
        ...

    def create_relationship(self, payload: "RelationshipPayload") -> str:
        """Create a one-to-many relationship (and its lookup column)."""
        ...

    def close(self) -> None:
        """Release network resources."""
        ...
