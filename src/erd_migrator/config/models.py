"""Pydantic models for migrator configuration."""

from pydantic import BaseModel, Field, field_validator


# ============================================================================
# Configuration Models
# ============================================================================


class DataverseProfile(BaseModel):
    """Target environment profile from erd.toml."""

    url: str
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str | None = None  # Falls back to <PREFIX>DATAVERSE_CLIENT_SECRET
    solution: str | None = None  # Unique name of the solution to add components to
    description: str = ""

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class SchemaSettings(BaseModel):
    """Naming and encoding rules applied to every generated object."""

    prefix: str = "new_"
    reserved_marker: str = "existing_"
    option_value_base: int = 100_000_000
    language_code: int = 1033

    @field_validator("prefix")
    @classmethod
    def _prefix_ends_with_underscore(cls, value: str) -> str:
        if not value:
            raise ValueError("prefix must not be empty")
        return value if value.endswith("_") else f"{value}_"


class MigratorConfig(BaseModel):
    """Complete configuration from erd.toml."""

    profiles: dict[str, DataverseProfile] = Field(default_factory=dict)
    schema_settings: SchemaSettings = Field(default_factory=SchemaSettings)
