"""erd-migrator: Deploy textual ERD schemas to Dataverse.

Parses Enum/Table/Ref declarations into a typed schema model and
idempotently creates the matching global option sets, tables, lookup
relationships and system-user relationships.

Usage:
    from erd_migrator import parse_erd, load_erd, run_migration
    from erd_migrator import DataverseClient, MetadataClient, get_client
    from erd_migrator import load_config, SchemaSettings
"""

__version__ = "0.1.0"

# ERD parsing
from erd_migrator.erd.builder import load_erd, parse_erd
from erd_migrator.erd.models import ErdSyntaxError, MissingPrimaryKeyError, SchemaModel

# Config
from erd_migrator.config.loader import load_config
from erd_migrator.config.models import DataverseProfile, MigratorConfig, SchemaSettings

# Transport
from erd_migrator.dataverse.base import MetadataClient
from erd_migrator.dataverse.client import DataverseClient, DataverseError

# Deployment
from erd_migrator.deploy.driver import run_migration
from erd_migrator.deploy.models import MigrationResult

# Factory
from erd_migrator.factory import ProfileNotFoundError, get_active_profile, get_client

__all__ = [
    # ERD parsing
    "parse_erd",
    "load_erd",
    "SchemaModel",
    "ErdSyntaxError",
    "MissingPrimaryKeyError",
    # Config
    "load_config",
    "DataverseProfile",
    "MigratorConfig",
    "SchemaSettings",
    # Transport
    "MetadataClient",
    "DataverseClient",
    "DataverseError",
    # Deployment
    "run_migration",
    "MigrationResult",
    # Factory
    "get_client",
    "get_active_profile",
    "ProfileNotFoundError",
]
