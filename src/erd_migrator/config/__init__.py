"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from erd_migrator.config import load_config, DataverseProfile, MigratorConfig
"""

from erd_migrator.config.loader import load_config
from erd_migrator.config.models import DataverseProfile, MigratorConfig, SchemaSettings

__all__ = ["load_config", "DataverseProfile", "MigratorConfig", "SchemaSettings"]
