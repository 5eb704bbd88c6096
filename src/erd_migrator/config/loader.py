"""TOML configuration loader."""

import tomllib
from pathlib import Path

from erd_migrator.config.models import DataverseProfile, MigratorConfig, SchemaSettings

DEFAULT_CONFIG_FILE = "erd.toml"


def load_config(config_path: Path | None = None) -> MigratorConfig:
    """Load migrator configuration from a TOML file.

    Args:
        config_path: Path to erd.toml (default: ``erd.toml`` in the current
            working directory).

    Returns:
        MigratorConfig with all profiles and schema settings.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config format is invalid.
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(
            f"Migrator config not found: {config_path}\n"
            f"Create {DEFAULT_CONFIG_FILE} with a [profiles.<name>] table."
        )

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {config_path.name}: {e}") from e

    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = DataverseProfile(**profile_data)

    schema_settings = SchemaSettings(**data.get("schema", {}))

    return MigratorConfig(profiles=profiles, schema_settings=schema_settings)
