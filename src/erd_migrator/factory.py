"""Metadata client factory.

Resolves the active environment profile from erd.toml and builds an
authenticated ``DataverseClient`` for it.

Profile resolution priority:
1. Explicit ``profile_name`` argument
2. ``{env_prefix}ERD_PROFILE`` environment variable
3. The only profile in erd.toml, if exactly one is configured
"""

import logging
import os
from pathlib import Path

from erd_migrator.config.loader import load_config
from erd_migrator.config.models import DataverseProfile, MigratorConfig
from erd_migrator.dataverse.client import (
    ClientCredentialsTokenProvider,
    DataverseClient,
    StaticTokenProvider,
    TokenProvider,
)

logger = logging.getLogger(__name__)


class ProfileNotFoundError(Exception):
    """Raised when no environment profile is configured or found."""

    pass


def get_active_profile_name(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: MigratorConfig | None = None,
) -> str:
    """Get active profile name from argument, env var, or config.

    Args:
        profile_name: Explicit profile name; wins when given.
        env_prefix: Prefix for the environment variable lookup
            (e.g. ``"APP_"`` reads ``APP_ERD_PROFILE``).
        config: Loaded config, used for the single-profile fallback.

    Returns:
        Profile name.

    Raises:
        ProfileNotFoundError: If no profile can be determined.
    """
    if profile_name:
        return profile_name

    env_profile = os.environ.get(f"{env_prefix}ERD_PROFILE")
    if env_profile:
        return env_profile

    if config is not None and len(config.profiles) == 1:
        return next(iter(config.profiles))

    available = ", ".join(config.profiles) if config is not None else "none loaded"
    raise ProfileNotFoundError(
        "No environment profile selected.\n"
        f"Pass --profile or set {env_prefix}ERD_PROFILE. Available profiles: {available}"
    )


def get_active_profile(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> tuple[str, DataverseProfile, MigratorConfig]:
    """Get active profile name, its configuration and the whole config.

    Raises:
        ProfileNotFoundError: If no profile is selected or it is not in erd.toml.
        FileNotFoundError: If erd.toml does not exist.
    """
    config = load_config(config_path)
    name = get_active_profile_name(profile_name, env_prefix=env_prefix, config=config)

    if name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{name}' not found in erd.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return name, config.profiles[name], config


def resolve_token_provider(profile: DataverseProfile, env_prefix: str = "") -> TokenProvider:
    """Pick a token source for *profile*.

    A ready-made token in ``{env_prefix}DATAVERSE_TOKEN`` wins; otherwise the
    client-credentials flow is used, with the secret taken from the profile
    or ``{env_prefix}DATAVERSE_CLIENT_SECRET``.

    Raises:
        ProfileNotFoundError: If neither a token nor full client credentials
            are available.
    """
    token = os.environ.get(f"{env_prefix}DATAVERSE_TOKEN")
    if token:
        logger.debug("Using access token from environment")
        return StaticTokenProvider(token)

    secret = profile.client_secret or os.environ.get(f"{env_prefix}DATAVERSE_CLIENT_SECRET")
    if not (profile.tenant_id and profile.client_id and secret):
        raise ProfileNotFoundError(
            "Profile has no usable credentials.\n"
            f"Set tenant_id, client_id and client_secret (or {env_prefix}DATAVERSE_CLIENT_SECRET), "
            f"or provide a token in {env_prefix}DATAVERSE_TOKEN."
        )

    return ClientCredentialsTokenProvider(
        tenant_id=profile.tenant_id,
        client_id=profile.client_id,
        client_secret=secret,
        resource=profile.url,
    )


def get_client(profile: DataverseProfile, env_prefix: str = "") -> DataverseClient:
    """Build an authenticated client for *profile*.

    Example:
        >>> name, profile, config = get_active_profile("dev")
        >>> with get_client(profile) as client:
        ...     client.find_table_by_name("new_invoice")
    """
    return DataverseClient(
        profile.url,
        resolve_token_provider(profile, env_prefix=env_prefix),
        solution=profile.solution,
    )
