"""Target platform access.

Provides the ``MetadataClient`` Protocol and the Web API implementation
``DataverseClient`` with its token providers.

Usage:
    from erd_migrator.dataverse import DataverseClient, MetadataClient
"""

from erd_migrator.dataverse.base import MetadataClient
from erd_migrator.dataverse.client import (
    ClientCredentialsTokenProvider,
    DataverseClient,
    DataverseError,
    StaticTokenProvider,
)

__all__ = [
    "MetadataClient",
    "DataverseClient",
    "DataverseError",
    "ClientCredentialsTokenProvider",
    "StaticTokenProvider",
]
