"""Dataverse Web API metadata client.

Provides ``DataverseClient``, a blocking implementation of the
``MetadataClient`` protocol on top of a ``requests.Session``, and the
token providers it authenticates with.

Throttled calls (HTTP 429) are retried up to ``max_retries`` times,
waiting the server's ``Retry-After`` interval.  Callers only ever see the
final success or a ``DataverseError``.

Usage:
    from erd_migrator.dataverse.client import (
        ClientCredentialsTokenProvider,
        DataverseClient,
    )

    tokens = ClientCredentialsTokenProvider(
        tenant_id="...", client_id="...", client_secret="...",
        resource="https://contoso.crm.dynamics.com",
    )
    with DataverseClient("https://contoso.crm.dynamics.com", tokens) as client:
        client.find_table_by_name("new_invoice")
"""

import logging
import re
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

import requests

if TYPE_CHECKING:
    from erd_migrator.deploy.payloads import OptionSetPayload, RelationshipPayload, TablePayload

logger = logging.getLogger(__name__)

DEFAULT_AUTHORITY = "https://login.microsoftonline.com"
DEFAULT_RETRY_AFTER = 5.0

_ENTITY_ID = re.compile(r"\(([0-9a-fA-F]{8}(?:-[0-9a-fA-F]{4}){3}-[0-9a-fA-F]{12})\)")


class DataverseError(Exception):
    """Raised when a Web API call fails.

    Attributes:
        status_code: HTTP status, or None if no response was received.
        code: Platform error code from the response body, if any.
    """

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None) -> None:
        self.status_code = status_code
        self.code = code
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.status_code is None:
            return message
        return f"HTTP {self.status_code}: {message}"


# ============================================================================
# Token providers
# ============================================================================


class TokenProvider(Protocol):
    def get_token(self) -> str: ...


class StaticTokenProvider:
    """Serves a token obtained elsewhere (e.g. from an environment variable)."""

    def __init__(self, token: str) -> None:
        self._token = token

    def get_token(self) -> str:
        return self._token


class ClientCredentialsTokenProvider:
    """OAuth client-credentials flow against the Microsoft identity platform.

    The token is cached until one minute before it expires.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        resource: str,
        authority: str = DEFAULT_AUTHORITY,
        session: requests.Session | None = None,
        timeout: float = 30,
    ) -> None:
        self._token_url = f"{authority.rstrip('/')}/{tenant_id}/oauth2/v2.0/token"
        self._client_id = client_id
        self._client_secret = client_secret
        self._scope = f"{resource.rstrip('/')}/.default"
        self._session = session or requests.Session()
        self._timeout = timeout
        self._token: str | None = None
        self._expires_at = 0.0

    def get_token(self) -> str:
        if self._token is not None and time.monotonic() < self._expires_at:
            return self._token

        try:
            response = self._session.post(
                self._token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "scope": self._scope,
                },
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise DataverseError(f"Token request failed: {e}") from e

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = {}
            raise DataverseError(
                body.get("error_description") or response.text or "Token request rejected",
                status_code=response.status_code,
                code=body.get("error"),
            )

        try:
            body = response.json()
            self._token = body["access_token"]
        except (ValueError, KeyError, TypeError):
            raise DataverseError(
                "Token response carries no access_token", status_code=response.status_code
            )
        self._expires_at = time.monotonic() + float(body.get("expires_in", 3600)) - 60
        logger.debug("Acquired access token")
        return self._token


# ============================================================================
# Client
# ============================================================================


class DataverseClient:
    """Blocking Web API implementation of the ``MetadataClient`` protocol.

    Args:
        environment_url: Environment root, e.g. ``https://org.crm.dynamics.com``.
        token_provider: Object with ``get_token() -> str``.
        api_version: Web API version segment.
        solution: Optional solution unique name; created components are
            added to it via the ``MSCRM.SolutionUniqueName`` header.
        max_retries: Retries for throttled (429) calls.
        timeout: Per-request timeout in seconds.
        session: Optional pre-built ``requests.Session``.
        sleep: Sleep function used between retries (injectable for tests).

    Example:
        client = DataverseClient(url, StaticTokenProvider(token))
        option_set_id = client.find_option_set_by_name("new_status")
        client.close()
    """

    def __init__(
        self,
        environment_url: str,
        token_provider: TokenProvider,
        api_version: str = "9.2",
        solution: str | None = None,
        max_retries: int = 3,
        timeout: float = 30,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._base_url = f"{environment_url.rstrip('/')}/api/data/v{api_version}/"
        self._tokens = token_provider
        self._solution = solution
        self._max_retries = max_retries
        self._timeout = timeout
        self._session = session or requests.Session()
        self._sleep = sleep

    def __enter__(self) -> "DataverseClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._tokens.get_token()}",
            "Accept": "application/json",
            "Content-Type": "application/json; charset=utf-8",
            "OData-MaxVersion": "4.0",
            "OData-Version": "4.0",
        }
        if self._solution:
            headers["MSCRM.SolutionUniqueName"] = self._solution
        return headers

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> requests.Response:
        url = self._base_url + path
        attempt = 0
        while True:
            try:
                response = self._session.request(
                    method,
                    url,
                    headers=self._headers(),
                    params=params,
                    json=json,
                    timeout=self._timeout,
                )
            except requests.RequestException as e:
                raise DataverseError(f"{method} {path} failed: {e}") from e

            if response.status_code != 429 or attempt >= self._max_retries:
                return response

            attempt += 1
            delay = _retry_after(response)
            logger.warning(
                f"Throttled on {method} {path}; retry {attempt}/{self._max_retries} in {delay:g}s"
            )
            self._sleep(delay)

    @staticmethod
    def _raise_for_status(response: requests.Response, action: str) -> None:
        if response.ok:
            return
        code = None
        message = response.text or response.reason or "request failed"
        try:
            error = response.json().get("error", {})
            code = error.get("code")
            message = error.get("message") or message
        except (ValueError, AttributeError):
            pass
        raise DataverseError(f"{action}: {message}", status_code=response.status_code, code=code)

    def _find(self, path: str, action: str) -> str | None:
        response = self._request("GET", path, params={"$select": "MetadataId"})
        if response.status_code == 404:
            return None
        self._raise_for_status(response, action)
        try:
            return response.json().get("MetadataId")
        except (ValueError, AttributeError):
            raise DataverseError(f"{action}: unreadable response body", response.status_code)

    def _create(self, collection: str, body: dict[str, Any], action: str) -> str:
        response = self._request("POST", collection, json=body)
        self._raise_for_status(response, action)

        entity_id = response.headers.get("OData-EntityId", "")
        match = _ENTITY_ID.search(entity_id)
        if match:
            return match.group(1)
        try:
            return response.json()["MetadataId"]
        except (ValueError, KeyError):
            raise DataverseError(f"{action}: response carries no identifier", response.status_code)

    # ------------------------------------------------------------------
    # MetadataClient
    # ------------------------------------------------------------------

    def find_option_set_by_name(self, name: str) -> str | None:
        return self._find(
            f"GlobalOptionSetDefinitions(Name='{_quote(name)}')",
            f"Find option set {name}",
        )

    def create_option_set(self, payload: "OptionSetPayload") -> str:
        return self._create(
            "GlobalOptionSetDefinitions",
            payload.to_payload(),
            f"Create option set {payload.name}",
        )

    def find_table_by_name(self, schema_name: str) -> str | None:
        return self._find(
            f"EntityDefinitions(LogicalName='{_quote(schema_name.lower())}')",
            f"Find table {schema_name}",
        )

    def create_table(self, payload: "TablePayload") -> str:
        return self._create(
            "EntityDefinitions",
            payload.to_payload(),
            f"Create table {payload.schema_name}",
        )

    def find_relationship_by_name(self, schema_name: str) -> str | None:
        return self._find(
            f"RelationshipDefinitions(SchemaName='{_quote(schema_name)}')",
            f"Find relationship {schema_name}",
        )

    def create_relationship(self, payload: "RelationshipPayload") -> str:
        return self._create(
            "RelationshipDefinitions",
            payload.to_payload(),
            f"Create relationship {payload.schema_name}",
        )

    def close(self) -> None:
        self._session.close()


def _quote(value: str) -> str:
    """Escape a value for an OData string literal."""
    return value.replace("'", "''")


def _retry_after(response: requests.Response) -> float:
    value = response.headers.get("Retry-After")
    try:
        return max(float(value), 0.0) if value is not None else DEFAULT_RETRY_AFTER
    except ValueError:
        return DEFAULT_RETRY_AFTER
