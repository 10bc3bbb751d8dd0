"""Vault key/value client supporting both KV engine schema variants."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

import hvac
from hvac.exceptions import InvalidPath, VaultError
from requests.exceptions import RequestException

from tf_repo_executor.configuration.runtime_settings import LATEST_SECRET_VERSION, SecretRef

from .kv_models import KvSchema, KvValue, coerce_kv_data

LOGGER = logging.getLogger(__name__)

APPROLE_LOGIN_PATH = "auth/approle/login"


class SecretsAuthenticationError(Exception):
    """Raised when the AppRole login does not yield a session token."""


class SecretAccessError(Exception):
    """Raised when the secrets store cannot be reached or refuses a request."""


class SecretNotFoundError(Exception):
    """Raised when no secret exists at a path."""


class SecretSchemaError(Exception):
    """Raised when a secret exists but its payload does not have the expected shape."""


class SecretWriteError(Exception):
    """Raised when writing a secret fails."""


class VaultKvClient:
    """Reads and writes key/value secrets through an authenticated hvac session.

    The session token is acquired once and shared read-only by every caller.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def authenticate(
        cls,
        address: str,
        role_id: str,
        secret_id: str,
        *,
        client_factory: Callable[..., Any] = hvac.Client,
    ) -> VaultKvClient:
        """Log in with AppRole credentials and return a client bound to the session."""
        client = client_factory(url=address)
        try:
            response = client.auth.approle.login(role_id=role_id, secret_id=secret_id)
        except (VaultError, RequestException) as exc:
            raise SecretsAuthenticationError(f"Failed to log in with AppRole: {exc}") from exc
        auth = response.get("auth") if isinstance(response, Mapping) else None
        token = auth.get("client_token") if isinstance(auth, Mapping) else None
        if not token:
            raise SecretsAuthenticationError("No authentication data returned")
        client.token = token
        LOGGER.info("Authenticated to Vault at %s", address)
        return cls(client)

    def discover_mount_versions(self) -> dict[str, KvSchema]:
        """Map every mounted secrets engine to the KV schema variant it speaks."""
        try:
            response = self._client.sys.list_mounted_secrets_engines()
        except (VaultError, RequestException) as exc:
            raise SecretAccessError(
                "unable to retrieve information about mounted secret engines, please ensure "
                f"that the AppRole has access to /sys/mounts. Further info: {exc}"
            ) from exc
        if not isinstance(response, Mapping):
            raise SecretAccessError("unexpected response when listing mounted secret engines")
        mounts = response.get("data") or response
        versions: dict[str, KvSchema] = {}
        for raw_mount, details in mounts.items():
            if not isinstance(details, Mapping) or not str(raw_mount).endswith("/"):
                continue
            options = details.get("options") or {}
            is_v2 = details.get("type") == "kv" and str(options.get("version")) == "2"
            versions[str(raw_mount).rstrip("/")] = KvSchema.V2 if is_v2 else KvSchema.V1
        return versions

    def read(self, ref: SecretRef, schema: KvSchema) -> dict[str, KvValue]:
        """Read the key/value pairs stored at `ref`."""
        path = effective_path(ref.path, schema)
        params = None
        if schema is KvSchema.V2 and ref.version != LATEST_SECRET_VERSION:
            params = {"version": str(ref.version)}
        try:
            response = self._client.adapter.get(f"/v1/{path}", params=params)
        except InvalidPath as exc:
            raise SecretNotFoundError(f"no secret found at specified path: {ref.path}") from exc
        except (VaultError, RequestException) as exc:
            raise SecretAccessError(f"failed to read secret at path {ref.path}: {exc}") from exc

        if not isinstance(response, Mapping):
            raise SecretNotFoundError(f"no secret found at specified path: {ref.path}")
        data = response.get("data")
        if not data:
            raise SecretSchemaError(f"no key-values stored within secret at path: {ref.path}")
        if schema is KvSchema.V2:
            data = data.get("data") if isinstance(data, Mapping) else None
            if not isinstance(data, Mapping):
                raise SecretSchemaError(f"failed to process data for secret at path: {ref.path}")
            if not data:
                raise SecretSchemaError(f"no key-values stored within secret at path: {ref.path}")
        if not isinstance(data, Mapping):
            raise SecretSchemaError(f"failed to process data for secret at path: {ref.path}")
        return coerce_kv_data(data)

    def write(self, ref: SecretRef, data: Mapping[str, Any], schema: KvSchema) -> None:
        """Replace the key/value pairs stored at `ref`."""
        path = effective_path(ref.path, schema)
        values = coerce_kv_data(data)
        body: dict[str, Any] = {"data": values} if schema is KvSchema.V2 else values
        try:
            self._client.adapter.post(f"/v1/{path}", json=body)
        except (VaultError, RequestException) as exc:
            raise SecretWriteError(f"failed to write secret at path {ref.path}: {exc}") from exc

    def write_outputs(self, ref: SecretRef, outputs: Mapping[str, Any], schema: KvSchema) -> None:
        """Persist captured provisioning outputs; values are never logged."""
        LOGGER.info("Writing Output values from Terraform Apply to %s in Vault", ref.path)
        self.write(ref, outputs, schema)


class KvSchemaResolver:  # pylint: disable=too-few-public-methods
    """Selects the schema variant for a secret from its mount, or a fixed override."""

    def __init__(
        self,
        mount_versions: Mapping[str, KvSchema],
        *,
        explicit: KvSchema | None = None,
    ) -> None:
        self._mount_versions = dict(mount_versions)
        self._explicit = explicit

    def schema_for(self, ref: SecretRef) -> KvSchema:
        if self._explicit is not None:
            return self._explicit
        schema = self._mount_versions.get(ref.mount)
        if schema is None:
            raise SecretSchemaError(
                f"invalid vault kv engine version specified: mount '{ref.mount}' is not mounted"
            )
        return schema


def effective_path(path: str, schema: KvSchema) -> str:
    """Rewrite `<mount>/<rest>` to `<mount>/data/<rest>` for the v2 schema."""
    mount, separator, rest = path.strip("/").partition("/")
    if not separator or not rest:
        raise SecretSchemaError(f"invalid vault path: {path}")
    if schema is KvSchema.V2:
        return f"{mount}/data/{rest}"
    return f"{mount}/{rest}"
