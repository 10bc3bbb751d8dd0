"""Vault key/value client tests against a mocked hvac client."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from hvac.exceptions import Forbidden, InvalidPath
from requests.exceptions import ConnectionError as RequestsConnectionError
from tf_repo_executor.configuration.runtime_settings import SecretRef
from tf_repo_executor.secrets_access import (
    KvSchema,
    KvSchemaResolver,
    SecretAccessError,
    SecretNotFoundError,
    SecretSchemaError,
    SecretsAuthenticationError,
    SecretWriteError,
    VaultKvClient,
    effective_path,
)


@pytest.fixture()
def mock_hvac_client() -> MagicMock:
    return MagicMock()


def test_authenticate_logs_in_with_approle_and_binds_token(mock_hvac_client) -> None:
    mock_hvac_client.auth.approle.login.return_value = {"auth": {"client_token": "s.session"}}
    factory = MagicMock(return_value=mock_hvac_client)

    client = VaultKvClient.authenticate(
        "https://vault.example.com", "role", "secret", client_factory=factory
    )

    assert isinstance(client, VaultKvClient)
    factory.assert_called_once_with(url="https://vault.example.com")
    mock_hvac_client.auth.approle.login.assert_called_once_with(role_id="role", secret_id="secret")
    assert mock_hvac_client.token == "s.session"


def test_authenticate_without_token_in_response_fails(mock_hvac_client) -> None:
    mock_hvac_client.auth.approle.login.return_value = {"auth": None}

    with pytest.raises(SecretsAuthenticationError, match="No authentication data returned"):
        VaultKvClient.authenticate(
            "https://vault.example.com",
            "role",
            "secret",
            client_factory=MagicMock(return_value=mock_hvac_client),
        )


def test_authenticate_wraps_transport_errors(mock_hvac_client) -> None:
    mock_hvac_client.auth.approle.login.side_effect = RequestsConnectionError("refused")

    with pytest.raises(SecretsAuthenticationError, match="refused"):
        VaultKvClient.authenticate(
            "https://vault.example.com",
            "role",
            "secret",
            client_factory=MagicMock(return_value=mock_hvac_client),
        )


def test_discover_mount_versions_classifies_kv_engines(mock_hvac_client) -> None:
    mock_hvac_client.sys.list_mounted_secrets_engines.return_value = {
        "data": {
            "terraform/": {"type": "kv", "options": {"version": "2"}},
            "legacy/": {"type": "kv", "options": {"version": "1"}},
            "generic/": {"type": "generic", "options": None},
            "sys/": {"type": "system"},
        }
    }

    versions = VaultKvClient(mock_hvac_client).discover_mount_versions()

    assert versions == {
        "terraform": KvSchema.V2,
        "legacy": KvSchema.V1,
        "generic": KvSchema.V1,
        "sys": KvSchema.V1,
    }


def test_discover_mount_versions_accepts_unwrapped_response(mock_hvac_client) -> None:
    mock_hvac_client.sys.list_mounted_secrets_engines.return_value = {
        "terraform/": {"type": "kv", "options": {"version": "2"}},
        "request_id": "abc",
    }

    versions = VaultKvClient(mock_hvac_client).discover_mount_versions()

    assert versions == {"terraform": KvSchema.V2}


def test_discover_mount_versions_points_at_sys_mounts_on_failure(mock_hvac_client) -> None:
    mock_hvac_client.sys.list_mounted_secrets_engines.side_effect = Forbidden("denied")

    with pytest.raises(SecretAccessError, match="/sys/mounts"):
        VaultKvClient(mock_hvac_client).discover_mount_versions()


def test_read_v2_rewrites_path_and_sends_version(mock_hvac_client) -> None:
    mock_hvac_client.adapter.get.return_value = {
        "data": {"data": {"aws_access_key_id": "AKIA", "count": 3}, "metadata": {}}
    }

    data = VaultKvClient(mock_hvac_client).read(
        SecretRef(path="terraform/creds/prod", version=4), KvSchema.V2
    )

    assert data == {"aws_access_key_id": "AKIA", "count": 3}
    mock_hvac_client.adapter.get.assert_called_once_with(
        "/v1/terraform/data/creds/prod", params={"version": "4"}
    )


def test_read_v2_latest_omits_version(mock_hvac_client) -> None:
    mock_hvac_client.adapter.get.return_value = {"data": {"data": {"key": "value"}}}

    VaultKvClient(mock_hvac_client).read(SecretRef(path="terraform/creds/prod"), KvSchema.V2)

    mock_hvac_client.adapter.get.assert_called_once_with(
        "/v1/terraform/data/creds/prod", params=None
    )


def test_read_v1_uses_flat_path_and_ignores_version(mock_hvac_client) -> None:
    mock_hvac_client.adapter.get.return_value = {"data": {"key": "value", "nested": {"a": 1}}}

    data = VaultKvClient(mock_hvac_client).read(
        SecretRef(path="legacy/creds/prod", version=2), KvSchema.V1
    )

    assert data == {"key": "value", "nested": '{"a": 1}'}
    mock_hvac_client.adapter.get.assert_called_once_with("/v1/legacy/creds/prod", params=None)


def test_read_missing_secret_is_not_found(mock_hvac_client) -> None:
    mock_hvac_client.adapter.get.side_effect = InvalidPath()

    with pytest.raises(SecretNotFoundError, match="terraform/creds/missing"):
        VaultKvClient(mock_hvac_client).read(
            SecretRef(path="terraform/creds/missing"), KvSchema.V2
        )


def test_read_empty_secret_is_schema_error(mock_hvac_client) -> None:
    mock_hvac_client.adapter.get.return_value = {"data": {"data": {}}}

    with pytest.raises(SecretSchemaError, match="no key-values stored"):
        VaultKvClient(mock_hvac_client).read(SecretRef(path="terraform/creds/prod"), KvSchema.V2)


def test_read_v2_without_data_envelope_is_schema_error(mock_hvac_client) -> None:
    mock_hvac_client.adapter.get.return_value = {"data": {"aws_access_key_id": "AKIA"}}

    with pytest.raises(SecretSchemaError, match="failed to process data"):
        VaultKvClient(mock_hvac_client).read(SecretRef(path="terraform/creds/prod"), KvSchema.V2)


def test_write_outputs_v2_wraps_body_in_data_envelope(mock_hvac_client) -> None:
    VaultKvClient(mock_hvac_client).write_outputs(
        SecretRef(path="terraform/stage/outputs"),
        {"vpc_id": "vpc-123", "subnets": ["a", "b"], "count": 2, "enabled": True, "gone": None},
        KvSchema.V2,
    )

    mock_hvac_client.adapter.post.assert_called_once_with(
        "/v1/terraform/data/stage/outputs",
        json={
            "data": {
                "vpc_id": "vpc-123",
                "subnets": '["a", "b"]',
                "count": 2,
                "enabled": True,
                "gone": "",
            }
        },
    )


def test_write_v1_sends_unwrapped_body(mock_hvac_client) -> None:
    VaultKvClient(mock_hvac_client).write(
        SecretRef(path="terraform/stage/outputs"), {"vpc_id": "vpc-123"}, KvSchema.V1
    )

    mock_hvac_client.adapter.post.assert_called_once_with(
        "/v1/terraform/stage/outputs", json={"vpc_id": "vpc-123"}
    )


def test_write_failure_is_write_error(mock_hvac_client) -> None:
    mock_hvac_client.adapter.post.side_effect = Forbidden("denied")

    with pytest.raises(SecretWriteError, match="terraform/stage/outputs"):
        VaultKvClient(mock_hvac_client).write(
            SecretRef(path="terraform/stage/outputs"), {"a": "b"}, KvSchema.V2
        )


def test_schema_resolver_uses_mount_of_path() -> None:
    resolver = KvSchemaResolver({"terraform": KvSchema.V2, "legacy": KvSchema.V1})

    assert resolver.schema_for(SecretRef(path="terraform/creds/prod")) is KvSchema.V2
    assert resolver.schema_for(SecretRef(path="legacy/creds/prod")) is KvSchema.V1


def test_schema_resolver_rejects_unknown_mount() -> None:
    resolver = KvSchemaResolver({"terraform": KvSchema.V2})

    with pytest.raises(SecretSchemaError, match="'unknown' is not mounted"):
        resolver.schema_for(SecretRef(path="unknown/creds/prod"))


def test_schema_resolver_explicit_variant_bypasses_mounts() -> None:
    resolver = KvSchemaResolver({}, explicit=KvSchema.V1)

    assert resolver.schema_for(SecretRef(path="anything/at/all")) is KvSchema.V1


def test_effective_path_requires_mount_and_rest() -> None:
    assert effective_path("terraform/a/b", KvSchema.V2) == "terraform/data/a/b"
    assert effective_path("terraform/a/b", KvSchema.V1) == "terraform/a/b"
    with pytest.raises(SecretSchemaError):
        effective_path("terraform", KvSchema.V2)
