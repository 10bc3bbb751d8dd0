"""Credential record extraction from secrets store data."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from tf_repo_executor.configuration.runtime_settings import Target
from tf_repo_executor.secrets_access import KvValue

LOGGER = logging.getLogger(__name__)

AWS_ACCESS_KEY_ID = "aws_access_key_id"
AWS_SECRET_ACCESS_KEY = "aws_secret_access_key"
AWS_REGION = "region"
AWS_BUCKET = "bucket"

STATE_KEY_SUFFIX = "-tf-repo.tfstate"


class CredentialExtractionError(Exception):
    """Raised when a required credential field is missing from a secret."""

    def __init__(self, field_name: str, secret_path: str) -> None:
        self.field_name = field_name
        super().__init__(
            f"Required terraform key `{field_name}` missing from Vault secret at path: "
            f"{secret_path}"
        )


@dataclass(frozen=True)
class CredentialRecord:
    """Resolved cloud credentials and remote-state location for one target run."""

    access_key: str
    secret_key: str
    region: str
    bucket: str
    key: str

    def __repr__(self) -> str:
        return (
            f"CredentialRecord(region={self.region!r}, bucket={self.bucket!r}, key={self.key!r})"
        )


def state_object_key(name: str, prefix: str | None = None) -> str:
    """Derive the remote state object key from the target name and optional prefix."""
    trimmed = (prefix or "").strip("/")
    if trimmed:
        return f"{trimmed}/{name}{STATE_KEY_SUFFIX}"
    return f"{name}{STATE_KEY_SUFFIX}"


def extract_credentials(secret: Mapping[str, KvValue], target: Target) -> CredentialRecord:
    """Merge secret data with the target's explicit bucket/region, which always win."""
    secret_path = target.aws_creds.path
    access_key = _require(secret, AWS_ACCESS_KEY_ID, secret_path)
    secret_key = _require(secret, AWS_SECRET_ACCESS_KEY, secret_path)

    if target.has_backend_override:
        bucket = str(target.bucket)
        region = str(target.region)
    else:
        if target.bucket or target.region:
            LOGGER.warning(
                "%s sets only one of bucket/region; reading both from %s",
                target.name,
                secret_path,
            )
        bucket = _require(secret, AWS_BUCKET, secret_path)
        region = _require(secret, AWS_REGION, secret_path)

    return CredentialRecord(
        access_key=access_key,
        secret_key=secret_key,
        region=region,
        bucket=bucket,
        key=state_object_key(target.name, target.bucket_path),
    )


def _require(secret: Mapping[str, KvValue], field_name: str, secret_path: str) -> str:
    value = secret.get(field_name)
    if value is None or isinstance(value, bool) or str(value) == "":
        raise CredentialExtractionError(field_name, secret_path)
    return str(value)
