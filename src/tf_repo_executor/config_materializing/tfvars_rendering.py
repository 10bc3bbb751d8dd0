"""Backend and variable file rendering."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path

from jinja2 import Environment, StrictUndefined

from tf_repo_executor.secrets_access import KvValue

from .credential_extraction import CredentialRecord

BACKEND_FILE = "s3.tfbackend"
AWS_VARS_FILE = "aws.auto.tfvars"
INPUT_VARS_FILE = "input.auto.tfvars"

_FILE_PERMISSIONS = 0o600
_HCL_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_-]*")


class InvalidVariableNameError(Exception):
    """Raised when an input secret key cannot be used as a terraform variable name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"input variable name {name!r} is not a valid terraform identifier")
        self.name = name


def hcl_string(value: KvValue) -> str:
    """Escape a scalar for use inside a double-quoted HCL string literal."""
    if isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("${", "$${")
        .replace("%{", "%%{")
    )


_TEMPLATES = Environment(
    autoescape=False,
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
    undefined=StrictUndefined,
)
_TEMPLATES.filters["hcl"] = hcl_string

_BACKEND_TEMPLATE = _TEMPLATES.from_string(
    'access_key = "{{ access_key | hcl }}"\n'
    'secret_key = "{{ secret_key | hcl }}"\n'
    'region = "{{ region | hcl }}"\n'
    'key = "{{ key | hcl }}"\n'
    'bucket = "{{ bucket | hcl }}"\n'
)

_CREDENTIAL_VARS_TEMPLATE = _TEMPLATES.from_string(
    'access_key = "{{ access_key | hcl }}"\n'
    'secret_key = "{{ secret_key | hcl }}"\n'
    'region = "{{ region | hcl }}"\n'
    'vault_addr = "{{ vault_addr | hcl }}"\n'
    'vault_role_id = "{{ vault_role_id | hcl }}"\n'
    'vault_secret_id = "{{ vault_secret_id | hcl }}"\n'
)

_INPUT_VARS_TEMPLATE = _TEMPLATES.from_string(
    "{% for name, value in variables %}\n"
    '{{ name }} = "{{ value | hcl }}"\n'
    "{% endfor %}\n"
)


def render_backend(record: CredentialRecord, output_path: Path) -> Path:
    """Write the partial S3 backend configuration consumed by `terraform init`."""
    content = _BACKEND_TEMPLATE.render(
        access_key=record.access_key,
        secret_key=record.secret_key,
        region=record.region,
        key=record.key,
        bucket=record.bucket,
    )
    return _write(output_path, content)


def render_credential_vars(
    record: CredentialRecord,
    secrets_address: str,
    role_id: str,
    secret_id: str,
    output_path: Path,
) -> Path:
    """Write provider credentials for the AWS and Vault providers as auto-loaded variables."""
    content = _CREDENTIAL_VARS_TEMPLATE.render(
        access_key=record.access_key,
        secret_key=record.secret_key,
        region=record.region,
        vault_addr=secrets_address,
        vault_role_id=role_id,
        vault_secret_id=secret_id,
    )
    return _write(output_path, content)


def render_input_vars(data: Mapping[str, KvValue], output_path: Path) -> Path:
    """Write one quoted `name = "value"` assignment per key, sorted by name."""
    for name in data:
        if not _HCL_IDENTIFIER.fullmatch(name):
            raise InvalidVariableNameError(name)
    content = _INPUT_VARS_TEMPLATE.render(variables=sorted(data.items()))
    return _write(output_path, content)


def _write(output_path: Path, content: str) -> Path:
    descriptor = os.open(output_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _FILE_PERMISSIONS)
    with os.fdopen(descriptor, "w", encoding="utf-8") as handle:
        handle.write(content)
    return output_path
