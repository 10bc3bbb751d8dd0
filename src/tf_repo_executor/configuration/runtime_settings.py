"""Configuration domain entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

LATEST_SECRET_VERSION = 0


@dataclass(frozen=True)
class SecretRef:
    """Location of a key/value secret; version 0 means latest."""

    path: str
    version: int = LATEST_SECRET_VERSION

    @property
    def mount(self) -> str:
        return self.path.split("/", 1)[0]


@dataclass(frozen=True)
class TargetVariables:
    """Optional secrets feeding provisioning inputs and receiving its outputs."""

    inputs: SecretRef | None = None
    outputs: SecretRef | None = None


@dataclass(frozen=True)
class Target:  # pylint: disable=too-many-instance-attributes
    """One declared infrastructure repository to reconcile."""

    name: str
    repository: str
    ref: str
    project_path: str
    aws_creds: SecretRef
    tf_version: str
    delete: bool = False
    bucket: str | None = None
    region: str | None = None
    bucket_path: str | None = None
    require_fips: bool = False
    variables: TargetVariables = field(default_factory=TargetVariables)

    @property
    def has_backend_override(self) -> bool:
        return bool(self.bucket) and bool(self.region)


@dataclass(frozen=True)
class RunInput:
    """Decoded run input: dry-run flag plus ordered targets."""

    dry_run: bool
    targets: tuple[Target, ...]


@dataclass(frozen=True)
class VaultSettings:
    """Secrets store address and AppRole credentials."""

    address: str
    role_id: str
    secret_id: str
    kv_version: str | None = None


@dataclass(frozen=True)
class GitSettings:
    """Source-control credentials and audit repository location."""

    username: str
    token: str
    author_email: str
    log_repository: str
    ca_bundle: Path | None = None


@dataclass(frozen=True)
class RuntimeSettings:  # pylint: disable=too-many-instance-attributes
    """Process-level settings read from the environment."""

    config_path: Path
    workdir: Path
    vault: VaultSettings
    git: GitSettings
    parallelism: int
    log_flush_delay_seconds: int
    terraform_root: Path
    heartbeat_interval_seconds: int
