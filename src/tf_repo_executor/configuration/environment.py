"""Runtime settings read from the process environment."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from .loader import ConfigurationError
from .runtime_settings import GitSettings, RuntimeSettings, VaultSettings

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "/config.yaml"
DEFAULT_WORKDIR = "/tmp/tf-repo"
DEFAULT_TERRAFORM_ROOT = "/usr/bin/Terraform"
DEFAULT_PARALLELISM = 10
DEFAULT_LOG_FLUSH_DELAY_SECONDS = 3
DEFAULT_HEARTBEAT_INTERVAL_SECONDS = 30

REQUIRED_VARIABLES = (
    "VAULT_ADDR",
    "VAULT_ROLE_ID",
    "VAULT_SECRET_ID",
    "GITLAB_LOG_REPO",
    "GITLAB_USERNAME",
    "GITLAB_TOKEN",
    "GIT_EMAIL",
)

_KV_VERSION_ALIASES = {"1": "v1", "v1": "v1", "kv_v1": "v1", "2": "v2", "v2": "v2", "kv_v2": "v2"}


def load_runtime_settings(environ: Mapping[str, str]) -> RuntimeSettings:
    """Build runtime settings, reporting every missing required variable at once."""
    missing = [key for key in REQUIRED_VARIABLES if not environ.get(key, "").strip()]
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    ca_bundle = _get_or_default(environ, "GIT_CA_BUNDLE", "")
    return RuntimeSettings(
        config_path=Path(_get_or_default(environ, "CONFIG_FILE", DEFAULT_CONFIG_PATH)),
        workdir=Path(_get_or_default(environ, "WORKDIR", DEFAULT_WORKDIR)),
        vault=VaultSettings(
            address=environ["VAULT_ADDR"].strip(),
            role_id=environ["VAULT_ROLE_ID"].strip(),
            secret_id=environ["VAULT_SECRET_ID"].strip(),
            kv_version=_parse_kv_version(environ.get("VAULT_KV_VERSION")),
        ),
        git=GitSettings(
            username=environ["GITLAB_USERNAME"].strip(),
            token=environ["GITLAB_TOKEN"].strip(),
            author_email=environ["GIT_EMAIL"].strip(),
            log_repository=environ["GITLAB_LOG_REPO"].strip(),
            ca_bundle=Path(ca_bundle) if ca_bundle else None,
        ),
        parallelism=_require_positive_int(environ, "TF_PARALLELISM", DEFAULT_PARALLELISM),
        log_flush_delay_seconds=load_log_flush_delay(environ),
        terraform_root=Path(_get_or_default(environ, "TF_BINARY_ROOT", DEFAULT_TERRAFORM_ROOT)),
        heartbeat_interval_seconds=_require_positive_int(
            environ, "HEARTBEAT_INTERVAL_SECONDS", DEFAULT_HEARTBEAT_INTERVAL_SECONDS
        ),
    )


def load_log_flush_delay(environ: Mapping[str, str]) -> int:
    """Read the post-run log flush delay; invalid values fall back to the default."""
    return _lenient_non_negative_int(
        environ, "LOG_FLUSH_DELAY_SECONDS", DEFAULT_LOG_FLUSH_DELAY_SECONDS
    )


def _get_or_default(environ: Mapping[str, str], key: str, default: str) -> str:
    value = environ.get(key, "").strip()
    if not value:
        if default:
            LOGGER.info("%s not set. Using default value: `%s`", key, default)
        return default
    return value


def _require_positive_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"Integer value required for `{key}` environment variable"
        ) from exc
    if value <= 0:
        raise ConfigurationError(f"{key} must be greater than zero.")
    return value


def _lenient_non_negative_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        LOGGER.warning("%s is not an integer (%r). Using default value: `%s`", key, raw, default)
        return default
    return max(value, 0)


def _parse_kv_version(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    normalized = _KV_VERSION_ALIASES.get(value.strip().lower())
    if normalized is None:
        raise ConfigurationError(f"VAULT_KV_VERSION must be one of v1 or v2, got: {value}")
    return normalized
