"""Checks over terraform plan and backend metadata."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

FIPS_ATTRIBUTE = "use_fips_endpoint"
REQUIRED_BACKEND_TYPE = "s3"


class ComplianceError(Exception):
    """Raised when a plan does not satisfy a target's compliance requirement."""


class BackendVerificationError(Exception):
    """Raised when an initialized working directory does not use the S3 backend."""


def uses_fips_endpoint(plan: Mapping[str, Any]) -> bool:
    """Whether any `aws` provider configuration sets `use_fips_endpoint = true`."""
    configuration = plan.get("configuration") or {}
    provider_configs = configuration.get("provider_config") or {}
    for provider in provider_configs.values():
        if not isinstance(provider, Mapping) or provider.get("name") != "aws":
            continue
        expression = (provider.get("expressions") or {}).get(FIPS_ATTRIBUTE) or {}
        if expression.get("constant_value") is True:
            return True
    return False


def check_fips_compliance(target_name: str, plan: Mapping[str, Any]) -> None:
    if not uses_fips_endpoint(plan):
        raise ComplianceError(
            f"repository '{target_name}' is not using '{FIPS_ATTRIBUTE} = true' for the AWS "
            "provider despite the repo requiring fips"
        )


def verify_s3_backend(target_name: str, working_dir: Path) -> None:
    """Confirm `terraform init` bound the working directory to an S3 backend."""
    backend_state = working_dir / ".terraform" / "terraform.tfstate"
    if not backend_state.exists() or not backend_state.read_text(encoding="utf-8").strip():
        raise BackendVerificationError(
            f"repository '{target_name}' has empty terraform state, which indicates no S3 "
            "backend is configured"
        )
    try:
        state = json.loads(backend_state.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise BackendVerificationError(
            f"failed to parse terraform state for repo '{target_name}': {exc}"
        ) from exc
    backend = state.get("backend") if isinstance(state, Mapping) else None
    if not isinstance(backend, Mapping):
        raise BackendVerificationError(
            f"repository '{target_name}' does not have backend configuration in terraform state"
        )
    backend_type = backend.get("type")
    if not isinstance(backend_type, str) or not backend_type:
        raise BackendVerificationError(
            f"repository '{target_name}' has invalid backend type in terraform state"
        )
    if backend_type != REQUIRED_BACKEND_TYPE:
        raise BackendVerificationError(
            f"repository '{target_name}' is using backend type '{backend_type}' instead of "
            "required S3 backend"
        )
