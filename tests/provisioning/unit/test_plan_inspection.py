"""Plan and backend inspection tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from tf_repo_executor.provisioning import (
    BackendVerificationError,
    ComplianceError,
    check_fips_compliance,
    uses_fips_endpoint,
    verify_s3_backend,
)


def _plan(*providers: dict) -> dict:
    return {
        "configuration": {
            "provider_config": {
                provider.get("alias", provider["name"]): provider for provider in providers
            }
        }
    }


def _fips(value: object) -> dict:
    return {"use_fips_endpoint": {"constant_value": value}}


def test_aws_provider_with_fips_endpoint_is_compliant() -> None:
    plan = _plan({"name": "aws", "expressions": _fips(True)})

    assert uses_fips_endpoint(plan) is True
    check_fips_compliance("foo", plan)


def test_aliased_aws_provider_counts() -> None:
    plan = _plan(
        {"name": "vault"},
        {"name": "aws", "alias": "aws.east", "expressions": _fips(True)},
    )

    assert uses_fips_endpoint(plan) is True


@pytest.mark.parametrize(
    "plan",
    [
        {},
        _plan({"name": "aws"}),
        _plan({"name": "aws", "expressions": _fips(False)}),
        _plan({"name": "aws", "expressions": _fips("true")}),
        _plan({"name": "google", "expressions": _fips(True)}),
    ],
)
def test_missing_or_false_fips_endpoint_fails_naming_target(plan: dict) -> None:
    with pytest.raises(ComplianceError, match="repository 'foo'"):
        check_fips_compliance("foo", plan)


def _write_backend_state(working_dir: Path, contents: str) -> None:
    state_dir = working_dir / ".terraform"
    state_dir.mkdir(parents=True)
    (state_dir / "terraform.tfstate").write_text(contents, encoding="utf-8")


def test_s3_backend_passes(tmp_path: Path) -> None:
    _write_backend_state(tmp_path, json.dumps({"backend": {"type": "s3", "config": {}}}))

    verify_s3_backend("foo", tmp_path)


@pytest.mark.parametrize(
    ("contents", "message"),
    [
        (None, "empty terraform state"),
        ("", "empty terraform state"),
        ("{not json", "failed to parse"),
        (json.dumps({"version": 3}), "does not have backend configuration"),
        (json.dumps({"backend": {"type": ""}}), "invalid backend type"),
        (json.dumps({"backend": {"type": "local"}}), "'local' instead of required S3"),
    ],
)
def test_non_s3_backend_fails_naming_target(
    tmp_path: Path, contents: str | None, message: str
) -> None:
    if contents is not None:
        _write_backend_state(tmp_path, contents)

    with pytest.raises(BackendVerificationError, match=message) as excinfo:
        verify_s3_backend("foo", tmp_path)

    assert "foo" in str(excinfo.value)
