"""Scenario-style integration tests for end-to-end reconciliation behaviors."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from unittest.mock import MagicMock

from tf_repo_executor.configuration.runtime_settings import (
    GitSettings,
    RuntimeSettings,
    VaultSettings,
)
from tf_repo_executor.process_execution import CommandResult
from tf_repo_executor.run_execution import RunRequest, execute_reconciliation_run

NON_FIPS_PLAN = {
    "configuration": {
        "provider_config": {
            "aws": {"name": "aws", "expressions": {"region": {"constant_value": "us-east-1"}}}
        }
    }
}


class ScriptedToolchain:
    """git succeeds silently; terraform succeeds and returns a plan without the FIPS flag."""

    def __init__(self) -> None:
        self.terraform_steps: list[str] = []

    def __call__(
        self,
        command: tuple[str, ...],
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        if command[0] == "git":
            return CommandResult(0, "", "")
        self.terraform_steps.append(command[1])
        if command[1] == "init":
            (cwd / ".terraform").mkdir()
            (cwd / ".terraform" / "terraform.tfstate").write_text(
                json.dumps({"backend": {"type": "s3"}}), encoding="utf-8"
            )
        if command[1] == "show":
            return CommandResult(0, json.dumps(NON_FIPS_PLAN), "")
        return CommandResult(0, f"{command[1]} complete", "")


def _vault_client() -> MagicMock:
    client = MagicMock()
    client.auth.approle.login.return_value = {"auth": {"client_token": "s.session"}}
    client.sys.list_mounted_secrets_engines.return_value = {
        "data": {"terraform/": {"type": "kv", "options": {"version": "2"}}}
    }
    client.adapter.get.return_value = {
        "data": {
            "data": {
                "aws_access_key_id": "AKIAEXAMPLE",
                "aws_secret_access_key": "wJalrXUtnFEMI",
                "region": "us-east-1",
                "bucket": "state-bucket",
            }
        }
    }
    return client


def test_fips_required_dry_run_fails_compliance_naming_the_target(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
dry_run: true
repos:
  - name: foo
    repository: https://gitlab.example.com/infra/foo.git
    ref: main
    tf_version: 1.5.7
    delete: false
    require_fips: true
    aws_creds:
      path: terraform/creds/prod
""",
        encoding="utf-8",
    )
    settings = RuntimeSettings(
        config_path=config_path,
        workdir=tmp_path / "work",
        vault=VaultSettings("https://vault.example.com", "role-id", "secret-id"),
        git=GitSettings(
            "automation",
            "glpat-s3cr3t",
            "automation@example.com",
            "https://gitlab.example.com/audit/state.git",
        ),
        parallelism=10,
        log_flush_delay_seconds=0,
        terraform_root=Path("/opt/terraform"),
        heartbeat_interval_seconds=30,
    )
    toolchain = ScriptedToolchain()

    result = execute_reconciliation_run(
        RunRequest(settings=settings),
        vault_client_factory=MagicMock(return_value=_vault_client()),
        run_command=toolchain,
    )

    assert result.failure_message() == "errors encountered within 1/1 targets"
    error = result.outcomes[0].error
    assert error is not None
    assert error.target_name == "foo"
    assert "repository 'foo'" in error.message
    assert "use_fips_endpoint = true" in error.message
    assert toolchain.terraform_steps == ["init", "plan", "show"]
    assert list((tmp_path / "work").iterdir()) == []
