"""Terraform binary driver for the per-target provisioning lifecycle."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from tf_repo_executor.config_materializing import BACKEND_FILE
from tf_repo_executor.configuration.runtime_settings import Target
from tf_repo_executor.process_execution import (
    CommandNotFoundError,
    CommandResult,
    CommandRunner,
    SubprocessCommandRunner,
)
from tf_repo_executor.redaction import Redactor

from .heartbeat import Heartbeat
from .plan_inspection import check_fips_compliance, verify_s3_backend

LOGGER = logging.getLogger(__name__)

TERRAFORM_ENVIRONMENT = {"TF_IN_AUTOMATION": "1", "CHECKPOINT_DISABLE": "1"}
_COMMON_FLAGS = ("-input=false", "-no-color")


class ProvisioningError(Exception):
    """Raised when a terraform sub-step fails; the message carries its standard error."""


class OutputCaptureError(Exception):
    """Raised when terraform outputs cannot be captured after an apply."""


class StateSink(Protocol):  # pylint: disable=too-few-public-methods
    """Receiver of the raw human-readable state after a successful run."""

    def archive(self, target: Target, raw_state: str) -> None: ...


@dataclass(frozen=True)
class ProvisioningRequest:
    """One target's provisioning run over an already materialized working directory."""

    target: Target
    working_dir: Path
    plan_path: Path
    dry_run: bool
    redactor: Redactor = field(default_factory=Redactor)


class TerraformDriver:
    """Drives init, plan/apply/destroy, output capture, compliance and state archival."""

    def __init__(
        self,
        terraform_root: Path,
        *,
        run_command: CommandRunner | None = None,
        state_sink: StateSink | None = None,
        heartbeat_interval_seconds: float = 30.0,
    ) -> None:
        self._terraform_root = terraform_root
        self._run_command = run_command or SubprocessCommandRunner()
        self._state_sink = state_sink
        self._heartbeat_interval_seconds = heartbeat_interval_seconds

    def binary_for(self, tf_version: str) -> Path:
        """Each target selects its own terraform release."""
        return self._terraform_root / tf_version / "terraform"

    def execute(self, request: ProvisioningRequest) -> dict[str, Any] | None:
        """Run the lifecycle and return captured outputs when an output secret is configured."""
        target = request.target
        self.init(request)
        verify_s3_backend(target.name, request.working_dir)

        if request.dry_run:
            self.plan(request)
            if target.require_fips:
                self.check_compliance(request)
            return None

        outputs = None
        if target.delete:
            self._run_lifecycle_step(
                request, "destroy", ("destroy", *_COMMON_FLAGS, "-auto-approve")
            )
        else:
            self._run_lifecycle_step(
                request, "apply", ("apply", *_COMMON_FLAGS, "-auto-approve")
            )
            if target.variables.outputs is not None:
                LOGGER.info(
                    "Capturing Output values to save to %s in Vault",
                    target.variables.outputs.path,
                )
                outputs = self.capture_outputs(request)
        self.archive_state(request)
        return outputs

    def init(self, request: ProvisioningRequest) -> None:
        LOGGER.info("Initializing terraform config for %s", request.target.name)
        self._run_step(
            request,
            "init",
            ("init", *_COMMON_FLAGS, f"-backend-config={BACKEND_FILE}"),
        )

    def plan(self, request: ProvisioningRequest) -> None:
        args = ["plan", *_COMMON_FLAGS, f"-out={request.plan_path}"]
        if request.target.delete:
            args.append("-destroy")
        self._run_lifecycle_step(request, "plan", tuple(args))

    def capture_outputs(self, request: ProvisioningRequest) -> dict[str, Any]:
        """Read structured outputs; neither stream of this sub-step ever reaches the logs."""
        name = request.target.name
        try:
            result = self._invoke(request, ("output", "-json", "-no-color"))
        except CommandNotFoundError as exc:
            raise OutputCaptureError(
                f"failed to capture terraform outputs for {name}: {exc}"
            ) from exc
        if not result.succeeded:
            raise OutputCaptureError(
                f"failed to capture terraform outputs for {name} (exit code {result.returncode})"
            )
        try:
            decoded = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as exc:
            raise OutputCaptureError(
                f"failed to decode terraform outputs for {name}"
            ) from exc
        if not isinstance(decoded, Mapping):
            raise OutputCaptureError(f"failed to decode terraform outputs for {name}")
        return {
            str(output_name): meta.get("value") if isinstance(meta, Mapping) else meta
            for output_name, meta in decoded.items()
        }

    def check_compliance(self, request: ProvisioningRequest) -> None:
        """Inspect the saved plan's provider configuration for the FIPS endpoint flag."""
        name = request.target.name
        try:
            result = self._invoke(request, ("show", "-json", str(request.plan_path)))
        except CommandNotFoundError as exc:
            raise ProvisioningError(
                f"Unable to determine FIPS compatibility for {name}: {exc}"
            ) from exc
        if not result.succeeded:
            raise ProvisioningError(
                request.redactor.redact(
                    f"Unable to determine FIPS compatibility for {name}: {result.stderr.strip()}"
                )
            )
        try:
            plan = json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            raise ProvisioningError(f"Unable to determine FIPS compatibility for {name}") from exc
        check_fips_compliance(name, plan if isinstance(plan, Mapping) else {})

    def archive_state(self, request: ProvisioningRequest) -> None:
        """Hand the human-readable state to the state sink; failures are only logged."""
        if self._state_sink is None:
            return
        name = request.target.name
        try:
            result = self._invoke(request, ("show", "-no-color"))
            if not result.succeeded:
                LOGGER.warning(
                    "Unable to read terraform state of %s for archival: %s",
                    name,
                    request.redactor.redact(result.stderr.strip()),
                )
                return
            self._state_sink.archive(request.target, result.stdout)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.warning(
                "State archival for %s failed: %s", name, request.redactor.redact(str(exc))
            )

    def _run_lifecycle_step(
        self, request: ProvisioningRequest, step: str, args: tuple[str, ...]
    ) -> None:
        LOGGER.info("Performing terraform %s for %s", step, request.target.name)
        result = self._run_step(request, step, args)
        LOGGER.info(
            "Output for %s\n%s", request.target.name, request.redactor.redact(result.stdout)
        )

    def _run_step(
        self, request: ProvisioningRequest, step: str, args: tuple[str, ...]
    ) -> CommandResult:
        label = f"terraform {step} for {request.target.name}"
        with Heartbeat(label, self._heartbeat_interval_seconds):
            try:
                result = self._invoke(request, args)
            except CommandNotFoundError as exc:
                raise ProvisioningError(
                    f"terraform {request.target.tf_version} is not installed: {exc}"
                ) from exc
        if not result.succeeded:
            detail = result.stderr.strip() or f"{label} exited with code {result.returncode}"
            raise ProvisioningError(request.redactor.redact(detail))
        return result

    def _invoke(self, request: ProvisioningRequest, args: tuple[str, ...]) -> CommandResult:
        command = (str(self.binary_for(request.target.tf_version)), *args)
        return self._run_command(command, request.working_dir, TERRAFORM_ENVIRONMENT)
