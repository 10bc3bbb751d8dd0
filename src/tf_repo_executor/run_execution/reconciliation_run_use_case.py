"""Run execution use-case service."""

from __future__ import annotations

import logging
import shutil
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

import hvac

from tf_repo_executor.config_materializing import (
    AWS_VARS_FILE,
    BACKEND_FILE,
    INPUT_VARS_FILE,
    CredentialExtractionError,
    InvalidVariableNameError,
    extract_credentials,
    render_backend,
    render_credential_vars,
    render_input_vars,
)
from tf_repo_executor.configuration import (
    ConfigurationError,
    RunInput,
    SecretRef,
    Target,
    load_run_input,
)
from tf_repo_executor.process_execution import CommandRunner, SubprocessCommandRunner
from tf_repo_executor.provisioning import (
    BackendVerificationError,
    ComplianceError,
    OutputCaptureError,
    ProvisioningError,
    ProvisioningRequest,
    TerraformDriver,
)
from tf_repo_executor.redaction import Redactor
from tf_repo_executor.secrets_access import (
    KvSchema,
    KvSchemaResolver,
    KvValue,
    SecretAccessError,
    SecretNotFoundError,
    SecretSchemaError,
    SecretsAuthenticationError,
    SecretWriteError,
    VaultKvClient,
)
from tf_repo_executor.source_fetching import FOLDER_PERMISSIONS, CloneError, RepositoryFetcher
from tf_repo_executor.state_archiving import StateArchiver

from .run_contracts import RunContext, RunRequest, RunResult, TargetExecutionError, TargetOutcome

LOGGER = logging.getLogger(__name__)

CANCELLED_MESSAGE = "run cancelled before target started"
PLAN_FILE_SUFFIX = "-plan"

_TARGET_ERRORS = (
    TargetExecutionError,
    CloneError,
    SecretNotFoundError,
    SecretSchemaError,
    SecretAccessError,
    SecretWriteError,
    CredentialExtractionError,
    InvalidVariableNameError,
    ProvisioningError,
    BackendVerificationError,
    ComplianceError,
    OutputCaptureError,
    OSError,
)


class RunExecutionError(Exception):
    """Raised when a run cannot start; no target has been attempted."""


def execute_reconciliation_run(
    request: RunRequest,
    *,
    vault_client_factory: Callable[..., Any] = hvac.Client,
    run_command: CommandRunner | None = None,
    cancel_event: threading.Event | None = None,
) -> RunResult:
    """Reconcile every declared target and aggregate the per-target outcomes."""
    settings = request.settings
    resolved_cancel_event = cancel_event or threading.Event()
    resolved_run_command = run_command or SubprocessCommandRunner(resolved_cancel_event)

    run_input = _load_run_input(settings.config_path)
    redactor = Redactor((settings.vault.role_id, settings.vault.secret_id, settings.git.token))
    secrets, schemas = _open_secrets_session(request, redactor, vault_client_factory)
    _prepare_root_workdir(settings.workdir)

    context = RunContext(
        settings=settings,
        secrets=secrets,
        schemas=schemas,
        redactor=redactor,
        run_command=resolved_run_command,
        cancel_event=resolved_cancel_event,
        fetcher=RepositoryFetcher(
            settings.git.username,
            settings.git.token,
            ca_bundle=settings.git.ca_bundle,
            run_command=resolved_run_command,
        ),
        driver=TerraformDriver(
            settings.terraform_root,
            run_command=resolved_run_command,
            state_sink=StateArchiver(
                settings.git.log_repository,
                settings.git.username,
                settings.git.token,
                settings.git.author_email,
                ca_bundle=settings.git.ca_bundle,
                run_command=resolved_run_command,
            ),
            heartbeat_interval_seconds=settings.heartbeat_interval_seconds,
        ),
    )
    return _run_targets(context, run_input)


def _load_run_input(config_path: Path) -> RunInput:
    try:
        return load_run_input(config_path)
    except (ConfigurationError, OSError) as exc:
        raise RunExecutionError(str(exc)) from exc


def _open_secrets_session(
    request: RunRequest,
    redactor: Redactor,
    vault_client_factory: Callable[..., Any],
) -> tuple[VaultKvClient, KvSchemaResolver]:
    vault = request.settings.vault
    try:
        secrets = VaultKvClient.authenticate(
            vault.address,
            vault.role_id,
            vault.secret_id,
            client_factory=vault_client_factory,
        )
        if vault.kv_version is not None:
            LOGGER.info("Using KV engine %s for every secret", vault.kv_version)
            return secrets, KvSchemaResolver({}, explicit=KvSchema(vault.kv_version))
        return secrets, KvSchemaResolver(secrets.discover_mount_versions())
    except (SecretsAuthenticationError, SecretAccessError) as exc:
        raise RunExecutionError(redactor.redact(str(exc))) from exc


def _prepare_root_workdir(workdir: Path) -> None:
    try:
        workdir.mkdir(mode=FOLDER_PERMISSIONS, parents=True, exist_ok=True)
    except OSError as exc:
        raise RunExecutionError(f"Could not create working directory {workdir}: {exc}") from exc


def _run_targets(context: RunContext, run_input: RunInput) -> RunResult:
    LOGGER.info(
        "Reconciling %d target(s) with parallelism %d (dry run: %s)",
        len(run_input.targets),
        context.settings.parallelism,
        run_input.dry_run,
    )
    with ThreadPoolExecutor(
        max_workers=context.settings.parallelism, thread_name_prefix="target"
    ) as pool:
        futures = [
            pool.submit(_reconcile_target, context, target, run_input.dry_run)
            for target in run_input.targets
        ]
        outcomes = tuple(future.result() for future in futures)
    return RunResult(outcomes=outcomes)


def _reconcile_target(context: RunContext, target: Target, dry_run: bool) -> TargetOutcome:
    if context.cancel_event.is_set():
        LOGGER.warning("Skipping %s: %s", target.name, CANCELLED_MESSAGE)
        return TargetOutcome(target.name, TargetExecutionError(target.name, CANCELLED_MESSAGE))

    workspace = context.settings.workdir / target.name
    try:
        workspace.mkdir(mode=FOLDER_PERMISSIONS)
    except OSError as exc:
        return _failed_outcome(
            target, f"could not create private working directory {workspace}: {exc}"
        )

    redactor = context.redactor.child()
    try:
        _run_target_pipeline(context, target, dry_run, workspace, redactor)
    except _TARGET_ERRORS as exc:
        detail = exc.message if isinstance(exc, TargetExecutionError) else str(exc)
        return _failed_outcome(target, redactor.redact(detail))
    except Exception as exc:  # pylint: disable=broad-exception-caught
        message = redactor.redact(f"unexpected {type(exc).__name__}: {exc}")
        return _failed_outcome(target, message)
    finally:
        _remove_workspace(workspace)

    LOGGER.info("Successfully reconciled %s", target.name)
    return TargetOutcome(target.name)


def _failed_outcome(target: Target, message: str) -> TargetOutcome:
    LOGGER.error("Error executing terraform operations for: %s", target.name)
    LOGGER.error(message)
    return TargetOutcome(target.name, TargetExecutionError(target.name, message))


def _run_target_pipeline(
    context: RunContext,
    target: Target,
    dry_run: bool,
    workspace: Path,
    redactor: Redactor,
) -> None:
    checkout = context.fetcher.clone(target.repository, target.ref, workspace, target.name)
    provisioning_dir = checkout / target.project_path if target.project_path else checkout
    if not provisioning_dir.is_dir():
        raise TargetExecutionError(
            target.name,
            f"project path '{target.project_path}' does not exist in {target.repository}",
        )

    record = extract_credentials(_read_secret(context, target.aws_creds), target)
    redactor.register(record.access_key, record.secret_key)

    vault = context.settings.vault
    render_backend(record, provisioning_dir / BACKEND_FILE)
    render_credential_vars(
        record, vault.address, vault.role_id, vault.secret_id, provisioning_dir / AWS_VARS_FILE
    )
    if target.variables.inputs is not None:
        inputs = _read_secret(context, target.variables.inputs)
        render_input_vars(inputs, provisioning_dir / INPUT_VARS_FILE)

    outputs = context.driver.execute(
        ProvisioningRequest(
            target=target,
            working_dir=provisioning_dir,
            plan_path=workspace / f"{target.name}{PLAN_FILE_SUFFIX}",
            dry_run=dry_run,
            redactor=redactor,
        )
    )
    outputs_ref = target.variables.outputs
    if outputs is not None and outputs_ref is not None:
        context.secrets.write_outputs(outputs_ref, outputs, context.schemas.schema_for(outputs_ref))


def _read_secret(context: RunContext, ref: SecretRef) -> dict[str, KvValue]:
    return context.secrets.read(ref, context.schemas.schema_for(ref))


def _remove_workspace(workspace: Path) -> None:
    try:
        shutil.rmtree(workspace)
    except OSError as exc:
        LOGGER.error("Could not remove working directory %s: %s", workspace, exc)
