"""Run input loader service."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml

from .runtime_settings import LATEST_SECRET_VERSION, RunInput, SecretRef, Target, TargetVariables


class ConfigurationError(Exception):
    """Raised when the run input or environment is invalid."""


def load_run_input(config_path: Path | str) -> RunInput:
    """Load and validate the run input file (YAML or JSON)."""
    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        # JSON documents are valid YAML, so one parser covers both formats.
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse configuration file: {exc}") from exc

    if parsed is None:
        parsed = {}

    if not isinstance(parsed, Mapping):
        raise ConfigurationError("Configuration root must be a mapping.")

    dry_run = _optional_bool(parsed.get("dry_run"), "dry_run")
    targets = _parse_targets(parsed.get("repos"))
    return RunInput(dry_run=dry_run, targets=targets)


def _parse_targets(value: Any) -> tuple[Target, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise ConfigurationError("repos must be a list of targets.")

    targets: list[Target] = []
    seen_names: set[str] = set()
    for index, entry in enumerate(value):
        label = f"repos[{index}]"
        target = _parse_target(_require_mapping(entry, label), label)
        if target.name in seen_names:
            raise ConfigurationError(f"{label}.name '{target.name}' is not unique.")
        seen_names.add(target.name)
        targets.append(target)
    return tuple(targets)


def _parse_target(section: Mapping[str, Any], label: str) -> Target:
    name = _require_directory_name(section.get("name"), f"{label}.name")
    repository = _require_non_empty_string(section.get("repository"), f"{label}.repository")
    ref = _require_non_empty_string(section.get("ref"), f"{label}.ref")
    project_path = _optional_string(section.get("project_path"), f"{label}.project_path") or ""
    tf_version = _require_directory_name(section.get("tf_version"), f"{label}.tf_version")
    aws_creds = _parse_secret_ref(section.get("aws_creds"), f"{label}.aws_creds")
    if aws_creds is None:
        raise ConfigurationError(f"Configuration section '{label}.aws_creds' is required.")

    return Target(
        name=name,
        repository=repository,
        ref=ref,
        project_path=_normalize_project_path(project_path, f"{label}.project_path"),
        aws_creds=aws_creds,
        tf_version=tf_version,
        delete=_optional_bool(section.get("delete"), f"{label}.delete"),
        bucket=_optional_string(section.get("bucket"), f"{label}.bucket"),
        region=_optional_string(section.get("region"), f"{label}.region"),
        bucket_path=_optional_string(section.get("bucket_path"), f"{label}.bucket_path"),
        require_fips=_optional_bool(section.get("require_fips"), f"{label}.require_fips"),
        variables=_parse_variables(section.get("variables"), f"{label}.variables"),
    )


def _parse_variables(value: Any, label: str) -> TargetVariables:
    if value is None:
        return TargetVariables()
    section = _require_mapping(value, label)
    return TargetVariables(
        inputs=_parse_secret_ref(section.get("inputs"), f"{label}.inputs"),
        outputs=_parse_secret_ref(section.get("outputs"), f"{label}.outputs"),
    )


def _parse_secret_ref(value: Any, label: str) -> SecretRef | None:
    if value is None:
        return None
    section = _require_mapping(value, label)
    path = _optional_string(section.get("path"), f"{label}.path")
    if path is None:
        return None
    if "/" not in path.strip("/"):
        raise ConfigurationError(f"{label}.path '{path}' must include a mount and a secret path.")
    version = section.get("version")
    if version is None:
        version = LATEST_SECRET_VERSION
    elif isinstance(version, bool) or not isinstance(version, int) or version < 0:
        raise ConfigurationError(f"{label}.version must be a non-negative integer.")
    return SecretRef(path=path.strip("/"), version=version)


def _normalize_project_path(value: str, field_name: str) -> str:
    parts = [part for part in value.replace("\\", "/").split("/") if part not in ("", ".")]
    if ".." in parts or value.startswith("/"):
        raise ConfigurationError(f"{field_name} must be a relative path inside the repository.")
    return "/".join(parts)


def _require_mapping(value: Any, section_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Configuration section '{section_name}' is required.")
    return value


def _require_directory_name(value: Any, field_name: str) -> str:
    name = _require_non_empty_string(value, field_name)
    if name in (".", "..") or "/" in name or "\\" in name:
        raise ConfigurationError(f"{field_name} '{name}' must be a single path component.")
    return name


def _require_non_empty_string(value: Any, field_name: str) -> str:
    if isinstance(value, float):
        # YAML reads an unquoted 1.10 as 1.1.
        raise ConfigurationError(
            f"{field_name} was read as the number {value!r}; quote it to keep it as text."
        )
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    if not stripped:
        raise ConfigurationError(f"{field_name} must not be empty.")
    return stripped


def _optional_string(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    return stripped or None


def _optional_bool(value: Any, field_name: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be a boolean.")
    return value
