"""Run input scaffold builder tests."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from tf_repo_executor.configuration.config_scaffold_builder import (
    build_placeholder_configuration,
    write_placeholder_configuration,
)


def test_build_placeholder_configuration_contains_every_target_field() -> None:
    scaffold = build_placeholder_configuration()

    assert "Run input template" in scaffold
    for field_name in (
        "dry_run:",
        "repos:",
        "name:",
        "repository:",
        "ref:",
        "project_path:",
        "delete:",
        "aws_creds:",
        "bucket:",
        "region:",
        "bucket_path:",
        "require_fips:",
        "tf_version:",
        "inputs:",
        "outputs:",
    ):
        assert field_name in scaffold
    assert "<REQUIRED>" in scaffold
    assert "<OPTIONAL>" in scaffold


def test_placeholder_configuration_is_valid_yaml() -> None:
    parsed = yaml.safe_load(build_placeholder_configuration())

    assert parsed["dry_run"] is True
    assert parsed["repos"][0]["aws_creds"]["path"] == "<REQUIRED>"


def test_write_placeholder_configuration_writes_file(tmp_path: Path) -> None:
    output_path = tmp_path / "config.yaml"

    written_path = write_placeholder_configuration(output_path)

    assert written_path == output_path.resolve()
    assert "<REQUIRED>" in output_path.read_text(encoding="utf-8")


def test_write_placeholder_configuration_fails_when_file_exists(tmp_path: Path) -> None:
    output_path = tmp_path / "config.yaml"
    output_path.write_text("existing", encoding="utf-8")

    with pytest.raises(FileExistsError):
        write_placeholder_configuration(output_path)

    assert output_path.read_text(encoding="utf-8") == "existing"
