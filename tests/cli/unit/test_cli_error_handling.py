"""CLI error-handling tests."""

from __future__ import annotations

import pytest
from tf_repo_executor.cli import main

_REQUIRED_ENVIRONMENT = (
    "VAULT_ADDR",
    "VAULT_ROLE_ID",
    "VAULT_SECRET_ID",
    "GITLAB_LOG_REPO",
    "GITLAB_USERNAME",
    "GITLAB_TOKEN",
    "GIT_EMAIL",
)


def test_unknown_option_returns_clean_click_error(capsys) -> None:
    exit_code = main(["run", "--bogus"])
    captured = capsys.readouterr()

    assert exit_code == 2
    assert "No such option: --bogus" in captured.err
    assert "Traceback" not in captured.err


def test_unknown_command_returns_clean_click_error(capsys) -> None:
    exit_code = main(["apply"])
    captured = capsys.readouterr()

    assert exit_code == 2
    assert "No such command" in captured.err


def test_missing_environment_returns_exit_code_one(capsys, monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _REQUIRED_ENVIRONMENT:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("LOG_FLUSH_DELAY_SECONDS", "0")

    exit_code = main(["run"])
    captured = capsys.readouterr()

    assert exit_code == 1
    assert "Missing required environment variables" in captured.err
    assert "VAULT_ADDR" in captured.err
    assert "Traceback" not in captured.err
