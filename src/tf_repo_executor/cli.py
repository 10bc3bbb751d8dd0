"""Command line interface entry point."""

from __future__ import annotations

import logging
import os
import signal
import sys
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager

import click

from tf_repo_executor.configuration import (
    DEFAULT_CONFIG_FILENAME,
    ConfigurationError,
    load_log_flush_delay,
    load_runtime_settings,
    write_placeholder_configuration,
)
from tf_repo_executor.run_execution import (
    RunExecutionError,
    RunRequest,
    execute_reconciliation_run,
)

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"
_HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class CliError(Exception):
    """Custom CLI error."""


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="tf-repo-executor")
def cli() -> None:
    """Reconcile declared terraform repositories from an automation pipeline."""


@cli.command(name="generate-config")
@click.option(
    "--output",
    "output_path",
    required=False,
    default=DEFAULT_CONFIG_FILENAME,
    show_default=True,
    type=click.Path(path_type=str),
    help="Path to the YAML run input template to write",
)
def generate_config(output_path: str) -> None:
    """Write a placeholder YAML run input to edit by hand; contacts no external system."""
    try:
        resolved_output = write_placeholder_configuration(output_path)
    except (FileExistsError, OSError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(str(resolved_output))


@cli.command(name="run")
def run_targets() -> None:
    """Reconcile every target of the run input; settings come from the environment."""
    configure_logging()
    session_id = f"session-{time.time_ns()}"
    LOGGER.info("Starting tf-repo-executor [%s]", session_id)
    flush_delay = load_log_flush_delay(os.environ)
    try:
        settings = load_runtime_settings(os.environ)
        cancel_event = threading.Event()
        with cancel_on_signals(cancel_event, session_id):
            result = execute_reconciliation_run(
                RunRequest(settings=settings, session_id=session_id),
                cancel_event=cancel_event,
            )
        if not result.succeeded:
            raise CliError(result.failure_message())
    except (ConfigurationError, RunExecutionError, CliError) as exc:
        LOGGER.error("Error: %s [%s]", exc, session_id)
        shutdown(session_id, flush_delay)
        if isinstance(exc, CliError):
            raise
        raise CliError(str(exc)) from exc
    LOGGER.info("Completed successfully [%s]", session_id)
    shutdown(session_id, flush_delay)


def configure_logging() -> None:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, stream=sys.stdout)


@contextmanager
def cancel_on_signals(cancel_event: threading.Event, session_id: str) -> Iterator[None]:
    """Route SIGINT/SIGTERM to the cancellation event for the duration of a run."""

    def _handle(signum: int, _frame: object) -> None:
        LOGGER.warning(
            "Received signal %s, shutting down [%s]", signal.Signals(signum).name, session_id
        )
        cancel_event.set()

    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = {signum: signal.signal(signum, _handle) for signum in _HANDLED_SIGNALS}
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def shutdown(session_id: str, delay_seconds: int) -> None:
    """Leave the log collector time to ship the final lines."""
    LOGGER.info("Shutting down [%s]", session_id)
    if delay_seconds > 0:
        time.sleep(delay_seconds)
    LOGGER.info("Shutdown complete [%s]", session_id)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=list(argv), standalone_mode=False)
    except CliError as exc:
        click.echo(str(exc), err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
