"""Configuration domain exports."""

from .config_scaffold_builder import (
    DEFAULT_CONFIG_FILENAME,
    build_placeholder_configuration,
    write_placeholder_configuration,
)
from .environment import load_log_flush_delay, load_runtime_settings
from .loader import ConfigurationError, load_run_input
from .runtime_settings import (
    LATEST_SECRET_VERSION,
    GitSettings,
    RunInput,
    RuntimeSettings,
    SecretRef,
    Target,
    TargetVariables,
    VaultSettings,
)

__all__ = [
    "GitSettings",
    "RunInput",
    "RuntimeSettings",
    "SecretRef",
    "Target",
    "TargetVariables",
    "VaultSettings",
    "LATEST_SECRET_VERSION",
    "ConfigurationError",
    "load_run_input",
    "load_log_flush_delay",
    "load_runtime_settings",
    "DEFAULT_CONFIG_FILENAME",
    "build_placeholder_configuration",
    "write_placeholder_configuration",
]
