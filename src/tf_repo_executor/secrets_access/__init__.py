"""Secrets access exports."""

from .kv_models import KvSchema, KvValue, coerce_kv_data, coerce_kv_value
from .vault_kv_client import (
    KvSchemaResolver,
    SecretAccessError,
    SecretNotFoundError,
    SecretSchemaError,
    SecretsAuthenticationError,
    SecretWriteError,
    VaultKvClient,
    effective_path,
)

__all__ = [
    "KvSchema",
    "KvValue",
    "coerce_kv_data",
    "coerce_kv_value",
    "KvSchemaResolver",
    "SecretAccessError",
    "SecretNotFoundError",
    "SecretSchemaError",
    "SecretsAuthenticationError",
    "SecretWriteError",
    "VaultKvClient",
    "effective_path",
]
