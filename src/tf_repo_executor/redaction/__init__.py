"""Redaction exports."""

from .text_redaction import (
    REDACTED_MARKER,
    REDACTED_VAULT_SECRET_MARKER,
    Redactor,
    mask_vault_data_sources,
    redact_values,
)

__all__ = [
    "REDACTED_MARKER",
    "REDACTED_VAULT_SECRET_MARKER",
    "Redactor",
    "mask_vault_data_sources",
    "redact_values",
]
