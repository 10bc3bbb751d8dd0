"""Secret-value and state-block redaction helpers."""

from __future__ import annotations

import re
import threading
from collections.abc import Iterable
from urllib.parse import quote

REDACTED_MARKER = "[REDACTED]"
REDACTED_VAULT_SECRET_MARKER = "[REDACTED VAULT SECRET]"

# Top-level `data "vault_*"` blocks end at the first unindented closing brace.
_VAULT_DATA_SOURCE_BLOCK = re.compile(r'data "vault_.+?\n}', re.DOTALL)


def redact_values(text: str, secrets: Iterable[str | None]) -> str:
    """Replace every occurrence of each secret (raw or percent-encoded) with a marker."""
    variants: set[str] = set()
    for secret in secrets:
        if not secret:
            continue
        variants.add(secret)
        variants.add(quote(secret, safe=""))
    # Longest first so a secret containing another secret is masked whole.
    for variant in sorted(variants, key=len, reverse=True):
        text = text.replace(variant, REDACTED_MARKER)
    return text


def mask_vault_data_sources(state: str) -> str:
    """Replace each `data "vault_..."` block of human-readable state with a marker."""
    return _VAULT_DATA_SOURCE_BLOCK.sub(REDACTED_VAULT_SECRET_MARKER, state)


class Redactor:
    """Accumulates secret values and strips them from text."""

    def __init__(self, secrets: Iterable[str | None] = ()) -> None:
        self._lock = threading.Lock()
        self._secrets: set[str] = {secret for secret in secrets if secret}

    def register(self, *secrets: str | None) -> None:
        with self._lock:
            self._secrets.update(secret for secret in secrets if secret)

    def child(self) -> Redactor:
        """Return an independent redactor seeded with this one's secrets."""
        with self._lock:
            return Redactor(self._secrets)

    def redact(self, text: str) -> str:
        with self._lock:
            secrets = tuple(self._secrets)
        return redact_values(text, secrets)
