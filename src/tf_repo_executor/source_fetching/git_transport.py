"""Authenticated HTTP(S) transport helpers for the `git` executable."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import quote, urlsplit, urlunsplit

GIT_ENVIRONMENT = {"GIT_TERMINAL_PROMPT": "0"}


class TransportError(Exception):
    """Raised when a remote URL cannot carry injected credentials."""


def authenticated_url(url: str, username: str, token: str) -> str:
    """Embed basic-auth credentials into an HTTP(S) remote URL."""
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise TransportError(f"Only HTTP(S) remotes are supported: {url}")
    host = parts.hostname
    if parts.port:
        host = f"{host}:{parts.port}"
    netloc = f"{quote(username, safe='')}:{quote(token, safe='')}@{host}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def git_command(*args: str, ca_bundle: Path | None = None) -> tuple[str, ...]:
    """Build a `git` invocation, trusting a custom CA bundle when configured."""
    if ca_bundle is not None:
        return ("git", "-c", f"http.sslCAInfo={ca_bundle}", *args)
    return ("git", *args)
