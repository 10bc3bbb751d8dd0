"""Secrets store key/value domain entities."""

from __future__ import annotations

import json
from collections.abc import Mapping
from enum import Enum
from typing import Any

KvValue = str | int | float | bool


class KvSchema(str, Enum):
    """Key/value engine conventions of a secrets store mount."""

    V1 = "v1"
    V2 = "v2"


def coerce_kv_value(value: Any) -> KvValue:
    """Narrow a decoded secret value to a scalar; structures become JSON text."""
    if isinstance(value, str | bool | int | float):
        return value
    if value is None:
        return ""
    return json.dumps(value, sort_keys=True)


def coerce_kv_data(data: Mapping[str, Any]) -> dict[str, KvValue]:
    return {str(key): coerce_kv_value(value) for key, value in data.items()}
