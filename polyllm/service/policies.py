"""Environment configuration (enabled providers, defaults, retry and concurrency limits)."""

from __future__ import annotations

import os
from typing import List, Optional

from polyllm.service.errors import ProviderConfigurationError

DEFAULT_VALIDATION_MAX_RETRIES = 3
DEFAULT_MAX_PARALLEL_CALLS = 8
DEFAULT_REQUEST_TIMEOUT = 60.0


def _get_int(name: str, default: int, minimum: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ProviderConfigurationError(f"{name} must be an integer, got '{raw}'") from exc
    if value < minimum:
        raise ProviderConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def get_enabled_providers() -> Optional[List[str]]:
    """Provider ids from POLYLLM_PROVIDERS, or None when unset (enable all built-ins)."""
    raw = os.environ.get("POLYLLM_PROVIDERS", "").strip()
    if not raw:
        return None
    return [p.strip().lower() for p in raw.split(",") if p.strip()]


def get_default_selection() -> Optional[str]:
    """Default ``provider:model`` selection from POLYLLM_DEFAULT_MODEL."""
    v = os.environ.get("POLYLLM_DEFAULT_MODEL")
    return v.strip() if v and v.strip() else None


def get_validation_max_retries() -> int:
    return _get_int("POLYLLM_VALIDATION_MAX_RETRIES", DEFAULT_VALIDATION_MAX_RETRIES, 0)


def get_max_parallel_calls() -> int:
    return _get_int("POLYLLM_MAX_PARALLEL_CALLS", DEFAULT_MAX_PARALLEL_CALLS, 1)


def get_request_timeout() -> float:
    """Per-call transport timeout in seconds, handed to the vendor clients."""
    raw = os.environ.get("POLYLLM_REQUEST_TIMEOUT", "").strip()
    if not raw:
        return DEFAULT_REQUEST_TIMEOUT
    try:
        return float(raw)
    except ValueError as exc:
        raise ProviderConfigurationError(
            f"POLYLLM_REQUEST_TIMEOUT must be a number, got '{raw}'"
        ) from exc


__all__ = [
    "get_enabled_providers",
    "get_default_selection",
    "get_validation_max_retries",
    "get_max_parallel_calls",
    "get_request_timeout",
]
