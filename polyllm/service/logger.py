"""
Provider call logging helpers.

One record per provider call, emitted through the ``polyllm.calls`` logger.
These functions never raise: a logging failure must never surface to the
caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from polyllm.types.requests import ChatRequest
    from polyllm.types.responses import ChatResponse

logger = logging.getLogger("polyllm.calls")

_PREVIEW_CHARS = 200


def _preview(text: str | None) -> str:
    if not text:
        return ""
    if len(text) <= _PREVIEW_CHARS:
        return text
    return text[:_PREVIEW_CHARS] + "..."


def _last_user_text(request: "ChatRequest") -> str:
    for message in reversed(request.messages):
        if message.role.value == "user" and message.text:
            return message.text
    return ""


def log_call(
    provider_id: str,
    request: "ChatRequest",
    response: "ChatResponse",
    duration_ms: int,
) -> None:
    """Log a successful provider call."""
    try:
        logger.info(
            "provider=%s model=%s status=success duration_ms=%d turns=%d tool_calls=%d",
            provider_id,
            request.model or response.model or "",
            duration_ms,
            len(request.messages),
            len(response.tool_calls or ()),
        )
        logger.debug(
            "provider=%s prompt=%r output=%r",
            provider_id,
            _preview(_last_user_text(request)),
            _preview(response.text),
        )
    except Exception:
        logger.exception("Failed to write provider call log")


def log_error(
    provider_id: str,
    request: "ChatRequest",
    exc: BaseException,
    duration_ms: int,
) -> None:
    """Log a failed provider call."""
    try:
        logger.warning(
            "provider=%s model=%s status=error duration_ms=%d error_type=%s error=%s",
            provider_id,
            request.model or "",
            duration_ms,
            type(exc).__name__,
            exc,
        )
    except Exception:
        logger.exception("Failed to write provider error log")


__all__ = ["log_call", "log_error"]
