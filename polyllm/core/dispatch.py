"""
Single call boundary used by every orchestration component.

Checks capabilities before touching the adapter, times and logs each call,
and normalizes unexpected exceptions into ``ProviderCallFailed`` so callers
only ever see the shared error taxonomy.
"""

from __future__ import annotations

import time
from typing import Any

from polyllm.core.interfaces import EmbeddingAdapter
from polyllm.service.errors import CapabilityMismatch, PolyLLMError, ProviderCallFailed, ProviderTimeout
from polyllm.service.logger import log_call, log_error
from polyllm.types.capabilities import Capability, ProviderHandle
from polyllm.types.messages import ChatMessage
from polyllm.types.requests import ChatRequest, RequestOptions
from polyllm.types.responses import ChatResponse


def to_provider_error(provider_id: str, exc: BaseException) -> ProviderCallFailed:
    """Map an arbitrary transport/vendor exception onto the shared taxonomy."""
    if isinstance(exc, ProviderCallFailed):
        return exc
    status_code = getattr(exc, "status_code", None)
    if not isinstance(status_code, int):
        status_code = getattr(getattr(exc, "response", None), "status_code", None)
        if not isinstance(status_code, int):
            status_code = None
    cls = ProviderTimeout if isinstance(exc, TimeoutError) or "Timeout" in type(exc).__name__ else ProviderCallFailed
    return cls(
        f"{provider_id} call failed: {type(exc).__name__}: {exc}",
        provider_id=provider_id,
        status_code=status_code,
    )


def _invoke(handle: ProviderHandle, request: ChatRequest) -> ChatResponse:
    t0 = time.monotonic()
    try:
        response = handle.adapter.send(request)
    except PolyLLMError as exc:
        log_error(handle.provider_id, request, exc, int((time.monotonic() - t0) * 1000))
        raise
    except Exception as exc:
        log_error(handle.provider_id, request, exc, int((time.monotonic() - t0) * 1000))
        raise to_provider_error(handle.provider_id, exc) from exc
    log_call(handle.provider_id, request, response, int((time.monotonic() - t0) * 1000))
    if response.provider_id is None:
        response = response.model_copy(update={"provider_id": handle.provider_id})
    return response


def send(handle: ProviderHandle, request: ChatRequest) -> ChatResponse:
    """Issue one chat call through ``handle``'s adapter."""
    handle.require(Capability.CHAT)
    if request.has_media:
        handle.require(Capability.VISION)
    return _invoke(handle, request)


def complete(handle: ProviderHandle, prompt: str, **options: Any) -> ChatResponse:
    """Text completion, expressed as a single user turn."""
    handle.require(Capability.COMPLETION)
    request = ChatRequest.from_options([ChatMessage.user(prompt)], RequestOptions(**options))
    return _invoke(handle, request)


def embed(handle: ProviderHandle, texts: list[str]) -> list[list[float]]:
    handle.require(Capability.EMBEDDING)
    adapter = handle.adapter
    if not isinstance(adapter, EmbeddingAdapter):
        raise CapabilityMismatch(handle.provider_id, Capability.EMBEDDING)
    if not texts:
        return []
    try:
        return adapter.embed(texts)
    except PolyLLMError:
        raise
    except Exception as exc:
        raise to_provider_error(handle.provider_id, exc) from exc


__all__ = ["send", "complete", "embed", "to_provider_error"]
