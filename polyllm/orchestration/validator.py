"""
Validation wrapper: re-issue a provider call until a predicate accepts the output.

    validator = Validator(registry)
    response = validator.validate(
        request,
        "openai",
        json_schema_predicate(schema),
        max_retries=2,
        on_retry=feedback_hook(),
    )

Only predicate rejections are retried. Provider failures propagate at once.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Callable, Optional, Tuple

from polyllm.core import dispatch
from polyllm.core.interfaces import ProviderAdapter
from polyllm.core.registry import ProviderRef, ProviderRegistry, get_provider_registry
from polyllm.service.errors import ResponseRejected, ValidationExhausted
from polyllm.service.policies import get_validation_max_retries
from polyllm.types.capabilities import Capability
from polyllm.types.messages import ChatMessage
from polyllm.types.requests import ChatRequest
from polyllm.types.responses import ChatResponse

logger = logging.getLogger(__name__)

Predicate = Callable[[ChatResponse], bool]
# (request used for the rejected attempt, rejected response, rejection reason) -> next request
RetryHook = Callable[[ChatRequest, ChatResponse, Optional[str]], Optional[ChatRequest]]

DEFAULT_FEEDBACK = (
    "Your previous output was invalid because: {reason}. "
    "Please try again and produce a valid response."
)


def _check(predicate: Predicate, response: ChatResponse) -> Tuple[bool, Optional[str]]:
    try:
        accepted = bool(predicate(response))
    except ResponseRejected as exc:
        return False, exc.reason
    return accepted, None if accepted else "the response was rejected by the validator"


def run_validation(
    call: Callable[[ChatRequest], ChatResponse],
    request: ChatRequest,
    predicate: Predicate,
    max_retries: int,
    on_retry: RetryHook | None = None,
) -> ChatResponse:
    """Core retry loop: at most ``max_retries + 1`` calls, one per attempt."""
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")
    current = request
    attempts = max_retries + 1
    for attempt in range(1, attempts + 1):
        response = call(current)
        accepted, reason = _check(predicate, response)
        if accepted:
            if attempt > 1:
                logger.info("Response accepted on attempt %d/%d", attempt, attempts)
            return response
        logger.info("Response rejected on attempt %d/%d: %s", attempt, attempts, reason)
        if attempt == attempts:
            raise ValidationExhausted(response, attempt, reason)
        if on_retry is not None:
            current = on_retry(current, response, reason) or current
    raise AssertionError("unreachable")  # pragma: no cover


def feedback_hook(template: str = DEFAULT_FEEDBACK) -> RetryHook:
    """
    Retry hook that appends the rejected answer and a correction turn.

    ``template`` may reference ``{reason}``.
    """

    def _hook(request: ChatRequest, response: ChatResponse, reason: Optional[str]) -> ChatRequest:
        correction = ChatMessage.user(template.format(reason=reason or "it did not pass validation"))
        return request.with_messages([response.to_message(), correction])

    return _hook


class Validator:
    """Retry-until-accepted wrapper around a single registered provider."""

    def __init__(self, registry: ProviderRegistry | None = None) -> None:
        self._registry = registry

    def _get_registry(self) -> ProviderRegistry:
        return self._registry or get_provider_registry()

    def validate(
        self,
        request: ChatRequest,
        provider: ProviderRef,
        predicate: Predicate,
        max_retries: int | None = None,
        on_retry: RetryHook | None = None,
    ) -> ChatResponse:
        handle = self._get_registry().resolve(provider)
        budget = get_validation_max_retries() if max_retries is None else max_retries
        return run_validation(
            lambda r: dispatch.send(handle, r),
            request,
            predicate,
            budget,
            on_retry,
        )


class ValidatedProvider(ProviderAdapter):
    """
    Provider adapter that validates another adapter's output.

    Registering it lets a chain step or an evaluation use validated calls
    without any special casing.
    """

    def __init__(
        self,
        inner: ProviderAdapter,
        predicate: Predicate,
        max_retries: int | None = None,
        on_retry: RetryHook | None = None,
    ) -> None:
        self.inner = inner
        self.predicate = predicate
        self.max_retries = get_validation_max_retries() if max_retries is None else max_retries
        self.on_retry = on_retry
        self.provider_id = inner.provider_id

    @property
    def capabilities(self) -> AbstractSet[Capability]:  # type: ignore[override]
        return self.inner.capabilities

    def send(self, request: ChatRequest) -> ChatResponse:
        return run_validation(self.inner.send, request, self.predicate, self.max_retries, self.on_retry)


__all__ = [
    "Predicate",
    "RetryHook",
    "DEFAULT_FEEDBACK",
    "run_validation",
    "feedback_hook",
    "Validator",
    "ValidatedProvider",
]
