from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from polyllm.types.responses import ChatResponse


class PolyLLMError(Exception):
    """Base error type for all orchestration failures."""


class ProviderConfigurationError(PolyLLMError):
    """Misconfiguration of a provider (missing SDK, credentials or settings)."""


class InvalidSelection(PolyLLMError, ValueError):
    """A ``provider:model`` selection string could not be parsed."""


class UnknownProvider(PolyLLMError):
    """No adapter is registered under the requested provider id."""

    def __init__(self, provider_id: str, available: list[str] | None = None) -> None:
        self.provider_id = provider_id
        self.available = list(available or [])
        super().__init__(
            f"Unknown provider '{provider_id}'. Registered: {self.available or '[]'}"
        )


class DuplicateProvider(PolyLLMError):
    """A different adapter is already registered under this provider id."""

    def __init__(self, provider_id: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"Provider '{provider_id}' is already registered with a different adapter")


class CapabilityMismatch(PolyLLMError):
    """Operation requested on a provider that does not advertise the capability."""

    def __init__(self, provider_id: str, capability: Any) -> None:
        self.provider_id = provider_id
        self.capability = capability
        super().__init__(
            f"Provider '{provider_id}' does not support capability '{getattr(capability, 'value', capability)}'"
        )


class ProviderCallFailed(PolyLLMError):
    """Transport or vendor error from a provider call."""

    def __init__(
        self,
        message: str,
        *,
        provider_id: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.provider_id = provider_id
        self.status_code = status_code
        super().__init__(message)


class ProviderTimeout(ProviderCallFailed):
    """The provider transport timed out."""


class ResponseRejected(PolyLLMError):
    """Raised by a validation predicate to reject a response with a reason."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class ValidationExhausted(PolyLLMError):
    """The predicate never accepted a response within the retry budget."""

    def __init__(self, last_response: "ChatResponse", attempts: int, reason: str | None = None) -> None:
        self.last_response = last_response
        self.attempts = attempts
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Validation failed after {attempts} attempt(s){detail}")


class ScoringFailed(PolyLLMError):
    """A scoring function raised instead of returning a score."""


class AllProvidersFailed(PolyLLMError):
    """Every provider in an evaluation failed."""

    def __init__(self, errors: Mapping[Any, BaseException]) -> None:
        self.errors = dict(errors)
        names = [getattr(key, "provider_id", str(key)) for key in self.errors]
        super().__init__(f"All providers failed: {names}")


class ChainStepFailed(PolyLLMError):
    """A chain step failed; carries the step index and the underlying cause."""

    def __init__(self, step_index: int, cause: BaseException) -> None:
        self.step_index = step_index
        self.cause = cause
        super().__init__(f"Chain step {step_index} failed: {cause}")


class Cancelled(PolyLLMError):
    """The caller cancelled an in-flight chain or evaluation."""


__all__ = [
    "PolyLLMError",
    "ProviderConfigurationError",
    "InvalidSelection",
    "UnknownProvider",
    "DuplicateProvider",
    "CapabilityMismatch",
    "ProviderCallFailed",
    "ProviderTimeout",
    "ResponseRejected",
    "ValidationExhausted",
    "ScoringFailed",
    "AllProvidersFailed",
    "ChainStepFailed",
    "Cancelled",
]
