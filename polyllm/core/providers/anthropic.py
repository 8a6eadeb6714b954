from __future__ import annotations

import os
from typing import Any

from polyllm.core.providers.base import BaseLangChainChatModel
from polyllm.service.errors import ProviderConfigurationError
from polyllm.service.policies import get_request_timeout
from polyllm.types.capabilities import Capability

try:  # pragma: no cover - exercised via mocks in unit tests
    from langchain_anthropic import ChatAnthropic
except Exception as exc:
    ChatAnthropic = None  # type: ignore[assignment]
    _import_error: Exception | None = exc
else:
    _import_error = None


class AnthropicChatModel(BaseLangChainChatModel):
    """Provider adapter backed by LangChain's ChatAnthropic."""

    provider_id = "anthropic"
    capabilities = frozenset({Capability.CHAT, Capability.COMPLETION, Capability.VISION})

    def __init__(self, default_model: str | None = "claude-3-5-haiku-latest") -> None:
        if _import_error is not None or ChatAnthropic is None:
            raise ProviderConfigurationError(
                "langchain-anthropic is not installed or failed to import. "
                "Install with `pip install langchain-anthropic`."
            ) from _import_error

        if not os.getenv("ANTHROPIC_API_KEY"):
            raise ProviderConfigurationError(
                "ANTHROPIC_API_KEY is not set; cannot initialize AnthropicChatModel."
            )
        super().__init__(default_model)

    def _build_client(self, model: str) -> Any:
        return ChatAnthropic(model=model, timeout=get_request_timeout())


__all__ = ["AnthropicChatModel"]
