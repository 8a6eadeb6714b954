from __future__ import annotations

import os
from typing import Any, Dict

from polyllm.core.providers.base import BaseLangChainChatModel
from polyllm.service.errors import ProviderConfigurationError
from polyllm.service.policies import get_request_timeout
from polyllm.types.capabilities import Capability
from polyllm.types.requests import ChatRequest

try:  # pragma: no cover - exercised via mocks in unit tests
    from langchain_google_genai import ChatGoogleGenerativeAI
except Exception as exc:
    ChatGoogleGenerativeAI = None  # type: ignore[assignment]
    _import_error: Exception | None = exc
else:
    _import_error = None


class GeminiChatModel(BaseLangChainChatModel):
    """Provider adapter backed by LangChain's ChatGoogleGenerativeAI."""

    provider_id = "gemini"
    capabilities = frozenset({Capability.CHAT, Capability.COMPLETION, Capability.VISION})

    def __init__(self, default_model: str | None = "gemini-2.0-flash") -> None:
        if _import_error is not None or ChatGoogleGenerativeAI is None:
            raise ProviderConfigurationError(
                "langchain-google-genai is not installed or failed to import. "
                "Install with `pip install langchain-google-genai`."
            ) from _import_error

        # New Google GenAI client expects GOOGLE_API_KEY by default.
        if not os.getenv("GEMINI_API_KEY") and not os.getenv("GOOGLE_API_KEY"):
            raise ProviderConfigurationError(
                "GEMINI_API_KEY or GOOGLE_API_KEY must be set to use GeminiChatModel."
            )
        super().__init__(default_model)

    def _build_client(self, model: str) -> Any:
        api_key = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
        return ChatGoogleGenerativeAI(model=model, google_api_key=api_key, timeout=get_request_timeout())

    def _generation_params(self, request: ChatRequest) -> Dict[str, Any]:
        params = super()._generation_params(request)
        if "max_tokens" in params:
            params["max_output_tokens"] = params.pop("max_tokens")
        return params


__all__ = ["GeminiChatModel"]
