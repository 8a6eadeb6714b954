from __future__ import annotations

import os
from typing import Any, List

from polyllm.core.providers.base import BaseLangChainChatModel
from polyllm.service.errors import ProviderConfigurationError
from polyllm.service.policies import get_request_timeout
from polyllm.types.capabilities import Capability
from polyllm.types.messages import ChatMessage
from polyllm.types.requests import ResponseSchema

try:  # pragma: no cover - exercised via mocks in unit tests
    from langchain_openai import ChatOpenAI, OpenAIEmbeddings
except Exception as exc:  # ImportError or other environment issues
    # Defer failure until provider is actually constructed
    ChatOpenAI = OpenAIEmbeddings = None  # type: ignore[assignment]
    _import_error: Exception | None = exc
else:
    _import_error = None

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


class OpenAIChatModel(BaseLangChainChatModel):
    """Provider adapter backed by LangChain's ChatOpenAI."""

    provider_id = "openai"
    capabilities = frozenset(
        {Capability.CHAT, Capability.COMPLETION, Capability.VISION, Capability.EMBEDDING}
    )

    def __init__(self, default_model: str | None = "gpt-4o-mini", embedding_model: str | None = None) -> None:
        if _import_error is not None or ChatOpenAI is None:
            raise ProviderConfigurationError(
                "langchain-openai is not installed or failed to import. "
                "Install with `pip install langchain-openai`."
            ) from _import_error

        if not os.getenv("OPENAI_API_KEY"):
            raise ProviderConfigurationError(
                "OPENAI_API_KEY is not set; cannot initialize OpenAIChatModel."
            )
        super().__init__(default_model)
        self.embedding_model = embedding_model or os.getenv("POLYLLM_OPENAI_EMBEDDING_MODEL") or DEFAULT_EMBEDDING_MODEL

    def _build_client(self, model: str) -> Any:
        # Let ChatOpenAI read the API key and base URL from the environment.
        return ChatOpenAI(model=model, timeout=get_request_timeout())

    def _apply_response_schema(self, client: Any, messages: List[ChatMessage], schema: ResponseSchema) -> Any:
        json_schema: dict[str, Any] = {"name": schema.name, "schema": schema.json_schema or {"type": "object"}}
        if schema.description:
            json_schema["description"] = schema.description
        if schema.strict is not None:
            json_schema["strict"] = schema.strict
        return client.bind(response_format={"type": "json_schema", "json_schema": json_schema})

    def embed(self, texts: list[str]) -> list[list[float]]:
        embeddings = OpenAIEmbeddings(model=self.embedding_model, request_timeout=get_request_timeout())
        return embeddings.embed_documents(texts)


__all__ = ["OpenAIChatModel"]
