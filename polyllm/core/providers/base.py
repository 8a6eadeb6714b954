"""Base class for LangChain-backed provider adapters.

Encapsulates the shared send logic so provider subclasses only need to
build a configured LangChain chat model client for a given model name.
"""

from __future__ import annotations

import json
import threading
from typing import Any, Dict, FrozenSet, List

from polyllm.core.dispatch import to_provider_error
from polyllm.core.interfaces import ProviderAdapter
from polyllm.core.langchain_utils import (
    parse_tool_calls_from_ai_message,
    split_content,
    to_langchain_messages,
)
from polyllm.service.errors import ProviderConfigurationError
from polyllm.types.capabilities import Capability
from polyllm.types.messages import ChatMessage
from polyllm.types.requests import ChatRequest, ResponseSchema
from polyllm.types.responses import ChatResponse

SCHEMA_INSTRUCTION = (
    "Respond with JSON only, no markdown and no prose. "
    "The JSON must match the schema '{name}':\n{schema}"
)


class BaseLangChainChatModel(ProviderAdapter):
    """Shared send logic for all LangChain-backed providers.

    Subclasses set ``provider_id`` and ``capabilities`` and implement
    ``_build_client``. One LangChain client is built lazily per model name.
    """

    provider_id: str
    capabilities: FrozenSet[Capability] = frozenset({Capability.CHAT, Capability.COMPLETION})

    def __init__(self, default_model: str | None = None) -> None:
        self.default_model = default_model
        self._clients: Dict[str, Any] = {}
        self._clients_lock = threading.Lock()

    def _build_client(self, model: str) -> Any:  # pragma: no cover - overridden
        raise NotImplementedError

    def _client_for(self, model: str) -> Any:
        client = self._clients.get(model)
        if client is None:
            with self._clients_lock:
                client = self._clients.get(model)
                if client is None:
                    client = self._build_client(model)
                    self._clients[model] = client
        return client

    def _generation_params(self, request: ChatRequest) -> Dict[str, Any]:
        return request.sampling_params()

    def _apply_response_schema(self, client: Any, messages: List[ChatMessage], schema: ResponseSchema) -> Any:
        """Default: instruct the model through a leading system turn."""
        instruction = SCHEMA_INSTRUCTION.format(
            name=schema.name,
            schema=json.dumps(schema.json_schema or {}, indent=2),
        )
        messages.insert(0, ChatMessage.system(instruction))
        return client

    def resolve_model(self, request: ChatRequest) -> str:
        model = request.model or self.default_model
        if not model:
            raise ProviderConfigurationError(
                f"No model given for provider '{self.provider_id}' and no default configured."
            )
        return model

    def send(self, request: ChatRequest) -> ChatResponse:
        model = self.resolve_model(request)
        client = self._client_for(model)
        messages = list(request.messages)
        if request.tools:
            client = client.bind_tools([tool.to_openai_tool() for tool in request.tools])
        if request.response_schema is not None:
            client = self._apply_response_schema(client, messages, request.response_schema)
        params = self._generation_params(request)
        if params:
            client = client.bind(**params)
        lc_messages = to_langchain_messages(messages)
        try:
            result = client.invoke(lc_messages)
        except Exception as exc:
            raise to_provider_error(self.provider_id, exc) from exc

        text, reasoning = split_content(result)
        tool_calls = parse_tool_calls_from_ai_message(result)
        return ChatResponse(
            text=text,
            tool_calls=tool_calls,
            reasoning=reasoning,
            model=model,
            provider_id=self.provider_id,
            raw=result,
        )


__all__ = ["BaseLangChainChatModel", "SCHEMA_INSTRUCTION"]
