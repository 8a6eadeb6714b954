"""
LiteLLM implementation of the provider adapter.

Model names use LiteLLM's own routing syntax (``groq/llama3-70b-8192``,
``ollama/llama3``), so one registration covers every vendor LiteLLM knows.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from polyllm.core.dispatch import to_provider_error
from polyllm.core.interfaces import ProviderAdapter
from polyllm.core.langchain_utils import to_content
from polyllm.service.errors import ProviderConfigurationError
from polyllm.service.policies import get_request_timeout
from polyllm.types.capabilities import Capability
from polyllm.types.messages import ChatMessage, Role, ToolCall
from polyllm.types.requests import ChatRequest
from polyllm.types.responses import ChatResponse

logger = logging.getLogger(__name__)


def to_openai_messages(messages: List[ChatMessage]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for m in messages:
        item: Dict[str, Any] = {"role": m.role.value, "content": to_content(m)}
        if m.role == Role.ASSISTANT and m.tool_calls:
            item["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
                }
                for tc in m.tool_calls
            ]
        if m.role == Role.TOOL and m.tool_call_id:
            item["tool_call_id"] = m.tool_call_id
        if m.name:
            item["name"] = m.name
        out.append(item)
    return out


def _parse_arguments(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Tool call arguments are not valid JSON: %r", raw)
        return {"_raw": raw}
    return parsed if isinstance(parsed, dict) else {"value": parsed}


class LiteLLMChatModel(ProviderAdapter):
    """Adapter that delegates to ``litellm.completion``."""

    provider_id = "litellm"
    capabilities = frozenset({Capability.CHAT, Capability.COMPLETION})

    def __init__(self, default_model: str | None = None) -> None:
        try:
            import litellm  # noqa: F401
        except Exception as exc:
            raise ProviderConfigurationError(
                "litellm is not installed or failed to import. Install with `pip install litellm`."
            ) from exc
        self.default_model = default_model

    def _completion_kwargs(self, request: ChatRequest, model: str) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": to_openai_messages(list(request.messages)),
            "timeout": get_request_timeout(),
            **request.sampling_params(),
        }
        if request.tools:
            kwargs["tools"] = [tool.to_openai_tool() for tool in request.tools]
        schema = request.response_schema
        if schema is not None:
            json_schema: Dict[str, Any] = {"name": schema.name, "schema": schema.json_schema or {"type": "object"}}
            if schema.strict is not None:
                json_schema["strict"] = schema.strict
            kwargs["response_format"] = {"type": "json_schema", "json_schema": json_schema}
        return kwargs

    def send(self, request: ChatRequest) -> ChatResponse:
        model = request.model or self.default_model
        if not model:
            raise ProviderConfigurationError("No model given for provider 'litellm' and no default configured.")
        import litellm

        try:
            response = litellm.completion(**self._completion_kwargs(request, model))
        except Exception as exc:
            raise to_provider_error(self.provider_id, exc) from exc

        response_model = getattr(response, "model", None)
        text = None
        reasoning = None
        tool_calls = None
        choices = getattr(response, "choices", None) or []
        if choices:
            message = getattr(choices[0], "message", None)
            text = getattr(message, "content", None)
            reasoning = getattr(message, "reasoning_content", None)
            raw_calls = getattr(message, "tool_calls", None) or []
            if raw_calls:
                tool_calls = [
                    ToolCall(
                        id=getattr(tc, "id", "") or "",
                        name=tc.function.name,
                        arguments=_parse_arguments(tc.function.arguments),
                    )
                    for tc in raw_calls
                ]
        return ChatResponse(
            text=text if isinstance(text, str) else None,
            tool_calls=tool_calls,
            reasoning=reasoning if isinstance(reasoning, str) else None,
            model=response_model if isinstance(response_model, str) else model,
            provider_id=self.provider_id,
            raw=response,
        )


__all__ = ["LiteLLMChatModel", "to_openai_messages"]
