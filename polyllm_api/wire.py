"""
Wire format for the REST façade.

Incoming payloads follow the OpenAI chat-completions shape; model fields are
``provider:model`` selections. Outgoing bodies mirror ``chat.completion``.
"""

from __future__ import annotations

import base64
import binascii
import json
import time
import uuid
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from polyllm.core.selection import Selection, parse_selection
from polyllm.orchestration.evaluator import EvaluationResult
from polyllm.types.messages import ChatMessage, ImageContent, ImageMime, ImageUrlContent, Role, ToolCall
from polyllm.types.requests import ChatRequest, ResponseSchema, ToolSpec
from polyllm.types.responses import ChatResponse


class WireToolCallFunction(BaseModel):
    name: str
    arguments: Union[str, Dict[str, Any]] = "{}"


class WireToolCall(BaseModel):
    id: str = ""
    type: str = "function"
    function: WireToolCallFunction


class WireMessage(BaseModel):
    role: Role
    content: Union[str, List[Dict[str, Any]], None] = None
    name: Optional[str] = None
    tool_call_id: Optional[str] = None
    tool_calls: Optional[List[WireToolCall]] = None


class WireFunction(BaseModel):
    name: str
    description: str = ""
    parameters: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})


class WireTool(BaseModel):
    type: Literal["function"] = "function"
    function: WireFunction


class WireJsonSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: Optional[str] = None
    schema_: Optional[Dict[str, Any]] = Field(default=None, alias="schema")
    strict: Optional[bool] = None


class WireResponseFormat(BaseModel):
    type: Literal["text", "json_object", "json_schema"] = "text"
    json_schema: Optional[WireJsonSchema] = None


class ValidationOptions(BaseModel):
    # None defers to POLYLLM_VALIDATION_MAX_RETRIES.
    max_retries: Optional[int] = Field(default=None, ge=0, le=10)
    json_schema: Optional[Dict[str, Any]] = None


class WireStep(BaseModel):
    model: str
    template: str = Field(min_length=1)
    name: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)

    @field_validator("model")
    @classmethod
    def _check_selection(cls, value: str) -> str:
        parse_selection(value)
        return value


class ChatCompletionPayload(BaseModel):
    model: Optional[str] = None
    messages: List[WireMessage] = Field(min_length=1)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    tools: Optional[List[WireTool]] = None
    response_format: Optional[WireResponseFormat] = None
    validation: Optional[ValidationOptions] = None
    steps: Optional[List[WireStep]] = None
    stream: bool = False

    @field_validator("stream")
    @classmethod
    def _no_streaming(cls, value: bool) -> bool:
        if value:
            raise ValueError("streaming is not supported")
        return value


class KeywordScorerSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    keywords: List[str] = Field(min_length=1)
    case_sensitive: bool = False


class SchemaScorerSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    json_schema: Dict[str, Any]


ScorerSpec = Union[str, KeywordScorerSpec, SchemaScorerSpec]


class EvaluationPayload(BaseModel):
    models: List[str] = Field(min_length=1)
    messages: List[WireMessage] = Field(min_length=1)
    scorers: List[ScorerSpec] = Field(default_factory=lambda: ["non_empty"])
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)

    @field_validator("models")
    @classmethod
    def _check_selections(cls, value: List[str]) -> List[str]:
        for item in value:
            parse_selection(item)
        return value


def _image_part(url: str, role: Role) -> ChatMessage:
    if url.startswith("data:") and ";base64," in url:
        header, data = url[5:].split(";base64,", 1)
        try:
            mime = ImageMime(header)
            raw = base64.b64decode(data, validate=True)
        except (ValueError, binascii.Error) as exc:
            raise ValueError(f"Unsupported image data URL: {exc}") from exc
        return ChatMessage(role=role, content=ImageContent(data=raw, mime=mime))
    return ChatMessage(role=role, content=ImageUrlContent(url=url))


def _tool_call(call: WireToolCall) -> ToolCall:
    args = call.function.arguments
    if isinstance(args, str):
        args = json.loads(args) if args.strip() else {}
    return ToolCall(id=call.id, name=call.function.name, arguments=args)


def to_chat_messages(messages: List[WireMessage]) -> List[ChatMessage]:
    """Content-part lists become one ChatMessage per part, keeping role and order."""
    out: List[ChatMessage] = []
    for m in messages:
        tool_calls = [_tool_call(tc) for tc in m.tool_calls] if m.tool_calls else None
        if m.content is None or isinstance(m.content, str):
            out.append(
                ChatMessage(
                    role=m.role,
                    content=m.content or "",
                    name=m.name,
                    tool_call_id=m.tool_call_id,
                    tool_calls=tool_calls,
                )
            )
            continue
        for part in m.content:
            kind = part.get("type")
            if kind == "text":
                out.append(ChatMessage(role=m.role, content=part.get("text") or "", name=m.name))
            elif kind == "image_url":
                image = part.get("image_url") or {}
                url = image.get("url") if isinstance(image, dict) else image
                if not url:
                    raise ValueError("image_url part without url")
                out.append(_image_part(url, m.role))
            else:
                raise ValueError(f"Unsupported content part type: {kind!r}")
    return out


def response_schema(fmt: Optional[WireResponseFormat]) -> Optional[ResponseSchema]:
    if fmt is None or fmt.type == "text":
        return None
    if fmt.type == "json_object" or fmt.json_schema is None:
        return ResponseSchema(name="json_object", schema={"type": "object"})
    return ResponseSchema(
        name=fmt.json_schema.name,
        description=fmt.json_schema.description,
        schema=fmt.json_schema.schema_,
        strict=fmt.json_schema.strict,
    )


def to_chat_request(payload: ChatCompletionPayload, selection: Selection) -> ChatRequest:
    tools = None
    if payload.tools:
        tools = [
            ToolSpec(name=t.function.name, description=t.function.description, parameters=t.function.parameters)
            for t in payload.tools
        ]
    return ChatRequest(
        messages=to_chat_messages(payload.messages),
        model=selection.model,
        temperature=payload.temperature,
        max_tokens=payload.max_tokens,
        top_p=payload.top_p,
        tools=tools,
        response_schema=response_schema(payload.response_format),
    )


def _message_body(response: ChatResponse) -> Dict[str, Any]:
    body: Dict[str, Any] = {"role": "assistant", "content": response.text}
    if response.tool_calls:
        body["tool_calls"] = [
            {
                "id": tc.id,
                "type": "function",
                "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
            }
            for tc in response.tool_calls
        ]
    if response.reasoning:
        body["reasoning_content"] = response.reasoning
    return body


def completion_body(response: ChatResponse, selection: Selection) -> Dict[str, Any]:
    return {
        "id": f"chatcmpl-{uuid.uuid4().hex}",
        "object": "chat.completion",
        "created": int(time.time()),
        "model": f"{selection.provider_id}:{response.model or selection.model}",
        "choices": [
            {
                "index": 0,
                "message": _message_body(response),
                "finish_reason": "tool_calls" if response.tool_calls else "stop",
            }
        ],
    }


def step_body(name: Optional[str], index: int, response: ChatResponse) -> Dict[str, Any]:
    return {
        "index": index,
        "name": name,
        "provider": response.provider_id,
        "model": response.model,
        "content": response.text,
    }


def evaluation_body(result: EvaluationResult, selections: Dict[str, Selection]) -> Dict[str, Any]:
    def _label(provider_id: str) -> str:
        selection = selections.get(provider_id)
        return str(selection) if selection else provider_id

    return {
        "object": "evaluation",
        "winner": _label(result.winner.provider_id),
        "results": [
            {
                "model": _label(handle.provider_id),
                "score": scored.score,
                "scores": list(scored.scores),
                "content": scored.response.text,
            }
            for handle, scored in result.ranking()
        ],
        "errors": [
            {
                "model": _label(handle.provider_id),
                "type": type(exc).__name__,
                "message": str(exc),
            }
            for handle, exc in result.errors.items()
        ],
    }


__all__ = [
    "ChatCompletionPayload",
    "EvaluationPayload",
    "KeywordScorerSpec",
    "SchemaScorerSpec",
    "to_chat_messages",
    "to_chat_request",
    "response_schema",
    "completion_body",
    "step_body",
    "evaluation_body",
]
