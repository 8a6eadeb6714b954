from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .messages import ChatMessage


class ToolSpec(BaseModel):
    """Function tool the model may call. ``parameters`` is a JSON schema object."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    description: str = ""
    parameters: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})

    def to_openai_tool(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class ResponseSchema(BaseModel):
    """Structured output format. Only ``name`` is required."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    description: Optional[str] = None
    schema_: Optional[Dict[str, Any]] = Field(default=None, alias="schema")
    strict: Optional[bool] = None

    @property
    def json_schema(self) -> Optional[Dict[str, Any]]:
        return self.schema_


class RequestOptions(BaseModel):
    """Recognised request options, used to build an immutable ChatRequest."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    model: str = ""
    system: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    top_k: Optional[int] = Field(default=None, gt=0)
    tools: Optional[Tuple[ToolSpec, ...]] = None
    response_schema: Optional[ResponseSchema] = None


class ChatRequest(BaseModel):
    """Normalized chat request. Immutable; use the ``with_*`` helpers to derive new ones."""

    model_config = ConfigDict(frozen=True)

    messages: Tuple[ChatMessage, ...] = Field(min_length=1)
    model: str = ""
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    top_k: Optional[int] = Field(default=None, gt=0)
    tools: Optional[Tuple[ToolSpec, ...]] = None
    response_schema: Optional[ResponseSchema] = None

    @classmethod
    def from_options(
        cls, messages: Sequence[ChatMessage], options: RequestOptions | None = None
    ) -> "ChatRequest":
        options = options or RequestOptions()
        params = options.model_dump(exclude={"system", "tools", "response_schema"})
        turns = list(messages)
        if options.system:
            turns.insert(0, ChatMessage.system(options.system))
        return cls(
            messages=turns,
            tools=options.tools,
            response_schema=options.response_schema,
            **params,
        )

    @classmethod
    def prompt(cls, text: str, **options: Any) -> "ChatRequest":
        """Single user turn request, e.g. ``ChatRequest.prompt("Hi", model="gpt-4o")``."""
        return cls.from_options([ChatMessage.user(text)], RequestOptions(**options))

    def with_message(self, message: ChatMessage) -> "ChatRequest":
        return self.model_copy(update={"messages": self.messages + (message,)})

    def with_messages(self, messages: Iterable[ChatMessage]) -> "ChatRequest":
        return self.model_copy(update={"messages": self.messages + tuple(messages)})

    def with_model(self, model: str) -> "ChatRequest":
        return self.model_copy(update={"model": model})

    @property
    def has_media(self) -> bool:
        return any(m.has_media for m in self.messages)

    def sampling_params(self) -> Dict[str, Any]:
        """Generation parameters that were explicitly set."""
        params = {
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
            "top_k": self.top_k,
        }
        return {k: v for k, v in params.items() if v is not None}


__all__ = ["ToolSpec", "ResponseSchema", "RequestOptions", "ChatRequest"]
