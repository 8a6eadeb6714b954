from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ImageMime(str, Enum):
    JPEG = "image/jpeg"
    PNG = "image/png"
    GIF = "image/gif"
    WEBP = "image/webp"


class TextContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str


class ImageContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    data: bytes
    mime: ImageMime


class DocumentContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["document"] = "document"
    data: bytes
    mime: str = "application/pdf"


class ImageUrlContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["image_url"] = "image_url"
    url: str


Content = Annotated[
    Union[TextContent, ImageContent, DocumentContent, ImageUrlContent],
    Field(discriminator="kind"),
]


class ToolCall(BaseModel):
    """Represents a tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    id: str  # correlates call with result
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class ChatMessage(BaseModel):
    """Single turn of a conversation. Order of messages in a request is turn order."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: Content
    name: Optional[str] = None
    tool_calls: Optional[Tuple[ToolCall, ...]] = None  # assistant messages requesting tools
    tool_call_id: Optional[str] = None  # tool result messages

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return TextContent(text=value)
        return value

    @property
    def text(self) -> str:
        if isinstance(self.content, TextContent):
            return self.content.text
        return ""

    @property
    def has_media(self) -> bool:
        return isinstance(self.content, (ImageContent, DocumentContent, ImageUrlContent))

    @classmethod
    def system(cls, text: str) -> "ChatMessage":
        return cls(role=Role.SYSTEM, content=text)

    @classmethod
    def user(cls, text: str) -> "ChatMessage":
        return cls(role=Role.USER, content=text)

    @classmethod
    def assistant(cls, text: str, tool_calls: list[ToolCall] | None = None) -> "ChatMessage":
        return cls(role=Role.ASSISTANT, content=text, tool_calls=tool_calls)

    @classmethod
    def tool(cls, text: str, tool_call_id: str) -> "ChatMessage":
        return cls(role=Role.TOOL, content=text, tool_call_id=tool_call_id)

    @classmethod
    def image(cls, data: bytes, mime: ImageMime = ImageMime.PNG, role: Role = Role.USER) -> "ChatMessage":
        return cls(role=role, content=ImageContent(data=data, mime=mime))

    @classmethod
    def image_url(cls, url: str, role: Role = Role.USER) -> "ChatMessage":
        return cls(role=role, content=ImageUrlContent(url=url))

    @classmethod
    def document(cls, data: bytes, mime: str = "application/pdf", role: Role = Role.USER) -> "ChatMessage":
        return cls(role=role, content=DocumentContent(data=data, mime=mime))


__all__ = [
    "Role",
    "ImageMime",
    "TextContent",
    "ImageContent",
    "DocumentContent",
    "ImageUrlContent",
    "Content",
    "ToolCall",
    "ChatMessage",
]
