from .capabilities import Capability, ProviderHandle
from .messages import (
    ChatMessage,
    DocumentContent,
    ImageContent,
    ImageMime,
    ImageUrlContent,
    Role,
    TextContent,
    ToolCall,
)
from .requests import ChatRequest, RequestOptions, ResponseSchema, ToolSpec
from .responses import ChatResponse

__all__ = [
    "Capability",
    "ProviderHandle",
    "ChatMessage",
    "DocumentContent",
    "ImageContent",
    "ImageMime",
    "ImageUrlContent",
    "Role",
    "TextContent",
    "ToolCall",
    "ChatRequest",
    "RequestOptions",
    "ResponseSchema",
    "ToolSpec",
    "ChatResponse",
]
