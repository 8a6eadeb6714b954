from __future__ import annotations

from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .messages import ChatMessage, ToolCall


class ChatResponse(BaseModel):
    """Normalized response from exactly one provider call."""

    model_config = ConfigDict(frozen=True)

    text: Optional[str] = None
    tool_calls: Optional[Tuple[ToolCall, ...]] = None
    reasoning: Optional[str] = None
    model: Optional[str] = None
    provider_id: Optional[str] = None
    raw: Any = Field(default=None, exclude=True, repr=False)  # vendor payload, opaque

    def __str__(self) -> str:
        return self.text or ""

    def to_message(self) -> ChatMessage:
        """Assistant turn to append to a conversation."""
        return ChatMessage.assistant(self.text or "", tool_calls=list(self.tool_calls) if self.tool_calls else None)


__all__ = ["ChatResponse"]
