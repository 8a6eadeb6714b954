"""Shared LangChain message conversion used by all providers."""

from __future__ import annotations

import base64
from typing import Any, List, Optional, Sequence, Tuple

from polyllm.types.messages import (
    ChatMessage,
    DocumentContent,
    ImageContent,
    ImageUrlContent,
    Role,
    ToolCall,
)

try:  # pragma: no cover - exercised via mocks in unit tests
    from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage
except Exception:
    AIMessage = HumanMessage = SystemMessage = ToolMessage = None  # type: ignore[assignment]


def _data_url(mime: str, data: bytes) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def to_content(message: ChatMessage) -> Any:
    """Text stays a plain string; media becomes a single-element list of content blocks."""
    content = message.content
    if isinstance(content, ImageContent):
        return [{"type": "image_url", "image_url": {"url": _data_url(content.mime.value, content.data)}}]
    if isinstance(content, ImageUrlContent):
        return [{"type": "image_url", "image_url": {"url": content.url}}]
    if isinstance(content, DocumentContent):
        return [
            {
                "type": "file",
                "source_type": "base64",
                "mime_type": content.mime,
                "data": base64.b64encode(content.data).decode("ascii"),
            }
        ]
    return message.text


def _normalize_tool_call(tc: object) -> ToolCall:
    """Convert LangChain tool call (dict or object) to our ToolCall."""
    if isinstance(tc, dict):
        return ToolCall(
            id=tc.get("id") or "",
            name=tc["name"],
            arguments=tc.get("args") or {},
        )
    return ToolCall(
        id=getattr(tc, "id", "") or "",
        name=getattr(tc, "name", ""),
        arguments=getattr(tc, "args", None) or {},
    )


def parse_tool_calls_from_ai_message(ai_message: object) -> list[ToolCall] | None:
    """Extract our ToolCall list from a LangChain AIMessage (or similar)."""
    raw = getattr(ai_message, "tool_calls", None) or []
    if not raw:
        return None
    return [_normalize_tool_call(tc) for tc in raw]


def split_content(ai_message: object) -> Tuple[Optional[str], Optional[str]]:
    """
    Return ``(text, reasoning)`` from an AIMessage.

    ``content`` is either a string or a list of blocks; ``thinking`` and
    ``reasoning`` blocks, and ``reasoning_content`` in additional_kwargs,
    are collected as reasoning.
    """
    content = getattr(ai_message, "content", ai_message)
    texts: List[str] = []
    reasoning: List[str] = []
    if isinstance(content, str):
        texts.append(content)
    elif isinstance(content, Sequence):
        for block in content:
            if isinstance(block, str):
                texts.append(block)
                continue
            if not isinstance(block, dict):
                continue
            kind = block.get("type")
            if kind == "text":
                texts.append(block.get("text") or "")
            elif kind == "thinking":
                reasoning.append(block.get("thinking") or "")
            elif kind == "reasoning":
                reasoning.append(block.get("reasoning") or block.get("text") or "")
    else:
        texts.append(str(content))

    extra = getattr(ai_message, "additional_kwargs", None)
    if isinstance(extra, dict) and isinstance(extra.get("reasoning_content"), str):
        reasoning.append(extra["reasoning_content"])

    text = "".join(texts)
    joined_reasoning = "\n".join(r for r in reasoning if r)
    return (text or None, joined_reasoning or None)


def to_langchain_messages(messages: Sequence[ChatMessage]):
    """Convert ChatMessage objects to LangChain message types.

    Role mapping:
        system    → SystemMessage
        assistant → AIMessage (with optional tool_calls)
        user      → HumanMessage
        tool      → ToolMessage if tool_call_id is set, else HumanMessage
    """
    lc_messages = []
    for m in messages:
        content = to_content(m)
        if m.role == Role.SYSTEM:
            lc_messages.append(SystemMessage(content=content))
        elif m.role == Role.ASSISTANT:
            tool_calls_lc = None
            if m.tool_calls:
                tool_calls_lc = [
                    {"id": tc.id, "name": tc.name, "args": tc.arguments}
                    for tc in m.tool_calls
                ]
            lc_messages.append(AIMessage(content=content, tool_calls=tool_calls_lc or []))
        elif m.role == Role.TOOL and m.tool_call_id:
            lc_messages.append(ToolMessage(content=content, tool_call_id=m.tool_call_id))
        else:
            lc_messages.append(HumanMessage(content=content))
    return lc_messages


__all__ = [
    "to_content",
    "to_langchain_messages",
    "parse_tool_calls_from_ai_message",
    "split_content",
]
