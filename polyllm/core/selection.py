"""Parsing of ``provider:model`` selection strings used by the CLI and REST façade."""

from __future__ import annotations

from typing import NamedTuple

from polyllm.service.errors import InvalidSelection


class Selection(NamedTuple):
    provider_id: str
    model: str

    def __str__(self) -> str:
        return f"{self.provider_id}:{self.model}"


def parse_selection(value: str) -> Selection:
    """
    Split ``"openai:gpt-4o-mini"`` into provider id and model.

    Only the first colon separates the two, so model names may contain colons
    (e.g. ``"litellm:ollama/llama3:8b"``). Provider ids are case-insensitive.
    """
    if not isinstance(value, str) or ":" not in value:
        raise InvalidSelection(f"Expected 'provider:model', got {value!r}")
    provider_id, model = value.split(":", 1)
    provider_id = provider_id.strip().lower()
    model = model.strip()
    if not provider_id or not model:
        raise InvalidSelection(f"Expected 'provider:model', got {value!r}")
    return Selection(provider_id, model)


__all__ = ["Selection", "parse_selection"]
