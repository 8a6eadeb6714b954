from __future__ import annotations

from typing import AbstractSet, Protocol, runtime_checkable

from polyllm.types.capabilities import Capability
from polyllm.types.requests import ChatRequest
from polyllm.types.responses import ChatResponse


@runtime_checkable
class ProviderAdapter(Protocol):
    """
    Vendor-neutral provider interface.

    Concrete implementations wrap one vendor's transport (usually a LangChain
    chat model) and map its errors onto ``ProviderCallFailed`` /
    ``ProviderTimeout`` instead of leaking vendor exception types.
    """

    provider_id: str
    capabilities: AbstractSet[Capability]

    def send(self, request: ChatRequest) -> ChatResponse:
        """Run a single non-streaming chat completion."""

        ...


@runtime_checkable
class EmbeddingAdapter(Protocol):
    """Adapters advertising ``Capability.EMBEDDING`` also implement ``embed``."""

    def embed(self, texts: list[str]) -> list[list[float]]:
        ...


__all__ = ["ProviderAdapter", "EmbeddingAdapter"]
