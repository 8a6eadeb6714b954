"""
Provider-agnostic LLM orchestration.

Public entrypoints:

    from polyllm import ChatRequest, ProviderRegistry, ChainExecutor
    from polyllm.core.providers import register_default_providers

    registry = ProviderRegistry()
    register_default_providers(registry)
    response = Validator(registry).validate(request, "openai", predicate)
"""

from .core.registry import ProviderRegistry, get_provider_registry
from .orchestration import (
    CancellationToken,
    Chain,
    ChainExecutor,
    ChainStep,
    ParallelEvaluator,
    ValidatedProvider,
    Validator,
    prompt_step,
)
from .types import Capability, ChatMessage, ChatRequest, ChatResponse, ProviderHandle, RequestOptions

__all__ = [
    "ProviderRegistry",
    "get_provider_registry",
    "CancellationToken",
    "Chain",
    "ChainExecutor",
    "ChainStep",
    "ParallelEvaluator",
    "ValidatedProvider",
    "Validator",
    "prompt_step",
    "Capability",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ProviderHandle",
    "RequestOptions",
]
