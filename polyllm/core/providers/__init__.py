"""
Built-in provider adapters.

These modules wrap LangChain chat model integrations for each vendor, plus a
LiteLLM adapter for everything else.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional

from polyllm.core.interfaces import ProviderAdapter
from polyllm.core.registry import ProviderRegistry
from polyllm.service.errors import PolyLLMError
from polyllm.service.policies import get_enabled_providers

from .anthropic import AnthropicChatModel
from .base import BaseLangChainChatModel
from .gemini import GeminiChatModel
from .litellm import LiteLLMChatModel
from .openai import OpenAIChatModel

logger = logging.getLogger(__name__)

BUILTIN_PROVIDERS: Dict[str, Callable[[], ProviderAdapter]] = {
    "openai": OpenAIChatModel,
    "anthropic": AnthropicChatModel,
    "gemini": GeminiChatModel,
    "litellm": LiteLLMChatModel,
}


def register_default_providers(
    registry: ProviderRegistry,
    provider_ids: Optional[Iterable[str]] = None,
) -> List[str]:
    """
    Construct and register the built-in adapters.

    ``provider_ids`` defaults to POLYLLM_PROVIDERS (all built-ins when unset).
    Adapters whose SDK or credentials are missing are skipped with a warning,
    so their ids later resolve to UnknownProvider. Returns the registered ids.
    """
    wanted = list(provider_ids) if provider_ids is not None else get_enabled_providers()
    if wanted is None:
        wanted = list(BUILTIN_PROVIDERS)
    registered: List[str] = []
    for provider_id in wanted:
        factory = BUILTIN_PROVIDERS.get(provider_id)
        if factory is None:
            logger.warning("Ignoring unknown built-in provider '%s'", provider_id)
            continue
        try:
            adapter = factory()
        except PolyLLMError as exc:
            logger.warning("Provider '%s' not configured: %s", provider_id, exc)
            continue
        registry.register(provider_id, adapter)
        registered.append(provider_id)
    logger.info("Registered providers: %s", registered or "[]")
    return registered


__all__ = [
    "BUILTIN_PROVIDERS",
    "BaseLangChainChatModel",
    "OpenAIChatModel",
    "AnthropicChatModel",
    "GeminiChatModel",
    "LiteLLMChatModel",
    "register_default_providers",
]
