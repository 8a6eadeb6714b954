from .interfaces import EmbeddingAdapter, ProviderAdapter
from .registry import ProviderRegistry, get_provider_registry
from .selection import Selection, parse_selection

__all__ = [
    "EmbeddingAdapter",
    "ProviderAdapter",
    "ProviderRegistry",
    "get_provider_registry",
    "Selection",
    "parse_selection",
]
