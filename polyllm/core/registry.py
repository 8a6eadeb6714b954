from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Union

from polyllm.core.interfaces import ProviderAdapter
from polyllm.service.errors import DuplicateProvider, UnknownProvider
from polyllm.types.capabilities import ProviderHandle

ProviderRef = Union[str, ProviderHandle]


@dataclass
class ProviderRegistry:
    """
    Dispatch façade mapping provider ids to registered adapters.

    Written during setup only; after that it is read without locking.
    Tests construct their own instance instead of using the process-wide one.
    """

    _handles: Dict[str, ProviderHandle] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def register(self, provider_id: str, adapter: ProviderAdapter) -> ProviderHandle:
        """Register an adapter. Re-registering the same adapter returns the existing handle."""

        if not provider_id:
            raise ValueError("provider_id must be non-empty")
        with self._lock:
            existing = self._handles.get(provider_id)
            if existing is not None:
                if existing.adapter is adapter:
                    return existing
                raise DuplicateProvider(provider_id)
            handle = ProviderHandle(
                provider_id=provider_id,
                adapter=adapter,
                capabilities=frozenset(getattr(adapter, "capabilities", ())),
            )
            self._handles[provider_id] = handle
            return handle

    def resolve(self, provider: ProviderRef) -> ProviderHandle:
        """
        Return the handle registered for ``provider``.

        Accepts an id or a handle; a handle only resolves while it is still the
        one registered under its id. Raises UnknownProvider otherwise.
        """

        provider_id = provider.provider_id if isinstance(provider, ProviderHandle) else provider
        handle = self._handles.get(provider_id)
        if handle is None or (isinstance(provider, ProviderHandle) and handle is not provider):
            raise UnknownProvider(provider_id, self.provider_ids())
        return handle

    def unregister(self, provider_id: str) -> None:
        with self._lock:
            self._handles.pop(provider_id, None)

    def provider_ids(self) -> List[str]:
        return list(self._handles.keys())

    def handles(self) -> List[ProviderHandle]:
        return list(self._handles.values())

    def clear(self) -> None:
        """Remove all registered providers."""
        with self._lock:
            self._handles.clear()

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._handles


_global_registry: ProviderRegistry | None = None
_global_registry_lock = threading.Lock()


def get_provider_registry() -> ProviderRegistry:
    """Return the process-wide ProviderRegistry singleton (thread-safe)."""

    global _global_registry
    if _global_registry is None:
        with _global_registry_lock:
            if _global_registry is None:
                _global_registry = ProviderRegistry()
    return _global_registry


__all__ = ["ProviderRef", "ProviderRegistry", "get_provider_registry"]
