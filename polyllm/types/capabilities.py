from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, FrozenSet

from polyllm.service.errors import CapabilityMismatch

if TYPE_CHECKING:
    from polyllm.core.interfaces import ProviderAdapter


class Capability(str, Enum):
    CHAT = "chat"
    COMPLETION = "completion"
    EMBEDDING = "embedding"
    VISION = "vision"


@dataclass(frozen=True, eq=False)
class ProviderHandle:
    """
    Registered provider. Compared and hashed by identity so it can key
    evaluation results; the registry hands out exactly one handle per id.
    """

    provider_id: str
    adapter: "ProviderAdapter" = field(repr=False)
    capabilities: FrozenSet[Capability] = frozenset()

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def require(self, capability: Capability) -> None:
        if capability not in self.capabilities:
            raise CapabilityMismatch(self.provider_id, capability)


__all__ = ["Capability", "ProviderHandle"]
