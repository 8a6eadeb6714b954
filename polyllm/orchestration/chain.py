"""
Chain executor: run an ordered sequence of provider calls, threading each
step's output into the next step's request.

    chain = Chain.of(
        prompt_step("openai", "Summarize: {input}", name="summary", model="gpt-4o-mini"),
        prompt_step("anthropic", "Translate to French: {summary}"),
    )
    result = ChainExecutor(registry).run(chain, {"input": text})
    result.raise_for_error()
    print(result.texts)

Steps are never retried here; wrap the step's provider in a ValidatedProvider
for that.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from polyllm.core import dispatch
from polyllm.core.registry import ProviderRef, ProviderRegistry, get_provider_registry
from polyllm.service.errors import Cancelled, ChainStepFailed, PolyLLMError
from polyllm.types.requests import ChatRequest
from polyllm.types.responses import ChatResponse

from .cancellation import CancellationToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainContext:
    """What a step's transform may read: the initial context plus all earlier responses."""

    initial: Mapping[str, Any]
    responses: Tuple[ChatResponse, ...] = ()
    step_names: Tuple[Optional[str], ...] = ()

    @property
    def last(self) -> Optional[ChatResponse]:
        return self.responses[-1] if self.responses else None

    def output(self, index: int) -> str:
        return self.responses[index].text or ""

    def variables(self) -> Dict[str, Any]:
        """Template variables: initial keys, named step outputs and ``previous``."""
        values: Dict[str, Any] = dict(self.initial)
        for name, response in zip(self.step_names, self.responses):
            if name:
                values[name] = response.text or ""
        last = self.last
        values["previous"] = (last.text or "") if last is not None else ""
        return values


Transform = Callable[[ChainContext], ChatRequest]


@dataclass(frozen=True)
class ChainStep:
    provider: ProviderRef
    transform: Transform
    name: Optional[str] = None


@dataclass(frozen=True)
class Chain:
    steps: Tuple[ChainStep, ...]

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError("A chain needs at least one step")

    @classmethod
    def of(cls, *steps: ChainStep) -> "Chain":
        return cls(tuple(steps))

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[ChainStep]:
        return iter(self.steps)


class ChainState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ChainResult:
    """Responses of the completed steps, in step order, plus the failure if any."""

    responses: List[ChatResponse] = field(default_factory=list)
    state: ChainState = ChainState.PENDING
    failed_step: Optional[int] = None
    error: Optional[PolyLLMError] = None

    @property
    def ok(self) -> bool:
        return self.state == ChainState.COMPLETED

    @property
    def texts(self) -> List[str]:
        return [r.text or "" for r in self.responses]

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


def prompt_step(provider: ProviderRef, template: str, name: str | None = None, **options: Any) -> ChainStep:
    """
    Step whose request is a single user turn rendered from ``template``.

    Placeholders use ``str.format`` syntax and see the initial context, the
    outputs of earlier named steps and ``{previous}``.
    """

    def _transform(context: ChainContext) -> ChatRequest:
        return ChatRequest.prompt(template.format_map(context.variables()), **options)

    return ChainStep(provider=provider, transform=_transform, name=name)


class ChainExecutor:
    """Runs chains strictly sequentially against an injected registry."""

    def __init__(self, registry: ProviderRegistry | None = None) -> None:
        self._registry = registry

    def _get_registry(self) -> ProviderRegistry:
        return self._registry or get_provider_registry()

    def run(
        self,
        chain: Chain,
        initial_context: Mapping[str, Any] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ChainResult:
        """
        Execute ``chain``. Every provider is resolved before the first call, so
        an unregistered provider raises UnknownProvider without any call issued.
        Step failures and cancellation are reported on the returned result.
        """
        registry = self._get_registry()
        handles = [registry.resolve(step.provider) for step in chain.steps]
        result = ChainResult()
        context = ChainContext(initial=dict(initial_context or {}))

        for index, (step, handle) in enumerate(zip(chain.steps, handles)):
            if cancel_token is not None and cancel_token.cancelled:
                logger.info("Chain cancelled before step %d/%d", index, len(chain))
                result.state = ChainState.FAILED
                result.failed_step = index
                result.error = Cancelled(f"Chain cancelled before step {index}")
                return result

            result.state = ChainState.RUNNING
            logger.debug("Chain step %d/%d on provider=%s", index, len(chain), handle.provider_id)
            try:
                request = step.transform(context)
                response = dispatch.send(handle, request)
            except Exception as exc:
                logger.warning("Chain step %d failed on provider=%s: %s", index, handle.provider_id, exc)
                result.state = ChainState.FAILED
                result.failed_step = index
                result.error = ChainStepFailed(index, exc)
                return result

            result.responses.append(response)
            context = ChainContext(
                initial=context.initial,
                responses=context.responses + (response,),
                step_names=context.step_names + (step.name,),
            )

        result.state = ChainState.COMPLETED
        return result

    async def arun(
        self,
        chain: Chain,
        initial_context: Mapping[str, Any] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ChainResult:
        """
        Async wrapper around ``run()``.

        Cancelling the awaiting task stops further steps but raises
        ``asyncio.CancelledError``, so the completed steps are lost. Callers
        that need the partial result pass their own ``cancel_token``, cancel
        it, and await the task: it then returns a FAILED ``ChainResult``.
        """
        token = cancel_token or CancellationToken()
        try:
            return await asyncio.to_thread(self.run, chain, initial_context, token)
        except asyncio.CancelledError:
            token.cancel()
            raise


__all__ = [
    "ChainContext",
    "Transform",
    "ChainStep",
    "Chain",
    "ChainState",
    "ChainResult",
    "prompt_step",
    "ChainExecutor",
]
