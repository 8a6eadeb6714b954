"""
Parallel evaluator: fan one request out to several providers, score every
response and pick a winner.

Each provider call runs on its own worker thread; the calls share no
mutable state. Results are keyed by provider handle, never by arrival order,
so the outcome is deterministic for deterministic providers.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from polyllm.core import dispatch
from polyllm.core.registry import ProviderRef, ProviderRegistry, get_provider_registry
from polyllm.service.errors import AllProvidersFailed, Cancelled, ScoringFailed
from polyllm.service.policies import get_max_parallel_calls
from polyllm.types.capabilities import ProviderHandle
from polyllm.types.requests import ChatRequest
from polyllm.types.responses import ChatResponse

from .cancellation import CancellationToken

logger = logging.getLogger(__name__)

Scorer = Callable[[ChatResponse], float]
Combiner = Callable[[Sequence[float]], float]

_POLL_INTERVAL = 0.05


@dataclass(frozen=True)
class ScoredResponse:
    response: ChatResponse
    score: float
    scores: Tuple[float, ...] = ()  # one per scorer, in scorer order


@dataclass
class EvaluationResult:
    providers: Tuple[ProviderHandle, ...]
    scores: Dict[ProviderHandle, ScoredResponse]
    errors: Dict[ProviderHandle, BaseException]
    winner: ProviderHandle

    @property
    def winning_response(self) -> ChatResponse:
        return self.scores[self.winner].response

    @property
    def winning_score(self) -> float:
        return self.scores[self.winner].score

    def ranking(self) -> List[Tuple[ProviderHandle, ScoredResponse]]:
        """Successful providers, best first; ties keep input order."""
        scored = [(h, self.scores[h]) for h in self.providers if h in self.scores]
        return sorted(scored, key=lambda item: -item[1].score)


def _dedupe(handles: Iterable[ProviderHandle]) -> Tuple[ProviderHandle, ...]:
    seen: List[ProviderHandle] = []
    for handle in handles:
        if all(handle is not h for h in seen):
            seen.append(handle)
    return tuple(seen)


def _score(response: ChatResponse, scorers: Sequence[Scorer], combiner: Combiner) -> ScoredResponse:
    values = tuple(float(scorer(response)) for scorer in scorers)
    return ScoredResponse(response=response, score=float(combiner(values)), scores=values)


def select_winner(
    providers: Sequence[ProviderHandle], scores: Dict[ProviderHandle, ScoredResponse]
) -> Optional[ProviderHandle]:
    """Strictly highest score wins; the first listed provider wins a tie."""
    winner: Optional[ProviderHandle] = None
    best = 0.0
    for handle in providers:
        scored = scores.get(handle)
        if scored is None:
            continue
        if winner is None or scored.score > best:
            winner, best = handle, scored.score
    return winner


@dataclass
class ParallelEvaluator:
    """Concurrent multi-provider evaluation against an injected registry."""

    registry: Optional[ProviderRegistry] = None
    max_workers: Optional[int] = None
    _poll_interval: float = field(default=_POLL_INTERVAL, repr=False)

    def _get_registry(self) -> ProviderRegistry:
        return self.registry or get_provider_registry()

    @staticmethod
    def _call(handle: ProviderHandle, request: ChatRequest, token: CancellationToken) -> ChatResponse:
        token.raise_if_cancelled()
        return dispatch.send(handle, request)

    def _collect(
        self,
        handles: Tuple[ProviderHandle, ...],
        request: ChatRequest,
        models: Dict[str, str],
        token: CancellationToken,
    ) -> Dict[ProviderHandle, Future]:
        workers = min(len(handles), self.max_workers or get_max_parallel_calls())
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="polyllm-eval")
        futures: Dict[ProviderHandle, Future] = {}
        try:
            for handle in handles:
                model = models.get(handle.provider_id)
                per_provider = request.with_model(model) if model else request
                futures[handle] = pool.submit(self._call, handle, per_provider, token)
            pending = set(futures.values())
            while pending:
                if token.cancelled:
                    raise Cancelled("Evaluation cancelled by caller")
                _, pending = wait(pending, timeout=self._poll_interval, return_when=FIRST_COMPLETED)
            if token.cancelled:
                raise Cancelled("Evaluation cancelled by caller")
        except Cancelled:
            logger.info("Evaluation cancelled; abandoning %d outstanding call(s)",
                        sum(1 for f in futures.values() if not f.done()))
            pool.shutdown(wait=False, cancel_futures=True)
            raise
        pool.shutdown(wait=True)
        return futures

    def evaluate(
        self,
        request: ChatRequest,
        providers: Iterable[ProviderRef],
        scorers: Sequence[Scorer],
        combiner: Combiner = sum,
        cancel_token: CancellationToken | None = None,
        models: Mapping[str, str] | None = None,
    ) -> EvaluationResult:
        """
        Issue ``request`` to every provider concurrently and score the responses.

        ``models`` optionally overrides ``request.model`` per provider id.
        Raises UnknownProvider before any call if a provider is not registered,
        AllProvidersFailed when no provider produced a score, and Cancelled if
        ``cancel_token`` fires before all calls finished.
        """
        registry = self._get_registry()
        handles = _dedupe(registry.resolve(p) for p in providers)
        if not handles:
            raise ValueError("At least one provider is required")
        token = cancel_token or CancellationToken()

        futures = self._collect(handles, request, dict(models or {}), token)

        scores: Dict[ProviderHandle, ScoredResponse] = {}
        errors: Dict[ProviderHandle, BaseException] = {}
        for handle in handles:
            exc = futures[handle].exception()
            if exc is not None:
                errors[handle] = exc
                continue
            response = futures[handle].result()
            try:
                scores[handle] = _score(response, scorers, combiner)
            except Exception as score_exc:
                logger.warning("Scoring failed for provider=%s: %s", handle.provider_id, score_exc)
                failure = ScoringFailed(f"Scoring failed for provider '{handle.provider_id}': {score_exc}")
                failure.__cause__ = score_exc
                errors[handle] = failure

        winner = select_winner(handles, scores)
        if winner is None:
            raise AllProvidersFailed(errors)
        logger.info(
            "Evaluation winner=%s score=%s failed=%s",
            winner.provider_id,
            scores[winner].score,
            [h.provider_id for h in errors],
        )
        return EvaluationResult(providers=handles, scores=scores, errors=errors, winner=winner)

    async def aevaluate(
        self,
        request: ChatRequest,
        providers: Iterable[ProviderRef],
        scorers: Sequence[Scorer],
        combiner: Combiner = sum,
        cancel_token: CancellationToken | None = None,
        models: Mapping[str, str] | None = None,
    ) -> EvaluationResult:
        """Async wrapper around ``evaluate()``. Cancelling the awaiting task abandons the calls."""
        token = cancel_token or CancellationToken()
        providers = list(providers)
        try:
            return await asyncio.to_thread(
                self.evaluate, request, providers, scorers, combiner, token, models
            )
        except asyncio.CancelledError:
            token.cancel()
            raise


__all__ = [
    "Scorer",
    "Combiner",
    "ScoredResponse",
    "EvaluationResult",
    "select_winner",
    "ParallelEvaluator",
]
