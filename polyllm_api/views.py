"""
REST façade over the orchestration engine.

    POST /v1/chat/completions   single call, validated call or chain (``steps``)
    POST /v1/evaluations        parallel evaluation across several models
    GET  /v1/providers          registered providers and their capabilities
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Type, TypeVar

from django.conf import settings
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST
from pydantic import BaseModel, ValidationError

from polyllm.core import dispatch
from polyllm.core.registry import ProviderRegistry, get_provider_registry
from polyllm.core.selection import Selection, parse_selection
from polyllm.orchestration.chain import Chain, ChainExecutor, prompt_step
from polyllm.orchestration.evaluator import ParallelEvaluator
from polyllm.orchestration.scoring import (
    BUILTIN_SCORERS,
    json_schema_predicate,
    keyword_scorer,
    non_empty,
    schema_scorer,
)
from polyllm.orchestration.validator import Validator, feedback_hook
from polyllm.service.errors import (
    AllProvidersFailed,
    CapabilityMismatch,
    Cancelled,
    ChainStepFailed,
    InvalidSelection,
    PolyLLMError,
    ProviderCallFailed,
    ProviderTimeout,
    UnknownProvider,
    ValidationExhausted,
)
from polyllm.service.policies import get_default_selection
from polyllm.types.capabilities import ProviderHandle
from polyllm.types.requests import ChatRequest
from polyllm.types.responses import ChatResponse

from .wire import (
    ChatCompletionPayload,
    EvaluationPayload,
    KeywordScorerSpec,
    SchemaScorerSpec,
    ScorerSpec,
    completion_body,
    evaluation_body,
    step_body,
    to_chat_messages,
    to_chat_request,
)

logger = logging.getLogger(__name__)

TPayload = TypeVar("TPayload", bound=BaseModel)

# Most specific first.
_STATUS_BY_ERROR = (
    (InvalidSelection, 400),
    (UnknownProvider, 404),
    (CapabilityMismatch, 422),
    (ProviderTimeout, 504),
    (ProviderCallFailed, 502),
    (ValidationExhausted, 502),
    (AllProvidersFailed, 502),
    (Cancelled, 503),
)


def status_for(exc: BaseException) -> int:
    if isinstance(exc, ChainStepFailed):
        # A step that could not even build its request is a client error.
        return status_for(exc.cause) if isinstance(exc.cause, PolyLLMError) else 400
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


def error_response(exc: BaseException, status: int | None = None, **extra: Any) -> JsonResponse:
    body: Dict[str, Any] = {"error": {"type": type(exc).__name__, "message": str(exc)}}
    body.update(extra)
    return JsonResponse(body, status=status or status_for(exc))


def _bad_request(message: str) -> JsonResponse:
    return JsonResponse({"error": {"type": "invalid_request", "message": message}}, status=400)


def _check_api_key(request: HttpRequest) -> JsonResponse | None:
    expected = getattr(settings, "POLYLLM_API_KEY", "")
    if not expected:
        return None
    header = request.headers.get("Authorization", "")
    if header != f"Bearer {expected}":
        return JsonResponse({"error": {"type": "unauthorized", "message": "Invalid API key"}}, status=401)
    return None


def _parse(request: HttpRequest, model: Type[TPayload]) -> TPayload:
    data = json.loads(request.body or b"{}")
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return model.model_validate(data)


def _selection(model: str | None) -> Selection:
    value = model or get_default_selection()
    if not value:
        raise InvalidSelection("No model given and POLYLLM_DEFAULT_MODEL is not set")
    return parse_selection(value)


def _handle_errors(view: Callable[[HttpRequest], JsonResponse]) -> Callable[[HttpRequest], JsonResponse]:
    def _wrapped(request: HttpRequest) -> JsonResponse:
        denied = _check_api_key(request)
        if denied is not None:
            return denied
        try:
            return view(request)
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}" for err in exc.errors()
            )
            return _bad_request(details)
        except PolyLLMError as exc:
            logger.warning("Request failed: %s: %s", type(exc).__name__, exc)
            return error_response(exc)
        except ValueError as exc:
            return _bad_request(str(exc))

    _wrapped.__name__ = view.__name__
    _wrapped.__doc__ = view.__doc__
    return _wrapped


def _non_empty_predicate(response: ChatResponse) -> bool:
    return non_empty(response) > 0


def _run_chain(payload: ChatCompletionPayload) -> JsonResponse:
    messages = to_chat_messages(payload.messages)
    user_turns = [m.text for m in messages if m.role.value == "user" and m.text]
    initial = {"input": user_turns[-1] if user_turns else ""}

    selections: List[Selection] = []
    steps = []
    for wire_step in payload.steps or []:
        selection = parse_selection(wire_step.model)
        selections.append(selection)
        steps.append(
            prompt_step(
                selection.provider_id,
                wire_step.template,
                name=wire_step.name,
                model=selection.model,
                temperature=wire_step.temperature,
                max_tokens=wire_step.max_tokens,
            )
        )

    result = ChainExecutor(get_provider_registry()).run(Chain(tuple(steps)), initial)
    completed = [
        step_body(payload.steps[i].name, i, response) for i, response in enumerate(result.responses)
    ]
    if result.error is not None:
        return error_response(result.error, steps=completed, failed_step=result.failed_step)
    body = completion_body(result.responses[-1], selections[-1])
    body["steps"] = completed
    return JsonResponse(body)


@csrf_exempt
@require_POST
@_handle_errors
def chat_completions(request: HttpRequest) -> JsonResponse:
    """OpenAI-compatible chat completion; ``model`` is a ``provider:model`` selection."""
    payload = _parse(request, ChatCompletionPayload)
    if payload.steps:
        return _run_chain(payload)

    selection = _selection(payload.model)
    chat_request = to_chat_request(payload, selection)
    registry = get_provider_registry()

    if payload.validation is not None:
        schema = payload.validation.json_schema
        if schema is None and chat_request.response_schema is not None:
            schema = chat_request.response_schema.json_schema
        predicate = json_schema_predicate(schema) if schema else _non_empty_predicate
        response = Validator(registry).validate(
            chat_request,
            selection.provider_id,
            predicate,
            max_retries=payload.validation.max_retries,
            on_retry=feedback_hook(),
        )
    else:
        response = dispatch.send(registry.resolve(selection.provider_id), chat_request)
    return JsonResponse(completion_body(response, selection))


def _scorer(spec: ScorerSpec) -> Callable[[ChatResponse], float]:
    if isinstance(spec, KeywordScorerSpec):
        return keyword_scorer(spec.keywords, case_sensitive=spec.case_sensitive)
    if isinstance(spec, SchemaScorerSpec):
        return schema_scorer(spec.json_schema)
    scorer = BUILTIN_SCORERS.get(spec)
    if scorer is None:
        raise ValueError(f"Unknown scorer {spec!r}. Available: {sorted(BUILTIN_SCORERS)}")
    return scorer


class _PinnedModel:
    """Adapter that sends every request to one model of another adapter."""

    def __init__(self, handle: ProviderHandle, model: str) -> None:
        self.inner = handle.adapter
        self.model = model
        self.provider_id = handle.provider_id
        self.capabilities = handle.capabilities

    def send(self, request: ChatRequest) -> ChatResponse:
        return self.inner.send(request.with_model(self.model))


def _selection_registry(selections: List[Selection]) -> ProviderRegistry:
    """One entry per distinct ``provider:model``, so two models of one provider are both evaluated."""
    registry = get_provider_registry()
    local = ProviderRegistry()
    for selection in selections:
        label = str(selection)
        if label not in local:
            local.register(label, _PinnedModel(registry.resolve(selection.provider_id), selection.model))
    return local


@csrf_exempt
@require_POST
@_handle_errors
def evaluations(request: HttpRequest) -> JsonResponse:
    """Send one conversation to several models concurrently and rank the answers."""
    payload = _parse(request, EvaluationPayload)
    selections = [parse_selection(m) for m in payload.models]
    scorers = [_scorer(spec) for spec in payload.scorers]
    chat_request = ChatRequest(
        messages=to_chat_messages(payload.messages),
        temperature=payload.temperature,
        max_tokens=payload.max_tokens,
    )
    local = _selection_registry(selections)
    result = ParallelEvaluator(local).evaluate(chat_request, [str(s) for s in selections], scorers)
    return JsonResponse(evaluation_body(result, {str(s): s for s in selections}))


@require_GET
@_handle_errors
def providers(request: HttpRequest) -> JsonResponse:
    """List registered providers and the capabilities they advertise."""
    data = [
        {"id": handle.provider_id, "capabilities": sorted(c.value for c in handle.capabilities)}
        for handle in get_provider_registry().handles()
    ]
    return JsonResponse({"object": "list", "data": data})


__all__ = ["chat_completions", "evaluations", "providers", "status_for", "error_response"]
