from .cancellation import CancellationToken
from .chain import Chain, ChainContext, ChainExecutor, ChainResult, ChainState, ChainStep, prompt_step
from .evaluator import EvaluationResult, ParallelEvaluator, ScoredResponse
from .scoring import (
    json_schema_predicate,
    json_valid,
    keyword_scorer,
    non_empty,
    schema_scorer,
    text_length,
)
from .validator import ValidatedProvider, Validator, feedback_hook

__all__ = [
    "CancellationToken",
    "Chain",
    "ChainContext",
    "ChainExecutor",
    "ChainResult",
    "ChainState",
    "ChainStep",
    "prompt_step",
    "EvaluationResult",
    "ParallelEvaluator",
    "ScoredResponse",
    "json_schema_predicate",
    "json_valid",
    "keyword_scorer",
    "non_empty",
    "schema_scorer",
    "text_length",
    "ValidatedProvider",
    "Validator",
    "feedback_hook",
]
