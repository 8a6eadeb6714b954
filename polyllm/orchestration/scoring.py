"""
Built-in scoring functions and validation predicates.

Scorers are pure and tolerate missing fields: a response without text
scores 0 instead of raising.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, Iterable, Optional

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from jsonschema.exceptions import ValidationError as _SchemaValidationError

from polyllm.service.errors import ResponseRejected
from polyllm.types.responses import ChatResponse

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def parse_json(text: Optional[str]) -> Any:
    """Parse JSON from a model response, tolerating a surrounding markdown fence."""
    if not text:
        raise ValueError("empty response")
    stripped = text.strip()
    match = _FENCE.match(stripped)
    if match:
        stripped = match.group(1)
    return json.loads(stripped)


def _schema_validator(schema: Dict[str, Any]) -> Draft202012Validator:
    """Build a validator, rejecting a malformed schema up front with ValueError."""
    if not isinstance(schema, dict):
        raise ValueError(f"JSON schema must be an object, got {type(schema).__name__}")
    try:
        Draft202012Validator.check_schema(schema)
    except SchemaError as e:
        raise ValueError(f"Invalid JSON schema: {e.message}") from e
    return Draft202012Validator(schema)


def non_empty(response: ChatResponse) -> float:
    return 1.0 if (response.text or "").strip() else 0.0


def text_length(response: ChatResponse) -> float:
    return float(len(response.text or ""))


def keyword_scorer(keywords: Iterable[str], case_sensitive: bool = False) -> Callable[[ChatResponse], float]:
    """One point per keyword present in the response text."""
    words = list(keywords)
    if not all(isinstance(w, str) for w in words):
        raise ValueError("keywords must be strings")

    def _score(response: ChatResponse) -> float:
        text = response.text or ""
        if not case_sensitive:
            text = text.lower()
        return float(sum(1 for w in words if (w if case_sensitive else w.lower()) in text))

    return _score


def json_valid(response: ChatResponse) -> float:
    try:
        parse_json(response.text)
    except ValueError:
        return 0.0
    return 1.0


def schema_scorer(schema: Dict[str, Any]) -> Callable[[ChatResponse], float]:
    """1.0 when the response parses as JSON and matches ``schema``, else 0.0."""
    validator = _schema_validator(schema)

    def _score(response: ChatResponse) -> float:
        try:
            instance = parse_json(response.text)
        except ValueError:
            return 0.0
        return 1.0 if validator.is_valid(instance) else 0.0

    return _score


def json_schema_predicate(schema: Dict[str, Any]) -> Callable[[ChatResponse], bool]:
    """
    Validation predicate accepting responses that are JSON matching ``schema``.

    Rejections raise ResponseRejected with a reason that a retry-feedback
    hook can send back to the model.
    """
    validator = _schema_validator(schema)

    def _predicate(response: ChatResponse) -> bool:
        try:
            instance = parse_json(response.text)
        except ValueError as e:
            raise ResponseRejected(f"Failed to parse JSON: {e}") from e
        try:
            validator.validate(instance)
        except _SchemaValidationError as e:
            raise ResponseRejected(f"JSON schema validation failed: {e.message}") from e
        return True

    return _predicate


BUILTIN_SCORERS: Dict[str, Callable[[ChatResponse], float]] = {
    "non_empty": non_empty,
    "text_length": text_length,
    "json_valid": json_valid,
}


__all__ = [
    "parse_json",
    "non_empty",
    "text_length",
    "keyword_scorer",
    "json_valid",
    "schema_scorer",
    "json_schema_predicate",
    "BUILTIN_SCORERS",
]
