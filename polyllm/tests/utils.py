"""Test utilities for polyllm."""

from __future__ import annotations

import os
import threading
import unittest
from typing import Any, Iterable

from polyllm.types.capabilities import Capability
from polyllm.types.requests import ChatRequest
from polyllm.types.responses import ChatResponse


def require_test_apis(reason: str = "Set TEST_APIS=True in the environment to run live API tests."):
    """
    Decorator to skip a test unless TEST_APIS is set to True (case-insensitive).

    Use for tests that call real provider APIs (OpenAI, Anthropic, Gemini).
    """
    test_apis = os.environ.get("TEST_APIS", "").strip().lower() == "true"
    return unittest.skipUnless(test_apis, reason)


class StubProvider:
    """
    Scripted provider adapter.

    Each call consumes the next scripted item; the last item repeats. Items may
    be a string (response text), a ChatResponse, an exception (raised), or a
    callable taking the request.
    """

    def __init__(
        self,
        provider_id: str = "stub",
        outputs: Iterable[Any] = ("ok",),
        capabilities: Iterable[Capability] | None = None,
    ) -> None:
        self.provider_id = provider_id
        self.capabilities = frozenset(capabilities or {Capability.CHAT, Capability.COMPLETION})
        self._outputs = list(outputs)
        self._lock = threading.Lock()
        self.requests: list[ChatRequest] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def send(self, request: ChatRequest) -> ChatResponse:
        with self._lock:
            self.requests.append(request)
            item = self._outputs.pop(0) if len(self._outputs) > 1 else self._outputs[0]
        if callable(item) and not isinstance(item, type):
            item = item(request)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, ChatResponse):
            return item
        return ChatResponse(text=item, model=request.model or "stub-model")
