"""
Live API integration tests: call each provider through the orchestration layer.

Run only when TEST_APIS=True in the environment and the corresponding API key is set.
"""

from django.test import SimpleTestCase

from polyllm.core import dispatch
from polyllm.core.providers import register_default_providers
from polyllm.core.registry import ProviderRegistry
from polyllm.orchestration.chain import Chain, ChainExecutor, prompt_step
from polyllm.orchestration.evaluator import ParallelEvaluator
from polyllm.orchestration.scoring import json_schema_predicate, non_empty
from polyllm.orchestration.validator import Validator, feedback_hook
from polyllm.tests.utils import require_test_apis
from polyllm.types.requests import ChatRequest

MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-latest",
    "gemini": "gemini-2.0-flash",
}

OK_PROMPT = "Reply with exactly the word OK and nothing else."


@require_test_apis()
class ProviderLiveAPITests(SimpleTestCase):
    """Send one message per configured provider and assert a valid response. Requires TEST_APIS=True."""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        cls.registry = ProviderRegistry()
        cls.available = register_default_providers(cls.registry, list(MODELS))

    def _providers(self):
        if not self.available:
            self.skipTest("No provider API keys configured")
        return self.available

    def test_each_provider_returns_ok(self):
        for provider_id in self._providers():
            with self.subTest(provider=provider_id):
                handle = self.registry.resolve(provider_id)
                response = dispatch.send(handle, ChatRequest.prompt(OK_PROMPT, model=MODELS[provider_id]))
                self.assertIn("OK", (response.text or "").upper())

    def test_validated_json_output(self):
        provider_id = self._providers()[0]
        schema = {"type": "object", "properties": {"answer": {"type": "integer"}}, "required": ["answer"]}
        request = ChatRequest.prompt(
            'What is 6 * 7? Respond only with JSON like {"answer": <number>}.', model=MODELS[provider_id]
        )
        response = Validator(self.registry).validate(
            request, provider_id, json_schema_predicate(schema), max_retries=2, on_retry=feedback_hook()
        )
        self.assertIn("42", response.text)

    def test_two_step_chain(self):
        provider_id = self._providers()[0]
        model = MODELS[provider_id]
        chain = Chain.of(
            prompt_step(provider_id, "Name one primary color. Reply with the word only.", model=model),
            prompt_step(provider_id, "Repeat this word in uppercase only: {previous}", model=model),
        )
        result = ChainExecutor(self.registry).run(chain)
        result.raise_for_error()
        self.assertEqual(len(result.responses), 2)

    def test_parallel_evaluation(self):
        providers = self._providers()
        result = ParallelEvaluator(self.registry).evaluate(
            ChatRequest.prompt(OK_PROMPT), providers, [non_empty], models=MODELS
        )
        self.assertIn(result.winner.provider_id, providers)
