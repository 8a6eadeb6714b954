"""Tests for the chain executor."""

import asyncio
import threading

from django.test import SimpleTestCase

from polyllm.core.registry import ProviderRegistry
from polyllm.orchestration.cancellation import CancellationToken
from polyllm.orchestration.chain import (
    Chain,
    ChainContext,
    ChainExecutor,
    ChainState,
    ChainStep,
    prompt_step,
)
from polyllm.service.errors import (
    Cancelled,
    CapabilityMismatch,
    ChainStepFailed,
    ProviderCallFailed,
    UnknownProvider,
)
from polyllm.tests.utils import StubProvider
from polyllm.types.capabilities import Capability
from polyllm.types.messages import ChatMessage
from polyllm.types.requests import ChatRequest


def _echo_suffix(suffix):
    """Provider output: the last user turn with ``suffix`` appended."""
    return lambda request: request.messages[-1].text + suffix


class ChainTests(SimpleTestCase):
    def setUp(self):
        self.registry = ProviderRegistry()
        self.executor = ChainExecutor(self.registry)

    def test_empty_chain_rejected(self):
        with self.assertRaises(ValueError):
            Chain(())

    def test_two_step_chain_threads_output_forward(self):
        self.registry.register("p", StubProvider("p", outputs=["A"]))
        self.registry.register("q", StubProvider("q", outputs=[_echo_suffix("-B")]))
        chain = Chain.of(
            prompt_step("p", "start"),
            prompt_step("q", "{previous}"),
        )
        result = self.executor.run(chain)

        self.assertTrue(result.ok)
        self.assertEqual(result.state, ChainState.COMPLETED)
        self.assertEqual(result.texts, ["A", "A-B"])
        self.assertIsNone(result.error)

    def test_responses_match_chain_length_and_order(self):
        stubs = [StubProvider(f"p{i}", outputs=[f"out{i}"]) for i in range(4)]
        for stub in stubs:
            self.registry.register(stub.provider_id, stub)
        chain = Chain.of(*(prompt_step(s.provider_id, "go") for s in stubs))

        result = self.executor.run(chain)

        self.assertEqual(len(result.responses), len(chain))
        self.assertEqual(result.texts, ["out0", "out1", "out2", "out3"])
        self.assertEqual([r.provider_id for r in result.responses], ["p0", "p1", "p2", "p3"])
        self.assertTrue(all(s.call_count == 1 for s in stubs))

    def test_failure_at_step_stops_later_steps(self):
        first = StubProvider("first", outputs=["one"])
        broken = StubProvider("broken", outputs=[RuntimeError("boom")])
        never = StubProvider("never", outputs=["three"])
        for stub in (first, broken, never):
            self.registry.register(stub.provider_id, stub)
        chain = Chain.of(
            prompt_step("first", "a"),
            prompt_step("broken", "{previous}"),
            prompt_step("never", "{previous}"),
        )

        result = self.executor.run(chain)

        self.assertFalse(result.ok)
        self.assertEqual(result.state, ChainState.FAILED)
        self.assertEqual(result.failed_step, 1)
        self.assertEqual(result.texts, ["one"])
        self.assertIsInstance(result.error, ChainStepFailed)
        self.assertEqual(result.error.step_index, 1)
        self.assertIsInstance(result.error.cause, ProviderCallFailed)
        self.assertEqual(first.call_count, 1)
        self.assertEqual(broken.call_count, 1)
        self.assertEqual(never.call_count, 0)
        with self.assertRaises(ChainStepFailed):
            result.raise_for_error()

    def test_transform_exception_is_step_failure(self):
        stub = StubProvider("p")
        self.registry.register("p", stub)

        def _bad(context):
            raise KeyError("missing")

        result = self.executor.run(Chain.of(ChainStep("p", _bad)))

        self.assertEqual(result.failed_step, 0)
        self.assertIsInstance(result.error.cause, KeyError)
        self.assertEqual(stub.call_count, 0)

    def test_missing_template_variable_fails_step(self):
        self.registry.register("p", StubProvider("p"))
        result = self.executor.run(Chain.of(prompt_step("p", "{nope}")))
        self.assertIsInstance(result.error, ChainStepFailed)
        self.assertIsInstance(result.error.cause, KeyError)

    def test_unknown_provider_raised_before_any_call(self):
        stub = StubProvider("p")
        self.registry.register("p", stub)
        chain = Chain.of(prompt_step("p", "a"), prompt_step("ghost", "b"))

        with self.assertRaises(UnknownProvider):
            self.executor.run(chain)
        self.assertEqual(stub.call_count, 0)

    def test_capability_mismatch_is_step_failure(self):
        self.registry.register("embed-only", StubProvider("embed-only", capabilities={Capability.EMBEDDING}))
        result = self.executor.run(Chain.of(prompt_step("embed-only", "a")))
        self.assertIsInstance(result.error.cause, CapabilityMismatch)

    def test_named_steps_and_initial_context_available_to_templates(self):
        self.registry.register("p", StubProvider("p", outputs=["SUMMARY"]))
        self.registry.register("q", StubProvider("q", outputs=[lambda r: r.messages[-1].text]))
        chain = Chain.of(
            prompt_step("p", "Summarize {input}", name="summary"),
            prompt_step("q", "{summary} for {audience}"),
        )

        result = self.executor.run(chain, {"input": "doc", "audience": "kids"})

        self.assertEqual(result.texts[1], "SUMMARY for kids")

    def test_prompt_step_options_reach_request(self):
        stub = StubProvider("p")
        self.registry.register("p", stub)
        self.executor.run(Chain.of(prompt_step("p", "hi", model="m1", temperature=0.2)))
        request = stub.requests[0]
        self.assertEqual(request.model, "m1")
        self.assertEqual(request.temperature, 0.2)

    def test_transform_sees_all_previous_responses(self):
        seen = []
        self.registry.register("p", StubProvider("p", outputs=["x", "y", "z"]))

        def _record(context):
            seen.append([r.text for r in context.responses])
            return ChatRequest(messages=[ChatMessage.user("go")])

        chain = Chain.of(*(ChainStep("p", _record) for _ in range(3)))
        self.executor.run(chain)
        self.assertEqual(seen, [[], ["x"], ["x", "y"]])

    def test_cancelled_token_stops_before_next_step(self):
        token = CancellationToken()
        second = StubProvider("second")

        def _cancel_after(request):
            token.cancel()
            return "done"

        self.registry.register("first", StubProvider("first", outputs=[_cancel_after]))
        self.registry.register("second", second)
        chain = Chain.of(prompt_step("first", "a"), prompt_step("second", "b"))

        result = self.executor.run(chain, cancel_token=token)

        self.assertEqual(result.state, ChainState.FAILED)
        self.assertEqual(result.failed_step, 1)
        self.assertIsInstance(result.error, Cancelled)
        self.assertEqual(result.texts, ["done"])
        self.assertEqual(second.call_count, 0)

    def test_arun_returns_same_result(self):
        self.registry.register("p", StubProvider("p", outputs=["A"]))
        self.registry.register("q", StubProvider("q", outputs=[_echo_suffix("-B")]))
        chain = Chain.of(prompt_step("p", "start"), prompt_step("q", "{previous}"))

        result = asyncio.run(self.executor.arun(chain))

        self.assertEqual(result.texts, ["A", "A-B"])

    def test_arun_with_caller_token_keeps_completed_steps(self):
        token = CancellationToken()
        started, release = threading.Event(), threading.Event()
        second = StubProvider("second")

        def _block(request):
            started.set()
            release.wait(5)
            return "first"

        self.registry.register("first", StubProvider("first", outputs=[_block]))
        self.registry.register("second", second)
        chain = Chain.of(prompt_step("first", "a"), prompt_step("second", "b"))

        async def _drive():
            task = asyncio.ensure_future(self.executor.arun(chain, cancel_token=token))
            await asyncio.to_thread(started.wait, 5)
            token.cancel()
            release.set()
            return await task

        result = asyncio.run(_drive())

        self.assertEqual(result.state, ChainState.FAILED)
        self.assertIsInstance(result.error, Cancelled)
        self.assertEqual(result.texts, ["first"])
        self.assertEqual(second.call_count, 0)


class ChainContextTests(SimpleTestCase):
    def test_previous_is_empty_before_first_response(self):
        self.assertEqual(ChainContext(initial={"input": "x"}).variables(), {"input": "x", "previous": ""})
