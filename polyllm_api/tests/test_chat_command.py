from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase

from polyllm.core.registry import ProviderRegistry
from polyllm.tests.utils import StubProvider
from polyllm.types.messages import Role


class ChatCommandTest(SimpleTestCase):
    def setUp(self):
        self.registry = ProviderRegistry()
        patcher = mock.patch(
            "polyllm_api.management.commands.chat.get_provider_registry", return_value=self.registry
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_one_shot_prompt(self):
        stub = StubProvider("stub", outputs=["Paris"])
        self.registry.register("stub", stub)
        out = StringIO()

        call_command("chat", "stub:m1", prompt="Capital of France?", system="Be terse.", stdout=out)

        self.assertIn("Paris", out.getvalue())
        request = stub.requests[0]
        self.assertEqual(request.model, "m1")
        self.assertEqual([m.role for m in request.messages], [Role.SYSTEM, Role.USER])

    def test_interactive_keeps_history(self):
        stub = StubProvider("stub", outputs=["one", "two"])
        self.registry.register("stub", stub)
        out = StringIO()

        call_command("chat", "stub:m", stdin=StringIO("hello\n\nagain\nexit\nignored\n"), stdout=out)

        self.assertEqual(stub.call_count, 2)
        second = stub.requests[1]
        self.assertEqual([m.text for m in second.messages], ["hello", "one", "again"])
        self.assertIn("two", out.getvalue())

    def test_interactive_error_continues(self):
        stub = StubProvider("stub", outputs=[RuntimeError("flaky"), "recovered"])
        self.registry.register("stub", stub)
        out, err = StringIO(), StringIO()

        call_command("chat", "stub:m", stdin=StringIO("first\nsecond\n"), stdout=out, stderr=err)

        self.assertIn("ProviderCallFailed", err.getvalue())
        self.assertIn("recovered", out.getvalue())
        # The failed turn is dropped from the history.
        self.assertEqual([m.text for m in stub.requests[1].messages], ["second"])

    def test_unknown_provider(self):
        with self.assertRaises(CommandError):
            call_command("chat", "ghost:m", prompt="hi")

    def test_invalid_selection(self):
        with self.assertRaises(CommandError):
            call_command("chat", "no-colon", prompt="hi")

    def test_one_shot_provider_error(self):
        self.registry.register("stub", StubProvider("stub", outputs=[RuntimeError("down")]))
        with self.assertRaises(CommandError):
            call_command("chat", "stub:m", prompt="hi", stdout=StringIO())
