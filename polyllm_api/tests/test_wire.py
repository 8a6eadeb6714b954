import base64

from django.test import SimpleTestCase
from pydantic import ValidationError

from polyllm.core.selection import Selection
from polyllm.types.messages import ImageContent, ImageMime, ImageUrlContent, Role, ToolCall
from polyllm.types.responses import ChatResponse
from polyllm_api.wire import (
    ChatCompletionPayload,
    EvaluationPayload,
    KeywordScorerSpec,
    SchemaScorerSpec,
    WireMessage,
    WireResponseFormat,
    completion_body,
    response_schema,
    to_chat_messages,
    to_chat_request,
)


class ToChatMessagesTests(SimpleTestCase):
    def test_string_content(self):
        messages = to_chat_messages([WireMessage(role="system", content="Be brief"), WireMessage(role="user", content="Hi")])
        self.assertEqual([m.role for m in messages], [Role.SYSTEM, Role.USER])
        self.assertEqual(messages[1].text, "Hi")

    def test_content_parts_split_in_order(self):
        encoded = base64.b64encode(b"png-bytes").decode("ascii")
        message = WireMessage(
            role="user",
            content=[
                {"type": "text", "text": "Compare"},
                {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{encoded}"}},
                {"type": "image_url", "image_url": {"url": "https://example.com/b.jpg"}},
            ],
        )
        out = to_chat_messages([message])
        self.assertEqual(len(out), 3)
        self.assertEqual(out[0].text, "Compare")
        self.assertIsInstance(out[1].content, ImageContent)
        self.assertEqual(out[1].content.data, b"png-bytes")
        self.assertEqual(out[1].content.mime, ImageMime.PNG)
        self.assertIsInstance(out[2].content, ImageUrlContent)

    def test_unsupported_image_mime_rejected(self):
        message = WireMessage(role="user", content=[{"type": "image_url", "image_url": {"url": "data:image/tiff;base64,AAAA"}}])
        with self.assertRaises(ValueError):
            to_chat_messages([message])

    def test_unknown_part_type_rejected(self):
        with self.assertRaises(ValueError):
            to_chat_messages([WireMessage(role="user", content=[{"type": "audio"}])])

    def test_assistant_tool_calls_and_tool_result(self):
        messages = to_chat_messages(
            [
                WireMessage(
                    role="assistant",
                    content=None,
                    tool_calls=[{"id": "c1", "function": {"name": "add", "arguments": '{"a": 1}'}}],
                ),
                WireMessage(role="tool", content="2", tool_call_id="c1"),
            ]
        )
        self.assertEqual(messages[0].tool_calls, (ToolCall(id="c1", name="add", arguments={"a": 1}),))
        self.assertEqual(messages[1].tool_call_id, "c1")


class PayloadTests(SimpleTestCase):
    def test_empty_messages_rejected(self):
        with self.assertRaises(ValidationError):
            ChatCompletionPayload(model="openai:gpt-4o", messages=[])

    def test_step_model_must_be_selection(self):
        with self.assertRaises(ValidationError):
            ChatCompletionPayload(messages=[{"role": "user", "content": "x"}], steps=[{"model": "gpt-4o", "template": "x"}])

    def test_evaluation_models_validated(self):
        with self.assertRaises(ValidationError):
            EvaluationPayload(models=["openai:gpt-4o", "bad"], messages=[{"role": "user", "content": "x"}])

    def test_scorer_specs_typed(self):
        payload = EvaluationPayload(
            models=["p:a"],
            messages=[{"role": "user", "content": "x"}],
            scorers=["non_empty", {"keywords": ["a"]}, {"json_schema": {"type": "object"}}],
        )
        self.assertEqual(payload.scorers[0], "non_empty")
        self.assertIsInstance(payload.scorers[1], KeywordScorerSpec)
        self.assertIsInstance(payload.scorers[2], SchemaScorerSpec)
        for bad in ({"keywords": 5}, {"keywords": []}, {"unknown": 1}):
            with self.assertRaises(ValidationError):
                EvaluationPayload(models=["p:a"], messages=[{"role": "user", "content": "x"}], scorers=[bad])

    def test_validation_budget_unset_by_default(self):
        payload = ChatCompletionPayload(model="p:a", messages=[{"role": "user", "content": "x"}], validation={})
        self.assertIsNone(payload.validation.max_retries)

    def test_to_chat_request(self):
        payload = ChatCompletionPayload(
            model="openai:gpt-4o",
            messages=[{"role": "user", "content": "x"}],
            max_tokens=10,
            tools=[{"type": "function", "function": {"name": "lookup", "description": "Find"}}],
            response_format={"type": "json_object"},
        )
        request = to_chat_request(payload, Selection("openai", "gpt-4o"))
        self.assertEqual(request.model, "gpt-4o")
        self.assertEqual(request.max_tokens, 10)
        self.assertEqual(request.tools[0].name, "lookup")
        self.assertEqual(request.response_schema.json_schema, {"type": "object"})


class ResponseFormatTests(SimpleTestCase):
    def test_text_means_no_schema(self):
        self.assertIsNone(response_schema(WireResponseFormat(type="text")))
        self.assertIsNone(response_schema(None))

    def test_json_schema_carried_over(self):
        fmt = WireResponseFormat.model_validate(
            {"type": "json_schema", "json_schema": {"name": "Student", "schema": {"type": "object"}, "strict": True}}
        )
        schema = response_schema(fmt)
        self.assertEqual(schema.name, "Student")
        self.assertTrue(schema.strict)
        self.assertEqual(schema.json_schema, {"type": "object"})


class CompletionBodyTests(SimpleTestCase):
    def test_tool_call_finish_reason(self):
        response = ChatResponse(
            text=None,
            tool_calls=[ToolCall(id="c1", name="add", arguments={"a": 1})],
            reasoning="adding",
            model="gpt-4o-2024",
        )
        body = completion_body(response, Selection("openai", "gpt-4o"))
        choice = body["choices"][0]
        self.assertEqual(body["model"], "openai:gpt-4o-2024")
        self.assertEqual(choice["finish_reason"], "tool_calls")
        self.assertEqual(choice["message"]["tool_calls"][0]["function"]["arguments"], '{"a": 1}')
        self.assertEqual(choice["message"]["reasoning_content"], "adding")
        self.assertTrue(body["id"].startswith("chatcmpl-"))
