"""
Interactive chat with any registered provider.

Usage:
    python manage.py chat openai:gpt-4o-mini
    python manage.py chat anthropic:claude-3-5-haiku-latest --system "Be terse."
    python manage.py chat gemini:gemini-2.0-flash --prompt "One-shot question"

Without --prompt, turns are read from stdin until EOF or "exit"; the whole
conversation is sent on every turn.
"""
from __future__ import annotations

import sys

from django.core.management.base import BaseCommand, CommandError

from polyllm.core import dispatch
from polyllm.core.registry import get_provider_registry
from polyllm.core.selection import parse_selection
from polyllm.service.errors import PolyLLMError
from polyllm.types.messages import ChatMessage
from polyllm.types.requests import ChatRequest, RequestOptions

EXIT_WORDS = {"exit", "quit", ":q"}


class Command(BaseCommand):
    help = "Chat with an LLM provider selected as provider:model."
    stealth_options = ("stdin",)

    def add_arguments(self, parser):
        parser.add_argument("selection", help="Provider and model, e.g. openai:gpt-4o-mini.")
        parser.add_argument("--system", default=None, help="System prompt.")
        parser.add_argument("--temperature", type=float, default=None, help="Sampling temperature (0-2).")
        parser.add_argument("--max-tokens", type=int, default=None, help="Maximum tokens to generate.")
        parser.add_argument("--prompt", default=None, help="Send a single prompt and exit.")

    def handle(self, *args, **options):
        try:
            selection = parse_selection(options["selection"])
            handle = get_provider_registry().resolve(selection.provider_id)
            request_options = RequestOptions(
                model=selection.model,
                system=options["system"],
                temperature=options["temperature"],
                max_tokens=options["max_tokens"],
            )
        except (PolyLLMError, ValueError) as exc:
            raise CommandError(str(exc)) from exc

        history: list[ChatMessage] = []

        def _turn(text: str) -> str:
            history.append(ChatMessage.user(text))
            request = ChatRequest.from_options(history, request_options)
            try:
                response = dispatch.send(handle, request)
            except PolyLLMError as exc:
                history.pop()
                raise CommandError(f"{type(exc).__name__}: {exc}") from exc
            history.append(response.to_message())
            return response.text or ""

        if options["prompt"] is not None:
            self.stdout.write(_turn(options["prompt"]))
            return

        stdin = options.get("stdin") or sys.stdin
        self.stdout.write(self.style.SUCCESS(f"Chatting with {selection}. Type 'exit' to quit."))
        for line in stdin:
            text = line.strip()
            if not text:
                continue
            if text.lower() in EXIT_WORDS:
                break
            try:
                self.stdout.write(_turn(text))
            except CommandError as exc:
                self.stderr.write(str(exc))
