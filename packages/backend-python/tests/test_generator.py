import unittest
from types import SimpleNamespace

import httpx
import openai

from quotecraft_backend.config import GenerationSettings
from quotecraft_backend.errors import GenerationError
from quotecraft_backend.generation import build_quote_prompt
from quotecraft_backend.generator import EMPTY_RESPONSE_MESSAGE, QuoteGenerator


class _FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class PromptTemplateTests(unittest.TestCase):
    def test_description_only(self):
        self.assertEqual(
            build_quote_prompt("a quote about perseverance"),
            'Generate a quote about: "a quote about perseverance".\n\nQuote:',
        )

    def test_tone_and_person_are_appended_in_order(self):
        prompt = build_quote_prompt("a witty remark about Mondays", "sarcastic", "Oscar Wilde")
        self.assertEqual(
            prompt,
            'Generate a quote about: "a witty remark about Mondays". The tone should be sarcastic.'
            " The quote should sound as if it were written or said by Oscar Wilde.\n\nQuote:",
        )


class QuoteGeneratorTests(unittest.TestCase):
    def make_generator(self, completions):
        return QuoteGenerator(
            model="test-model",
            generation=GenerationSettings(temperature=0.5, max_tokens=64),
            client=_client(completions),
        )

    def test_returns_trimmed_text(self):
        completions = _FakeCompletions(content="  Stars shine brightest in the darkest night.  \n")
        generator = self.make_generator(completions)

        quote = generator.generate("prompt")

        self.assertEqual(quote, "Stars shine brightest in the darkest night.")
        call = completions.calls[0]
        self.assertEqual(call["model"], "test-model")
        self.assertEqual(call["temperature"], 0.5)
        self.assertEqual(call["messages"][-1], {"role": "user", "content": "prompt"})

    def test_empty_response_raises(self):
        generator = self.make_generator(_FakeCompletions(content="   "))
        with self.assertRaises(GenerationError) as ctx:
            generator.generate("prompt")
        self.assertEqual(ctx.exception.message, EMPTY_RESPONSE_MESSAGE)
        self.assertEqual(ctx.exception.status_code, 502)

    def test_provider_status_is_propagated(self):
        response = httpx.Response(429, request=httpx.Request("POST", "https://llm.test/v1/chat/completions"))
        error = openai.APIStatusError("Resource has been exhausted", response=response, body=None)
        generator = self.make_generator(_FakeCompletions(error=error))

        with self.assertRaises(GenerationError) as ctx:
            generator.generate("prompt")

        self.assertEqual(ctx.exception.status_code, 429)
        self.assertEqual(ctx.exception.message, "Resource has been exhausted")


if __name__ == "__main__":
    unittest.main()
