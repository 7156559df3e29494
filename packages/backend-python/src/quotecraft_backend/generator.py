import logging
from typing import List, Optional, cast

import openai
from openai.types.chat import ChatCompletionMessageParam

from .config import GenerationSettings, settings
from .errors import GenerationError
from .generation import QUOTE_SYSTEM_PROMPT
from .telemetry import metrics, sanitize_text


logger = logging.getLogger(__name__)

EMPTY_RESPONSE_MESSAGE = "Could not extract quote from AI response."
DEFAULT_FAILURE_MESSAGE = "Failed to generate quote from AI service."


class QuoteGenerator:
    """Thin wrapper around an OpenAI-compatible chat completion endpoint."""

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        generation: Optional[GenerationSettings] = None,
        client: Optional[openai.OpenAI] = None,
    ):
        generation = generation or settings.app_config.generation
        self.temperature = generation.temperature
        self.max_tokens = generation.max_tokens
        self.llm_model = model or settings.llm_model
        self.llm_client = client or openai.OpenAI(
            api_key=api_key or settings.llm_api_key or "missing-key",
            base_url=base_url or settings.llm_base_url,
            timeout=generation.timeout_s,
            max_retries=0,
        )

    def generate(self, prompt: str) -> str:
        """Return the trimmed quote text for ``prompt``."""
        messages = [
            {"role": "system", "content": QUOTE_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        logger.debug("Generating quote with prompt: %s", sanitize_text(prompt))
        try:
            with metrics.timer("generator.completion", model=self.llm_model):
                response = self.llm_client.chat.completions.create(
                    model=self.llm_model,
                    messages=cast(List[ChatCompletionMessageParam], messages),
                    stream=False,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                )
        except openai.APIStatusError as exc:
            metrics.increment("generator.error", kind="status", status=exc.status_code)
            logger.error("LLM API error (%s): %s", exc.status_code, exc.message)
            raise GenerationError(
                exc.message or DEFAULT_FAILURE_MESSAGE,
                status_code=exc.status_code,
            ) from exc
        except openai.APIError as exc:
            metrics.increment("generator.error", kind="transport")
            logger.error("LLM API request failed: %s", exc)
            raise GenerationError(DEFAULT_FAILURE_MESSAGE) from exc

        choices = response.choices or []
        content = choices[0].message.content if choices and choices[0].message else None
        if not content or not content.strip():
            logger.warning("Unexpected LLM response structure for prompt: %s", sanitize_text(prompt[:100]))
            metrics.increment("generator.empty_response")
            raise GenerationError(EMPTY_RESPONSE_MESSAGE)
        return content.strip()
