"""Generation-related helpers such as prompt templates."""

from .prompt_templates import QUOTE_SYSTEM_PROMPT, build_quote_prompt

__all__ = ["QUOTE_SYSTEM_PROMPT", "build_quote_prompt"]
