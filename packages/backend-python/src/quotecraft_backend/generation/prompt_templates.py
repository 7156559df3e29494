"""Prompt templates for quote generation."""

from __future__ import annotations

from typing import Optional

QUOTE_SYSTEM_PROMPT = (
    "You write short, original quotes. Reply with the quote text only, "
    "without commentary, attribution lines or surrounding quotation marks."
)


def build_quote_prompt(
    quote_type: str,
    tone: Optional[str] = None,
    famous_person: Optional[str] = None,
) -> str:
    prompt = f'Generate a quote about: "{quote_type}".'
    if tone:
        prompt += f" The tone should be {tone}."
    if famous_person:
        prompt += f" The quote should sound as if it were written or said by {famous_person}."
    prompt += "\n\nQuote:"
    return prompt
