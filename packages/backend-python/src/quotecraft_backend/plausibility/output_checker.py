"""Screens generated text for refusals and degenerate output."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Optional

from ..config import DEFAULT_REFUSAL_PHRASES, OutputPlausibilitySettings, settings

REFUSAL_PHRASE = "refusal_phrase"
TOO_SHORT = "too_short"
LOW_ALNUM_DENSITY = "low_alphanumeric_density"

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")
_WHITESPACE_RE = re.compile(r"\s")


class OutputPlausibilityChecker:
    """Flags generated text that should not be shown to the requester.

    ``check`` answers True when the text is unhelpful. ``diagnose`` names the
    rule that fired so callers can log and count rejections.
    """

    def __init__(
        self,
        *,
        refusal_phrases: Iterable[str] = DEFAULT_REFUSAL_PHRASES,
        min_words: int = 4,
        min_chars: int = 30,
        density_min_length: int = 11,
        min_alnum_ratio: float = 0.3,
    ) -> None:
        self.refusal_phrases = tuple(phrase.lower() for phrase in refusal_phrases if phrase)
        self.min_words = min_words
        self.min_chars = min_chars
        self.density_min_length = density_min_length
        self.min_alnum_ratio = min_alnum_ratio

    @classmethod
    def from_settings(cls, config: OutputPlausibilitySettings) -> "OutputPlausibilityChecker":
        return cls(
            refusal_phrases=config.refusal_phrases,
            min_words=config.min_words,
            min_chars=config.min_chars,
            density_min_length=config.density_min_length,
            min_alnum_ratio=config.min_alnum_ratio,
        )

    def diagnose(self, text: str) -> Optional[str]:
        lowered = text.lower()
        if any(phrase in lowered for phrase in self.refusal_phrases):
            return REFUSAL_PHRASE

        word_count = len(text.split())
        if word_count < self.min_words and len(text) < self.min_chars:
            return TOO_SHORT

        if len(text) >= self.density_min_length:
            alnum_count = len(_NON_ALNUM_RE.sub("", text))
            non_space_count = len(_WHITESPACE_RE.sub("", text))
            if non_space_count > 0 and alnum_count / non_space_count < self.min_alnum_ratio:
                return LOW_ALNUM_DENSITY

        return None

    def check(self, text: str) -> bool:
        return self.diagnose(text) is not None


@lru_cache(maxsize=1)
def get_output_checker() -> OutputPlausibilityChecker:
    return OutputPlausibilityChecker.from_settings(settings.app_config.plausibility.output)


def check_output_plausibility(text: str) -> bool:
    """True when ``text`` is unhelpful and must not reach the user."""
    return get_output_checker().check(text)
