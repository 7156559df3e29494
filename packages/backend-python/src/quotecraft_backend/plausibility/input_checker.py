"""Heuristics that flag gibberish in user-supplied free-text fields.

The checker normalizes the submitted text once (trimmed, lower-cased) and then
walks an ordered tuple of rules, stopping at the first one that matches. Later
rules assume the earlier ones did not fire, so the order is part of the
contract. Rejection reasons always quote the text exactly as the user typed
it so the UI can echo it back.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Iterable, Optional, Sequence

from ..config import DEFAULT_SHORT_TONES, InputPlausibilitySettings, settings
from ..models import InputVerdict

TONE_FIELD = "tone"
VOWELS = "aeiou"
# "y" only counts as a vowel for very short words
SHORT_WORD_VOWELS = "aeiouy"
SHORT_ALPHA_LIMIT = 3
MIN_PATTERN_UNIT = 3

_NON_ALPHA_RE = re.compile(r"[^a-z]")
_SYMBOLS_ONLY_RE = re.compile(r"[^\w\s]+")


@dataclass(frozen=True)
class InputSample:
    """A submitted field, normalized once for every rule."""

    field_name: str
    original: str
    normalized: str
    letters: str

    @classmethod
    def from_text(cls, text: str, field_name: str) -> "InputSample":
        normalized = text.strip().lower()
        return cls(
            field_name=field_name,
            original=text,
            normalized=normalized,
            letters=_NON_ALPHA_RE.sub("", normalized),
        )


RulePredicate = Callable[["InputPlausibilityChecker", InputSample], bool]


@dataclass(frozen=True)
class InputRule:
    name: str
    matches: RulePredicate
    template: str

    def reason(self, sample: InputSample) -> str:
        return self.template.format(field=sample.field_name, text=sample.original)


def _too_short(checker: "InputPlausibilityChecker", sample: InputSample) -> bool:
    if sample.field_name == TONE_FIELD:
        return False
    return len(sample.normalized) < checker.min_length


def _too_few_vowels(checker: "InputPlausibilityChecker", sample: InputSample) -> bool:
    letters = sample.letters
    if len(letters) <= SHORT_ALPHA_LIMIT:
        return False
    vowel_count = sum(1 for char in letters if char in VOWELS)
    return vowel_count / len(letters) < checker.min_vowel_ratio


def _missing_vowels(checker: "InputPlausibilityChecker", sample: InputSample) -> bool:
    letters = sample.letters
    if not letters or len(letters) > SHORT_ALPHA_LIMIT:
        return False
    return not any(char in SHORT_WORD_VOWELS for char in letters)


def _consonant_run(checker: "InputPlausibilityChecker", sample: InputSample) -> bool:
    return checker.consonant_run_re.search(sample.letters) is not None


def _repeated_characters(checker: "InputPlausibilityChecker", sample: InputSample) -> bool:
    return checker.char_repeat_re.search(sample.normalized) is not None


def _is_periodic(text: str, min_unit: int) -> bool:
    for unit in range(min_unit, len(text) // 2 + 1):
        if text[unit:] == text[:-unit]:
            return True
    return False


def _repetitive_pattern(checker: "InputPlausibilityChecker", sample: InputSample) -> bool:
    text = sample.normalized
    if len(text) < checker.pattern_min_length:
        return False
    half = len(text) // 2
    first_half = text[:half]
    if text[half:].startswith(first_half) and len(first_half) >= MIN_PATTERN_UNIT:
        return True
    # Repeats whose unit does not line up with the midpoint, e.g. "abcabcabc".
    return _is_periodic(text, MIN_PATTERN_UNIT)


def _symbols_only(checker: "InputPlausibilityChecker", sample: InputSample) -> bool:
    text = sample.normalized
    return len(text) > 1 and _SYMBOLS_ONLY_RE.fullmatch(text) is not None


DEFAULT_RULES: Sequence[InputRule] = (
    InputRule(
        "too_short",
        _too_short,
        'The {field} you entered ("{text}") is too short to be meaningful.',
    ),
    InputRule(
        "too_few_vowels",
        _too_few_vowels,
        'The {field} you entered ("{text}") seems to contain too few vowels to form recognizable words.',
    ),
    InputRule(
        "missing_vowels",
        _missing_vowels,
        'The {field} you entered ("{text}") appears to be missing vowels.',
    ),
    InputRule(
        "consonant_run",
        _consonant_run,
        'The {field} you entered ("{text}") contains sequences of letters that are unlikely '
        "in real words (e.g., many consonants together).",
    ),
    InputRule(
        "repeated_characters",
        _repeated_characters,
        'The {field} you entered ("{text}") contains highly repetitive characters.',
    ),
    InputRule(
        "repetitive_pattern",
        _repetitive_pattern,
        'The {field} you entered ("{text}") appears to be a repetitive pattern.',
    ),
    InputRule(
        "symbols_only",
        _symbols_only,
        'The {field} ("{text}") appears to consist only of symbols. Please use words.',
    ),
)


class InputPlausibilityChecker:
    """Decides whether a free-text field reads like language or like gibberish."""

    def __init__(
        self,
        *,
        min_length: int = 3,
        short_tones: Iterable[str] = DEFAULT_SHORT_TONES,
        min_vowel_ratio: float = 0.15,
        max_consonant_run: int = 5,
        max_char_repeat: int = 5,
        pattern_min_length: int = 9,
        rules: Optional[Sequence[InputRule]] = None,
    ) -> None:
        self.min_length = min_length
        self.short_tones = frozenset(tone.strip().lower() for tone in short_tones)
        self.min_vowel_ratio = min_vowel_ratio
        self.pattern_min_length = pattern_min_length
        self.consonant_run_re = re.compile(rf"[^{VOWELS}]{{{max_consonant_run},}}")
        self.char_repeat_re = re.compile(rf"(.)\1{{{max_char_repeat - 1},}}")
        self.rules = tuple(rules) if rules is not None else tuple(DEFAULT_RULES)

    @classmethod
    def from_settings(cls, config: InputPlausibilitySettings) -> "InputPlausibilityChecker":
        return cls(
            min_length=config.min_length,
            short_tones=config.short_tones,
            min_vowel_ratio=config.min_vowel_ratio,
            max_consonant_run=config.max_consonant_run,
            max_char_repeat=config.max_char_repeat,
            pattern_min_length=config.pattern_min_length,
        )

    def first_match(self, text: Optional[str], field_name: str) -> Optional[InputRule]:
        """Return the first rule the text trips, or ``None`` when it looks fine."""
        if not text or not text.strip():
            return None
        sample = InputSample.from_text(text, field_name)
        if field_name == TONE_FIELD and sample.normalized in self.short_tones:
            return None
        for rule in self.rules:
            if rule.matches(self, sample):
                return rule
        return None

    def evaluate(self, text: Optional[str], field_name: str) -> InputVerdict:
        rule = self.first_match(text, field_name)
        if rule is None:
            return InputVerdict(rejected=False)
        reason = rule.reason(InputSample.from_text(text or "", field_name))
        return InputVerdict(rejected=True, reason=reason, rule=rule.name)

    def check(self, text: Optional[str], field_name: str) -> Optional[str]:
        """Return a human-readable rejection reason, or ``None`` if accepted."""
        return self.evaluate(text, field_name).reason


@lru_cache(maxsize=1)
def get_input_checker() -> InputPlausibilityChecker:
    return InputPlausibilityChecker.from_settings(settings.app_config.plausibility.input)


def check_input_plausibility(text: Optional[str], field_name: str) -> InputVerdict:
    return get_input_checker().evaluate(text, field_name)
