"""Plausibility filters for user input and generated quotes."""

from .input_checker import (
    DEFAULT_RULES,
    InputPlausibilityChecker,
    InputRule,
    check_input_plausibility,
    get_input_checker,
)
from .output_checker import (
    OutputPlausibilityChecker,
    check_output_plausibility,
    get_output_checker,
)

__all__ = [
    "DEFAULT_RULES",
    "InputPlausibilityChecker",
    "InputRule",
    "OutputPlausibilityChecker",
    "check_input_plausibility",
    "check_output_plausibility",
    "get_input_checker",
    "get_output_checker",
]
