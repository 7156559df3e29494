"""Logging configuration and helpers for keeping user data out of logs."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

_DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3")

EMAIL_RE = re.compile(r"[\w.+-]+@[\w.-]+\.[a-zA-Z]{2,}")
DIGIT_RE = re.compile(r"\b\d{4,}\b")


def sanitize_text(value: Optional[str], *, max_length: Optional[int] = None) -> str:
    """Mask emails and long numbers, optionally clipping to ``max_length``."""

    if not value:
        return ""
    masked = EMAIL_RE.sub("<email>", value)
    masked = DIGIT_RE.sub("<num>", masked)
    if max_length is not None and len(masked) > max_length:
        masked = masked[:max_length] + "..."
    return masked


def mask_email(address: Optional[str]) -> str:
    """Keep the first character and the domain, e.g. ``j***@example.com``."""

    if not address or "@" not in address:
        return "<email>"
    local, _, domain = address.partition("@")
    return f"{local[:1]}***@{domain}"


def setup_logging(
    level: Optional[str] = None,
    *,
    fmt: str = _DEFAULT_FORMAT,
    quiet: Iterable[str] = _NOISY_LOGGERS,
) -> None:
    """Configure the root logger once; later calls only adjust level and format.

    HTTP client libraries are capped at WARNING so request URLs carrying API
    keys do not end up in the application log.
    """

    desired_level = getattr(logging, (level or "INFO").upper(), logging.INFO)
    root_logger = logging.getLogger()

    for name in quiet:
        logging.getLogger(name).setLevel(max(desired_level, logging.WARNING))

    if root_logger.handlers:
        for handler in root_logger.handlers:
            handler.setLevel(desired_level)
            handler.setFormatter(logging.Formatter(fmt))
        root_logger.setLevel(desired_level)
        return

    logging.basicConfig(level=desired_level, format=fmt)
