"""Telemetry utilities (logging + metrics helpers)."""

from .logger import mask_email, sanitize_text, setup_logging
from .metrics import metrics

__all__ = ["setup_logging", "sanitize_text", "mask_email", "metrics"]
