"""Utilities package."""

from .config import ensure_model_cache_dir, ensure_output_dir, settings
from .log import LoggerMixin, configure_logging, get_logger

__all__ = [
    "settings",
    "ensure_output_dir",
    "ensure_model_cache_dir",
    "get_logger",
    "LoggerMixin",
    "configure_logging",
]
