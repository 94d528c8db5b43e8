"""Identify service client."""

from .client import IdentifyClient, build_form_data, format_confidence

__all__ = ["IdentifyClient", "build_form_data", "format_confidence"]
