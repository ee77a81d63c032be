"""Shared utility functions for the vault connector."""

from .sanitization import redact_payload, sanitize_error_message

__all__ = ["redact_payload", "sanitize_error_message"]
