"""
env-resolver — public security utilities

File: src/env_resolver/security/__init__.py
Last updated: 2026-10-18

Purpose
- Redaction helpers shared by logging, audit, error rendering and
  ``ResolvedConfig``.
"""

from env_resolver.security.redaction import (
    DEFAULT_SENSITIVE_KEY_DENYLIST,
    REDACTED_VALUE,
    is_sensitive_key,
    redact_mapping,
    redact_text,
    redact_value,
)

__all__ = [
    "DEFAULT_SENSITIVE_KEY_DENYLIST",
    "REDACTED_VALUE",
    "is_sensitive_key",
    "redact_mapping",
    "redact_text",
    "redact_value",
]
