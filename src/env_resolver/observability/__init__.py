"""Public observability primitives: structured logging and the audit trail."""

from env_resolver.observability.audit import AuditEvent, AuditEventType, AuditLog
from env_resolver.observability.logging import (
    JsonLineFormatter,
    LogRedactor,
    default_log_redactor,
    setup_logging,
)

__all__ = [
    "AuditEvent",
    "AuditEventType",
    "AuditLog",
    "JsonLineFormatter",
    "LogRedactor",
    "default_log_redactor",
    "setup_logging",
]
