"""Bounded, caller-owned audit trail of resolution events."""

from __future__ import annotations

import enum
import threading
import time
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from env_resolver.constants import AUDIT_MAX_EVENTS
from env_resolver.security.redaction import redact_text, redact_value


class AuditEventType(str, enum.Enum):
    VALIDATION_SUCCESS = "validation_success"
    VALIDATION_FAILURE = "validation_failure"
    POLICY_VIOLATION = "policy_violation"
    ENV_LOADED = "env_loaded"
    PROVIDER_ERROR = "provider_error"
    CACHE_REFRESH_FAILED = "cache_refresh_failed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class AuditEvent:
    """One audit record. Never carries configuration values."""

    type: AuditEventType
    timestamp: float
    key: str | None = None
    source: str | None = None
    error: str | None = None
    metadata: Mapping[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "type": self.type.value,
            "timestamp": self.timestamp,
            "key": self.key,
            "source": self.source,
            "error": self.error,
            "metadata": dict(self.metadata),
        }


class AuditLog:
    """Keep the most recent ``max_events`` events; older ones are dropped."""

    def __init__(
        self,
        *,
        max_events: int = AUDIT_MAX_EVENTS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not isinstance(max_events, int):
            raise ValueError(f"max_events must be an integer, got {type(max_events).__name__}")
        if max_events <= 0:
            raise ValueError("max_events must be > 0")
        self._events = deque[AuditEvent](maxlen=max_events)
        self._lock = threading.Lock()
        self._clock = clock
        self.max_events = max_events

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def record(
        self,
        event_type: AuditEventType | str,
        *,
        key: str | None = None,
        source: str | None = None,
        error: str | None = None,
        metadata: Mapping[str, object] | None = None,
    ) -> AuditEvent:
        event = AuditEvent(
            type=AuditEventType(event_type),
            timestamp=self._clock(),
            key=key,
            source=source,
            error=redact_text(error) if error is not None else None,
            metadata=MappingProxyType(_redacted_metadata(metadata)),
        )
        with self._lock:
            self._events.append(event)
        return event

    def events(self, event_type: AuditEventType | str | None = None) -> tuple[AuditEvent, ...]:
        with self._lock:
            snapshot = tuple(self._events)
        if event_type is None:
            return snapshot
        wanted = AuditEventType(event_type)
        return tuple(event for event in snapshot if event.type is wanted)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


def _redacted_metadata(metadata: Mapping[str, object] | None) -> dict[str, object]:
    if not metadata:
        return {}
    redacted = redact_value(dict(metadata))
    return dict(redacted) if isinstance(redacted, Mapping) else {}


__all__ = [
    "AuditEvent",
    "AuditEventType",
    "AuditLog",
]
