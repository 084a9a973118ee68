"""Utility exports for concurrency helpers."""

from env_resolver.utils.concurrency import SingleFlight, gather_fail_fast, run_with_timeout

__all__ = [
    "SingleFlight",
    "gather_fail_fast",
    "run_with_timeout",
]
