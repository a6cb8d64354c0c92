"""Volley timing utilities - the deferred execution queue."""

from volley.timing.wait_queue import DeferredExecutionQueue, TimeoutRegistration

__all__ = [
    "DeferredExecutionQueue",
    "TimeoutRegistration",
]
