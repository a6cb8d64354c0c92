"""OperationDiagnostics: latency and outcome tracing for a single call.

``trace_request`` and ``trace_request_async`` never raise. A failure is
captured on the diagnostics object (signature "Failed", message and
error) so a stress loop can record it and carry on.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

RESULT_OK = "OK"
RESULT_FAILED = "Failed"


@dataclass
class OperationDiagnostics:
    """Timing and outcome of one traced operation."""

    name: str
    message: str = ""
    result_signature: str = ""
    elapsed_ms: int = 0
    client_data: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error: Exception | None = None
    _started: float | None = field(default=None, repr=False)

    @property
    def succeeded(self) -> bool:
        return self.result_signature == RESULT_OK

    def start_timer(self) -> None:
        self._started = time.perf_counter()

    def stop_timer(self) -> None:
        if self._started is not None:
            self.elapsed_ms = int((time.perf_counter() - self._started) * 1000)

    def _record(self, error: Exception | None) -> None:
        if error is None:
            self.message = "None"
            self.result_signature = RESULT_OK
        else:
            self.message = f"{type(error).__name__}: {error}"
            self.result_signature = RESULT_FAILED
            self.error = error


def trace_request(
    action: Callable[[OperationDiagnostics], Any],
    name: str,
) -> OperationDiagnostics:
    """Run ``action`` and return its diagnostics.

    The action receives the diagnostics object so it can attach client
    data; its return value is stored on ``result``.
    """
    diagnostics = OperationDiagnostics(name=name)
    diagnostics.start_timer()
    try:
        diagnostics.result = action(diagnostics)
    except Exception as exc:
        diagnostics._record(exc)
    else:
        diagnostics._record(None)
    diagnostics.stop_timer()
    return diagnostics


async def trace_request_async(
    action: Callable[[OperationDiagnostics], Awaitable[Any]],
    name: str,
) -> OperationDiagnostics:
    """Await ``action`` and return its diagnostics. See trace_request."""
    diagnostics = OperationDiagnostics(name=name)
    diagnostics.start_timer()
    try:
        diagnostics.result = await action(diagnostics)
    except Exception as exc:
        diagnostics._record(exc)
    else:
        diagnostics._record(None)
    diagnostics.stop_timer()
    return diagnostics
