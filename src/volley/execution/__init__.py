"""Volley execution - stress run orchestration and per-call diagnostics."""

from volley.execution.diagnostics import OperationDiagnostics, trace_request, trace_request_async
from volley.execution.stress_runner import StressRunner

__all__ = [
    "OperationDiagnostics",
    "StressRunner",
    "trace_request",
    "trace_request_async",
]
