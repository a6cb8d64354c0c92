"""Tests for volley.execution.diagnostics - per-call tracing."""

from __future__ import annotations

import time

import pytest

from volley.execution.diagnostics import (
    RESULT_FAILED,
    RESULT_OK,
    OperationDiagnostics,
    trace_request,
    trace_request_async,
)


class TestTraceRequest:
    def test_success(self):
        diagnostics = trace_request(lambda d: "value", "read")
        assert diagnostics.name == "read"
        assert diagnostics.result == "value"
        assert diagnostics.result_signature == RESULT_OK
        assert diagnostics.message == "None"
        assert diagnostics.succeeded is True
        assert diagnostics.error is None

    def test_failure_is_captured(self):
        def fail(d):
            raise ValueError("bad row")

        diagnostics = trace_request(fail, "write")
        assert diagnostics.result_signature == RESULT_FAILED
        assert diagnostics.message == "ValueError: bad row"
        assert isinstance(diagnostics.error, ValueError)
        assert diagnostics.succeeded is False

    def test_client_data_attached(self):
        def action(d: OperationDiagnostics):
            d.client_data["partition"] = 4
            return None

        diagnostics = trace_request(action, "query")
        assert diagnostics.client_data == {"partition": 4}

    def test_elapsed_measured(self):
        diagnostics = trace_request(lambda d: time.sleep(0.02), "slow")
        assert diagnostics.elapsed_ms >= 20


class TestTraceRequestAsync:
    @pytest.mark.asyncio
    async def test_success(self):
        async def action(d):
            return 5

        diagnostics = await trace_request_async(action, "read")
        assert diagnostics.result == 5
        assert diagnostics.succeeded is True

    @pytest.mark.asyncio
    async def test_failure_is_captured(self):
        async def action(d):
            raise TimeoutError("late")

        diagnostics = await trace_request_async(action, "read")
        assert diagnostics.succeeded is False
        assert diagnostics.message == "TimeoutError: late"


class TestOperationDiagnostics:
    def test_stop_without_start_keeps_zero(self):
        diagnostics = OperationDiagnostics(name="x")
        diagnostics.stop_timer()
        assert diagnostics.elapsed_ms == 0
