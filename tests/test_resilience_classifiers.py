"""Tests for volley.resilience.classifiers and the storage error helpers."""

from __future__ import annotations

import asyncio

import pytest

from volley.resilience.classifiers import (
    CatchAllClassifier,
    ThrottleClassifier,
    TransportFaultClassifier,
    unwrap_error,
)
from volley.resilience.errors import (
    OperationCancelledError,
    StorageError,
    StorageErrorKind,
    classify_storage_error,
    status_of,
    wrap_storage_error,
)


def _storage_error_caused_by(cause: BaseException, status_code: int | None = None) -> StorageError:
    error = StorageError("wrapped", status_code=status_code)
    error.__cause__ = cause
    return error


class TestUnwrapError:
    def test_plain_error_returned(self):
        exc = ValueError("x")
        assert unwrap_error(exc) is exc

    def test_nested_groups_descend_to_first(self):
        inner = TimeoutError("late")
        group = ExceptionGroup("outer", [ExceptionGroup("inner", [inner, ValueError()])])
        assert unwrap_error(group) is inner


class TestCatchAllClassifier:
    def test_everything_is_transient(self):
        classifier = CatchAllClassifier()
        assert classifier.is_transient(ValueError("bad")) is True
        assert classifier.is_transient(KeyError("k")) is True


class TestTransportFaultClassifier:
    """Test the transport-level transient detection rules."""

    @pytest.fixture
    def classifier(self):
        return TransportFaultClassifier()

    def test_timeout_is_transient(self, classifier):
        assert classifier.is_transient(TimeoutError()) is True

    def test_cancelled_is_transient(self, classifier):
        assert classifier.is_transient(asyncio.CancelledError()) is True

    def test_operation_cancelled_is_transient(self, classifier):
        assert classifier.is_transient(OperationCancelledError()) is True

    def test_service_unavailable_is_transient(self, classifier):
        assert classifier.is_transient(StorageError("down", status_code=503)) is True

    def test_storage_error_over_connection_error_is_transient(self, classifier):
        error = _storage_error_caused_by(ConnectionResetError("reset"))
        assert classifier.is_transient(error) is True

    def test_storage_error_over_timeout_is_transient(self, classifier):
        assert classifier.is_transient(_storage_error_caused_by(TimeoutError())) is True

    def test_known_message_is_transient(self, classifier):
        error = ValueError("Error: One of the specified inputs is invalid (code 400)")
        assert classifier.is_transient(error) is True

    def test_message_match_is_case_sensitive(self, classifier):
        error = ValueError("one of the specified inputs is invalid")
        assert classifier.is_transient(error) is False

    def test_not_found_is_not_transient(self, classifier):
        assert classifier.is_transient(StorageError("missing", status_code=404)) is False

    def test_throttle_is_not_transient(self, classifier):
        assert classifier.is_transient(StorageError("slow down", status_code=429)) is False

    def test_plain_error_is_not_transient(self, classifier):
        assert classifier.is_transient(ValueError("nope")) is False

    def test_single_member_group_is_unwrapped(self, classifier):
        group = ExceptionGroup("tasks", [StorageError("down", status_code=503)])
        assert classifier.is_transient(group) is True

    def test_custom_messages(self):
        classifier = TransportFaultClassifier(["lease lost"])
        assert classifier.is_transient(RuntimeError("lease lost on partition 3")) is True
        assert classifier.is_transient(
            ValueError("One of the specified inputs is invalid")
        ) is False


class TestThrottleClassifier:
    @pytest.fixture
    def classifier(self):
        return ThrottleClassifier()

    def test_429_is_transient(self, classifier):
        assert classifier.is_transient(StorageError("throttled", status_code=429)) is True

    def test_status_attribute_is_read(self, classifier):
        exc = Exception("rate limited")
        exc.status = 429  # type: ignore[attr-defined]
        assert classifier.is_transient(exc) is True

    def test_503_is_not_transient(self, classifier):
        assert classifier.is_transient(StorageError("down", status_code=503)) is False

    def test_no_status_is_not_transient(self, classifier):
        assert classifier.is_transient(TimeoutError()) is False

    def test_group_is_unwrapped(self, classifier):
        group = ExceptionGroup("g", [StorageError("throttled", status_code=429)])
        assert classifier.is_transient(group) is True


class TestStatusOf:
    def test_status_code_preferred(self):
        exc = Exception()
        exc.status_code = 404  # type: ignore[attr-defined]
        exc.status = 500  # type: ignore[attr-defined]
        assert status_of(exc) == 404

    def test_non_int_ignored(self):
        exc = Exception()
        exc.status_code = "429"  # type: ignore[attr-defined]
        assert status_of(exc) is None


class TestWrapStorageError:
    def test_wraps_with_cause_and_status(self):
        inner = Exception("gone")
        inner.status_code = 410  # type: ignore[attr-defined]
        wrapped = wrap_storage_error(inner)
        assert isinstance(wrapped, StorageError)
        assert wrapped.status_code == 410
        assert wrapped.__cause__ is inner

    def test_flattens_single_member_group(self):
        inner = TimeoutError("late")
        wrapped = wrap_storage_error(ExceptionGroup("g", [inner]))
        assert wrapped.__cause__ is inner

    def test_storage_error_passes_through(self):
        error = StorageError("already", status_code=503)
        assert wrap_storage_error(error) is error


class TestClassifyStorageError:
    @pytest.mark.parametrize(
        ("status_code", "kind"),
        [
            (404, StorageErrorKind.not_found),
            (412, StorageErrorKind.etag_mismatch),
            (409, StorageErrorKind.duplicate_id),
            (500, StorageErrorKind.storage),
            (None, StorageErrorKind.storage),
        ],
    )
    def test_status_mapping(self, status_code, kind):
        assert classify_storage_error(StorageError("x", status_code=status_code)) == kind

    def test_non_storage_error_is_none(self):
        assert classify_storage_error(ValueError("x")) == StorageErrorKind.none

    def test_group_member_classified(self):
        group = ExceptionGroup("g", [StorageError("x", status_code=404)])
        assert classify_storage_error(group) == StorageErrorKind.not_found
