"""Tests for the DispatchRequest aggregate and the retry policy."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.dispatch.dispatch import DispatchRequest, DispatchStatus, WeightClass, weight_class_for
from ordering.dispatch.events import (
    DispatchAborted,
    DispatchAssigned,
    DispatchAttemptFailed,
    DispatchFailed,
    DispatchRequested,
)
from ordering.dispatch.policy import RetryPolicy
from protean.exceptions import ValidationError

POLICY = RetryPolicy(base_seconds=5, factor=2, max_attempts=5)
T0 = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)


def _request(max_attempts=5):
    request = DispatchRequest.create(
        order_id="ord-001",
        supplier_id="sup-001",
        urgency="normal",
        weight_class="medium",
        max_attempts=max_attempts,
    )
    request._events.clear()
    return request


class TestWeightClass:
    @pytest.mark.parametrize(
        "grams, expected",
        [
            (0, WeightClass.LIGHT),
            (4_999, WeightClass.LIGHT),
            (5_000, WeightClass.MEDIUM),
            (24_999, WeightClass.MEDIUM),
            (25_000, WeightClass.HEAVY),
        ],
    )
    def test_boundaries(self, grams, expected):
        assert weight_class_for(grams) == expected


class TestRetryPolicy:
    def test_exponential_delays(self):
        assert [POLICY.delay_after(n).total_seconds() for n in range(1, 5)] == [5, 10, 20, 40]

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DISPATCH_RETRY_BASE_SECONDS", "1")
        monkeypatch.setenv("DISPATCH_RETRY_MAX_ATTEMPTS", "3")
        policy = RetryPolicy.from_env()
        assert policy.base_seconds == 1
        assert policy.max_attempts == 3
        assert policy.factor == 2


class TestDispatchRequestCreation:
    def test_create(self):
        request = DispatchRequest.create(
            order_id="ord-001",
            supplier_id="sup-001",
            urgency="express",
            weight_class="heavy",
            max_attempts=5,
        )
        assert request.status == DispatchStatus.PENDING.value
        assert request.attempts == 0
        assert request.next_attempt_at is not None
        assert isinstance(request._events[-1], DispatchRequested)


class TestAttempts:
    def test_assignment(self):
        request = _request()
        request.record_assignment("TRK-1", "FastCourier", at=T0)

        assert request.status == DispatchStatus.ASSIGNED.value
        assert request.tracking_id == "TRK-1"
        assert request.attempts == 1
        assert request.next_attempt_at is None
        assert isinstance(request._events[-1], DispatchAssigned)

    def test_failure_schedules_retry_with_backoff(self):
        request = _request()
        request.record_failure("timeout", POLICY, at=T0)

        assert request.is_pending()
        assert request.attempts == 1
        assert request.next_attempt_at == T0 + timedelta(seconds=5)
        assert isinstance(request._events[-1], DispatchAttemptFailed)

        request.record_failure("timeout", POLICY, at=T0 + timedelta(seconds=5))
        assert request.next_attempt_at == T0 + timedelta(seconds=15)

    def test_exhaustion_fails_request(self):
        request = _request(max_attempts=3)
        for n in range(3):
            request.record_failure("unavailable", POLICY, at=T0 + timedelta(minutes=n))

        assert request.status == DispatchStatus.FAILED.value
        assert request.attempts == 3
        assert request.next_attempt_at is None
        assert isinstance(request._events[-1], DispatchFailed)

    def test_closed_request_rejects_attempts(self):
        request = _request()
        request.record_assignment("TRK-1")
        with pytest.raises(ValidationError):
            request.record_failure("late", POLICY)

    def test_is_due(self):
        request = _request()
        request.record_failure("timeout", POLICY, at=T0)

        assert not request.is_due(T0 + timedelta(seconds=4))
        assert request.is_due(T0 + timedelta(seconds=5))

    def test_is_due_with_naive_clock(self):
        request = _request()
        request.record_failure("timeout", POLICY, at=T0)
        assert request.is_due(datetime(2026, 3, 2, 10, 1))


class TestAbort:
    def test_abort(self):
        request = _request()
        request.abort("Order is cancelled")

        assert request.status == DispatchStatus.ABORTED.value
        assert not request.is_pending()
        assert not request.is_due(T0 + timedelta(days=1))
        assert isinstance(request._events[-1], DispatchAborted)
