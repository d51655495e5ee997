"""DispatchRequest aggregate (CQRS) — one courier booking per order.

Lifecycle:
    PENDING → ASSIGNED   (delivery network accepted)
    PENDING → FAILED     (attempts exhausted, manual dispatch needed)
    PENDING → ABORTED    (order left ready_for_pickup before a courier was found)

A pending request carries the time of its next attempt; the retry scan picks
it up once that time has passed.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from ordering.dispatch.events import (
    DispatchAborted,
    DispatchAssigned,
    DispatchAttemptFailed,
    DispatchFailed,
    DispatchRequested,
)
from ordering.domain import ordering
from ordering.pricing.calculator import Urgency


class DispatchStatus(Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    FAILED = "failed"
    ABORTED = "aborted"


class WeightClass(Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"


def weight_class_for(weight_grams: int) -> WeightClass:
    if weight_grams < 5_000:
        return WeightClass.LIGHT
    if weight_grams < 25_000:
        return WeightClass.MEDIUM
    return WeightClass.HEAVY


def _comparable(moment, reference):
    """Normalize timezone awareness so two datetimes can be compared."""
    if moment.tzinfo is not None and reference.tzinfo is None:
        return moment.replace(tzinfo=None)
    if moment.tzinfo is None and reference.tzinfo is not None:
        return moment.replace(tzinfo=reference.tzinfo)
    return moment


@ordering.aggregate
class DispatchRequest:
    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    urgency = String(choices=Urgency, default=Urgency.NORMAL.value)
    weight_class = String(choices=WeightClass, default=WeightClass.LIGHT.value)
    status = String(choices=DispatchStatus, default=DispatchStatus.PENDING.value)
    attempts = Integer(default=0, min_value=0)
    max_attempts = Integer(default=5, min_value=1)
    next_attempt_at = DateTime()
    last_attempt_at = DateTime()
    last_error = String(max_length=500)
    tracking_id = String(max_length=255)
    courier = String(max_length=100)
    requested_at = DateTime()
    assigned_at = DateTime()
    closed_at = DateTime()

    @classmethod
    def create(cls, order_id, supplier_id, urgency, weight_class, max_attempts):
        now = datetime.now(UTC)
        request = cls(
            order_id=order_id,
            supplier_id=supplier_id,
            urgency=urgency,
            weight_class=weight_class,
            max_attempts=max_attempts,
            status=DispatchStatus.PENDING.value,
            attempts=0,
            next_attempt_at=now,
            requested_at=now,
        )
        request.raise_(
            DispatchRequested(
                dispatch_id=str(request.id),
                order_id=str(order_id),
                supplier_id=str(supplier_id),
                weight_class=weight_class,
                urgency=urgency,
                requested_at=now,
            )
        )
        return request

    def _assert_pending(self):
        if DispatchStatus(self.status) != DispatchStatus.PENDING:
            raise ValidationError({"status": [f"Dispatch request is already {self.status}"]})

    def is_pending(self) -> bool:
        return DispatchStatus(self.status) == DispatchStatus.PENDING

    def is_due(self, as_of) -> bool:
        if not self.is_pending() or self.next_attempt_at is None:
            return False
        return _comparable(self.next_attempt_at, as_of) <= as_of

    def record_assignment(self, tracking_id, courier=None, at=None):
        self._assert_pending()
        at = at or datetime.now(UTC)

        self.attempts += 1
        self.status = DispatchStatus.ASSIGNED.value
        self.tracking_id = tracking_id
        self.courier = courier
        self.last_attempt_at = at
        self.assigned_at = at
        self.next_attempt_at = None
        self.last_error = None

        self.raise_(
            DispatchAssigned(
                dispatch_id=str(self.id),
                order_id=str(self.order_id),
                tracking_id=tracking_id,
                courier=courier,
                attempts=self.attempts,
                requested_at=self.requested_at,
                assigned_at=at,
            )
        )

    def record_failure(self, error, policy, at=None):
        """Count a failed attempt and schedule the next one, or give up."""
        self._assert_pending()
        at = at or datetime.now(UTC)

        self.attempts += 1
        self.last_attempt_at = at
        self.last_error = str(error)[:500]

        if self.attempts >= self.max_attempts:
            self.status = DispatchStatus.FAILED.value
            self.next_attempt_at = None
            self.closed_at = at
            self.raise_(
                DispatchFailed(
                    dispatch_id=str(self.id),
                    order_id=str(self.order_id),
                    attempts=self.attempts,
                    error=self.last_error,
                    failed_at=at,
                )
            )
            return

        self.next_attempt_at = at + policy.delay_after(self.attempts)
        self.raise_(
            DispatchAttemptFailed(
                dispatch_id=str(self.id),
                order_id=str(self.order_id),
                attempts=self.attempts,
                error=self.last_error,
                next_attempt_at=self.next_attempt_at,
            )
        )

    def abort(self, reason):
        self._assert_pending()
        now = datetime.now(UTC)

        self.status = DispatchStatus.ABORTED.value
        self.next_attempt_at = None
        self.closed_at = now

        self.raise_(
            DispatchAborted(
                dispatch_id=str(self.id),
                order_id=str(self.order_id),
                reason=reason,
                aborted_at=now,
            )
        )
