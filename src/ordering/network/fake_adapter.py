"""Fake delivery network — deterministic courier booking for testing and development.

Records every request it receives. Failures can be switched on permanently
with ``configure()`` or for the next N calls with ``fail_next()``.
"""

from uuid import uuid4

from ordering.exceptions import DeliveryNetworkUnavailable
from ordering.network.port import CourierRequest, DeliveryNetworkPort, DispatchResult


class FakeDeliveryNetwork(DeliveryNetworkPort):
    """Fake network that always accepts by default."""

    def __init__(self):
        self.requests: list[CourierRequest] = []
        self.should_succeed = True
        self.failure_reason = "Delivery network unavailable"
        self._failures_pending = 0
        self.courier = "FakeCourier"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Delivery network unavailable"):
        """Configure the fake network behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def fail_next(self, count: int, failure_reason: str = "Delivery network timed out"):
        """Fail the next ``count`` requests, then go back to the configured behavior."""
        self._failures_pending = count
        self.failure_reason = failure_reason

    def request_courier(self, request: CourierRequest, timeout: float) -> DispatchResult:
        self.requests.append(request)

        if self._failures_pending > 0:
            self._failures_pending -= 1
            raise DeliveryNetworkUnavailable(self.failure_reason)
        if not self.should_succeed:
            raise DeliveryNetworkUnavailable(self.failure_reason)

        return DispatchResult(tracking_id=f"TRK-{uuid4().hex[:10].upper()}", courier=self.courier)

    def requests_for(self, order_id: str) -> list[CourierRequest]:
        return [r for r in self.requests if r.order_id == str(order_id)]

    def reset(self):
        self.requests.clear()
        self.should_succeed = True
        self.failure_reason = "Delivery network unavailable"
        self._failures_pending = 0
