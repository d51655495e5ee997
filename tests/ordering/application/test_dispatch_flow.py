"""Application tests for courier dispatch — backoff retries and exhaustion."""

from datetime import UTC, datetime, timedelta

import httpx
import pytest
from ordering.dispatch.dispatch import DispatchStatus
from ordering.dispatch.requesting import find_dispatch_for_order
from ordering.dispatch.retry import RetryDueDispatches
from ordering.dispatch.worker import DispatchRetryWorker
from ordering.network import set_network
from ordering.network.http_adapter import HttpDeliveryNetwork
from ordering.order.dispatch_tracking import RecordManualDispatch
from ordering.order.lifecycle import transition_order
from ordering.order.order import Order
from ordering.projections.order_board import board_for_supplier
from ordering.utils.locks import process_for_order
from protean import current_domain
from protean.exceptions import ValidationError


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _retry(as_of):
    return current_domain.process(RetryDueDispatches(as_of=as_of), asynchronous=False)


def _later(seconds):
    return datetime.now(UTC) + timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def fast_policy(monkeypatch):
    monkeypatch.setenv("DISPATCH_RETRY_BASE_SECONDS", "5")
    monkeypatch.setenv("DISPATCH_RETRY_FACTOR", "2")
    monkeypatch.setenv("DISPATCH_RETRY_MAX_ATTEMPTS", "5")


class TestRetryUntilAssigned:
    def test_three_failures_then_success(self, place_order, advance_order, network):
        order_id = place_order()
        network.fail_next(3)

        advance_order(order_id, "ready_for_pickup")

        # The transition succeeded even though the courier booking did not
        order = _order(order_id)
        assert order.status == "ready_for_pickup"
        assert order.dispatch_pending is True
        assert order.dispatch() is None

        # Retries at +5s, +10s, +20s
        assert _retry(_later(6)) == 1
        assert _retry(_later(6 + 11)) == 1
        assert _order(order_id).dispatch() is None
        assert _retry(_later(6 + 11 + 21)) == 1

        order = _order(order_id)
        assert order.dispatch() is not None
        assert order.dispatch_pending is False
        assert len(network.requests_for(order_id)) == 4

        request = find_dispatch_for_order(order_id)
        assert request.status == DispatchStatus.ASSIGNED.value
        assert request.attempts == 4

    def test_not_retried_before_backoff_elapses(self, place_order, advance_order, network):
        order_id = place_order()
        network.fail_next(1)
        advance_order(order_id, "ready_for_pickup")

        assert _retry(_later(1)) == 0
        assert len(network.requests_for(order_id)) == 1

    def test_retry_after_reaching_in_transit_is_aborted(self, place_order, advance_order, network):
        order_id = place_order()
        network.fail_next(1)
        advance_order(order_id, "ready_for_pickup")
        transition_order(order_id, "in_transit", "system")

        _retry(_later(60))

        assert find_dispatch_for_order(order_id).status == DispatchStatus.ABORTED.value
        assert len(network.requests_for(order_id)) == 1

    def test_pickup_by_courier_clears_pending_flag(self, place_order, advance_order, network):
        order_id = place_order()
        network.fail_next(1)
        advance_order(order_id, "ready_for_pickup")
        assert _order(order_id).dispatch_pending is True

        transition_order(order_id, "in_transit", "system")
        transition_order(order_id, "delivered", "system")
        _retry(_later(3600))

        order = _order(order_id)
        assert order.status == "delivered"
        assert order.dispatch_pending is False

        row = board_for_supplier(order.supplier_id)[0]
        assert row.status == "delivered"
        assert row.dispatch_pending is False


class TestExhaustion:
    def test_manual_dispatch_after_max_attempts(self, place_order, advance_order, network, alerts):
        order_id = place_order()
        network.configure(should_succeed=False)
        advance_order(order_id, "ready_for_pickup")

        for offset in (10, 30, 70, 150):
            _retry(_later(offset))

        request = find_dispatch_for_order(order_id)
        assert request.status == DispatchStatus.FAILED.value
        assert request.attempts == 5

        order = _order(order_id)
        assert order.status == "ready_for_pickup"
        assert order.manual_dispatch_required is True
        assert order.dispatch_pending is False
        assert alerts.codes().count("dispatch_failed") == 1

        # Nothing left to retry
        assert _retry(_later(10_000)) == 0
        assert len(network.requests_for(order_id)) == 5

    def test_manual_dispatch_recorded(self, place_order, advance_order, network):
        order_id = place_order()
        network.configure(should_succeed=False)
        advance_order(order_id, "ready_for_pickup")

        process_for_order(
            order_id,
            RecordManualDispatch(order_id=order_id, tracking_id="PHONE-123", courier="Local Vans"),
        )

        order = _order(order_id)
        assert order.dispatch().tracking_id == "PHONE-123"
        assert order.manual_dispatch_required is False
        assert order.dispatch_pending is False


class TestCancellationDuringRetries:
    def test_cancel_aborts_pending_dispatch(self, place_order, advance_order, network):
        order_id = place_order()
        network.fail_next(2)
        advance_order(order_id, "ready_for_pickup")

        transition_order(order_id, "cancelled", "supplier", reason_code="delivery_not_possible")
        _retry(_later(60))

        assert find_dispatch_for_order(order_id).status == DispatchStatus.ABORTED.value
        order = _order(order_id)
        assert order.status == "cancelled"
        assert order.dispatch() is None
        assert order.dispatch_pending is False
        assert len(network.requests_for(order_id)) == 1


class TestDispatchReference:
    def test_dispatch_set_once(self, place_order, advance_order):
        order_id = place_order()
        advance_order(order_id, "ready_for_pickup")

        with pytest.raises(ValidationError):
            process_for_order(
                order_id,
                RecordManualDispatch(order_id=order_id, tracking_id="OTHER-1", courier="Other"),
            )

    def test_no_dispatch_before_ready(self, place_order):
        order_id = place_order()
        with pytest.raises(ValidationError):
            process_for_order(
                order_id,
                RecordManualDispatch(order_id=order_id, tracking_id="EARLY-1", courier="Other"),
            )


class TestRetryWorker:
    def test_run_once_retries_due_requests(self, place_order, advance_order, network, monkeypatch):
        monkeypatch.setenv("DISPATCH_RETRY_BASE_SECONDS", "0")
        order_id = place_order()
        network.fail_next(1)
        advance_order(order_id, "ready_for_pickup")

        from ordering.domain import ordering

        worker = DispatchRetryWorker(ordering)
        assert worker.run_once() == 1
        assert _order(order_id).dispatch() is not None

    def test_start_and_stop(self, monkeypatch):
        monkeypatch.setenv("DISPATCH_RETRY_POLL_SECONDS", "0.01")
        from ordering.domain import ordering

        worker = DispatchRetryWorker(ordering)
        worker.start()
        assert worker.running
        worker.stop()
        assert not worker.running


class TestMalformedCourierReply:
    @pytest.fixture()
    def http_network(self):
        def _install(handler):
            set_network(
                HttpDeliveryNetwork(
                    "https://couriers.example.com/api",
                    api_key="secret",
                    transport=httpx.MockTransport(handler),
                )
            )

        return _install

    def test_list_body_leaves_dispatch_pending(self, place_order, advance_order, http_network, alerts):
        order_id = place_order()
        advance_order(order_id, "preparing")
        http_network(lambda request: httpx.Response(200, json=["accepted"]))

        assert transition_order(order_id, "ready_for_pickup", "supplier") is True

        order = _order(order_id)
        assert order.status == "ready_for_pickup"
        assert order.dispatch_pending is True
        assert order.dispatch() is None
        assert alerts.codes() == []

        request = find_dispatch_for_order(order_id)
        assert request.status == DispatchStatus.PENDING.value
        assert request.attempts == 1
        assert request.next_attempt_at is not None

    def test_retry_recovers_once_courier_answers_properly(self, place_order, advance_order, http_network):
        order_id = place_order()
        advance_order(order_id, "preparing")
        http_network(lambda request: httpx.Response(200, text="OK"))
        transition_order(order_id, "ready_for_pickup", "supplier")

        http_network(lambda request: httpx.Response(201, json={"tracking_id": "TRK-77", "courier": "Rapid"}))
        assert _retry(_later(6)) == 1

        order = _order(order_id)
        assert order.dispatch().tracking_id == "TRK-77"
        assert order.dispatch_pending is False
