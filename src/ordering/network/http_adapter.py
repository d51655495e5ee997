"""HTTP delivery network adapter.

POSTs the courier request as JSON to ``{base_url}/pickups`` and expects
``{"tracking_id": ..., "courier": ...}`` back. Every call carries the
caller's timeout.
"""

import httpx
import structlog

from ordering.exceptions import DeliveryNetworkUnavailable
from ordering.network.port import CourierRequest, DeliveryNetworkPort, DispatchResult

logger = structlog.get_logger(__name__)


class HttpDeliveryNetwork(DeliveryNetworkPort):
    def __init__(self, base_url: str, api_key: str | None = None, transport: httpx.BaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._transport = transport

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def request_courier(self, request: CourierRequest, timeout: float) -> DispatchResult:
        try:
            with httpx.Client(base_url=self.base_url, timeout=timeout, transport=self._transport) as client:
                response = client.post("/pickups", json=request.to_payload(), headers=self._headers())
        except httpx.TimeoutException as exc:
            raise DeliveryNetworkUnavailable(f"Delivery network timed out after {timeout}s") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DeliveryNetworkUnavailable(f"Delivery network unreachable: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(
                "Delivery network rejected pickup request",
                order_id=request.order_id,
                status_code=response.status_code,
            )
            raise DeliveryNetworkUnavailable(
                f"Delivery network responded {response.status_code}: {response.text[:200]}"
            )

        return self._parse_booking(request, response)

    def _parse_booking(self, request: CourierRequest, response: httpx.Response) -> DispatchResult:
        try:
            body = response.json()
        except ValueError as exc:
            raise DeliveryNetworkUnavailable("Delivery network returned a body that is not JSON") from exc

        if not isinstance(body, dict) or not body.get("tracking_id"):
            logger.warning(
                "Delivery network returned no tracking id",
                order_id=request.order_id,
                status_code=response.status_code,
            )
            raise DeliveryNetworkUnavailable(f"Delivery network returned no tracking id: {response.text[:200]}")

        courier = body.get("courier")
        return DispatchResult(
            tracking_id=str(body["tracking_id"]),
            courier=str(courier) if courier is not None else None,
        )
