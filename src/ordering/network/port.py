"""Delivery network port — abstract interface for booking a courier pickup.

Adapters raise DeliveryNetworkUnavailable for timeouts, connection failures
and rejected requests alike; the Dispatch Coordinator treats them all as a
failed attempt and schedules a retry.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class CourierRequest:
    """What the courier needs to know to collect and deliver an order."""

    order_id: str
    supplier_id: str
    delivery_address: dict
    weight_class: str
    urgency: str
    delivery_date: date | None = None
    delivery_slot: str | None = None
    special_instructions: str | None = None

    def to_payload(self) -> dict:
        return {
            "reference": self.order_id,
            "supplier_id": self.supplier_id,
            "delivery_address": self.delivery_address,
            "weight_class": self.weight_class,
            "urgency": self.urgency,
            "delivery_date": self.delivery_date.isoformat() if self.delivery_date else None,
            "delivery_slot": self.delivery_slot,
            "special_instructions": self.special_instructions,
        }


@dataclass(frozen=True)
class DispatchResult:
    """A courier accepted the pickup."""

    tracking_id: str
    courier: str | None = None


class DeliveryNetworkPort(ABC):
    """Abstract delivery network interface."""

    @abstractmethod
    def request_courier(self, request: CourierRequest, timeout: float) -> DispatchResult:
        """Book a courier within ``timeout`` seconds.

        Raises:
            DeliveryNetworkUnavailable: the network did not accept the request.
        """
        ...
