"""Delivery network adapter factory.

Uses FakeDeliveryNetwork by default. In production set
DELIVERY_NETWORK_ADAPTER=http together with DELIVERY_NETWORK_URL and
DELIVERY_NETWORK_API_KEY.
"""

import os

from ordering.network.port import DeliveryNetworkPort

_current_network: DeliveryNetworkPort | None = None


def get_network() -> DeliveryNetworkPort:
    """Return the configured delivery network adapter (singleton)."""
    global _current_network
    if _current_network is None:
        adapter = os.environ.get("DELIVERY_NETWORK_ADAPTER", "fake")
        if adapter == "fake":
            from ordering.network.fake_adapter import FakeDeliveryNetwork

            _current_network = FakeDeliveryNetwork()
        elif adapter == "http":
            from ordering.network.http_adapter import HttpDeliveryNetwork

            _current_network = HttpDeliveryNetwork(
                base_url=os.environ["DELIVERY_NETWORK_URL"],
                api_key=os.environ.get("DELIVERY_NETWORK_API_KEY"),
            )
        else:
            raise ValueError(f"Unknown delivery network adapter: {adapter}")
    return _current_network


def set_network(network: DeliveryNetworkPort) -> None:
    """Override the active delivery network (useful for tests)."""
    global _current_network
    _current_network = network


def reset_network() -> None:
    """Reset the delivery network singleton (useful for testing)."""
    global _current_network
    _current_network = None
