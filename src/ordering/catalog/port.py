"""Catalog port — read access to supplier products and delivery terms, plus stock reservations.

The supplier catalogue is owned elsewhere. Ordering only reads product
prices, stock and delivery terms, and asks the catalogue to hold or release
stock for an order.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ordering.pricing.calculator import DeliveryTerms
from ordering.pricing.money import Money


@dataclass(frozen=True)
class ProductInfo:
    """Snapshot of a catalogue product at the moment it was read."""

    product_id: str
    supplier_id: str
    name: str
    unit_price: Money
    stock: int
    minimum_quantity: int = 1
    weight_grams: int = 0


class CatalogPort(ABC):
    """Abstract interface for catalogue adapters."""

    @abstractmethod
    def get_product(self, product_id: str) -> ProductInfo:
        """Return the product, or raise ObjectNotFoundError."""
        ...

    @abstractmethod
    def get_delivery_terms(self, supplier_id: str) -> DeliveryTerms:
        """Return the supplier's delivery terms, or raise ObjectNotFoundError."""
        ...

    @abstractmethod
    def reserve_stock(self, order_id: str, quantities: dict[str, int]) -> None:
        """Hold stock for an order. Raises QuantityExceedsStock when any product is short.

        Reserving twice for the same order is a no-op.
        """
        ...

    @abstractmethod
    def release_reservation(self, order_id: str) -> bool:
        """Return held stock to the shelf. Returns False when nothing was held."""
        ...

    @abstractmethod
    def settle_reservation(self, order_id: str) -> bool:
        """Mark held stock as shipped: it leaves the reservation book without going back on the shelf.

        Returns False when nothing was held.
        """
        ...
