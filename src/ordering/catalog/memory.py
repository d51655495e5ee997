"""In-memory catalogue — products and delivery terms registered at runtime.

Used in development and tests, and as the default adapter until the
catalogue service is wired in.
"""

import threading
from dataclasses import replace

import structlog
from protean.exceptions import ObjectNotFoundError

from ordering.catalog.port import CatalogPort, ProductInfo
from ordering.exceptions import QuantityExceedsStock
from ordering.pricing.calculator import DeliveryTerms

logger = structlog.get_logger(__name__)


class InMemoryCatalog(CatalogPort):
    def __init__(self):
        self._lock = threading.Lock()
        self.products: dict[str, ProductInfo] = {}
        self.terms: dict[str, DeliveryTerms] = {}
        self.reservations: dict[str, dict[str, int]] = {}

    def register_product(self, product: ProductInfo) -> ProductInfo:
        with self._lock:
            self.products[str(product.product_id)] = product
        return product

    def set_delivery_terms(self, supplier_id: str, terms: DeliveryTerms) -> DeliveryTerms:
        with self._lock:
            self.terms[str(supplier_id)] = terms
        return terms

    def update_product(self, product_id: str, **changes) -> ProductInfo:
        """Replace fields of a registered product, e.g. a price change or restock."""
        with self._lock:
            product = replace(self.products[str(product_id)], **changes)
            self.products[str(product_id)] = product
        return product

    def get_product(self, product_id: str) -> ProductInfo:
        try:
            return self.products[str(product_id)]
        except KeyError:
            raise ObjectNotFoundError(f"Product {product_id} does not exist in the catalogue")

    def get_delivery_terms(self, supplier_id: str) -> DeliveryTerms:
        try:
            return self.terms[str(supplier_id)]
        except KeyError:
            raise ObjectNotFoundError(f"Supplier {supplier_id} has no delivery terms")

    def reserve_stock(self, order_id: str, quantities: dict[str, int]) -> None:
        with self._lock:
            if str(order_id) in self.reservations:
                return

            for product_id, quantity in quantities.items():
                product = self.products.get(str(product_id))
                available = product.stock if product else 0
                if quantity > available:
                    raise QuantityExceedsStock(product_id, quantity, available)

            for product_id, quantity in quantities.items():
                product = self.products[str(product_id)]
                self.products[str(product_id)] = _with_stock(product, product.stock - quantity)

            self.reservations[str(order_id)] = dict(quantities)

        logger.info("Stock reserved", order_id=str(order_id), products=len(quantities))

    def release_reservation(self, order_id: str) -> bool:
        with self._lock:
            held = self.reservations.pop(str(order_id), None)
            if held is None:
                return False
            for product_id, quantity in held.items():
                product = self.products.get(str(product_id))
                if product is not None:
                    self.products[str(product_id)] = _with_stock(product, product.stock + quantity)

        logger.info("Stock reservation released", order_id=str(order_id))
        return True

    def settle_reservation(self, order_id: str) -> bool:
        with self._lock:
            held = self.reservations.pop(str(order_id), None)
        if held is None:
            return False

        logger.info("Stock reservation settled", order_id=str(order_id), products=len(held))
        return True

    def reset(self):
        with self._lock:
            self.products.clear()
            self.terms.clear()
            self.reservations.clear()


def _with_stock(product: ProductInfo, stock: int) -> ProductInfo:
    return replace(product, stock=stock)
