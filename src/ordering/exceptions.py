"""Error taxonomy for the ordering domain.

Validation errors are caller-correctable and carry a field-keyed message dict
like every other ``ValidationError``. State errors mean the request was
well-formed but the aggregate is not in a state that permits it. Integration
errors come from external collaborators; they are retried internally and
reach callers only as degraded flags on the order or invoice.
"""

from protean.exceptions import InvalidOperationError, ValidationError


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
class BelowMinimumOrder(ValidationError):
    def __init__(self, subtotal, minimum_order):
        self.subtotal = subtotal
        self.minimum_order = minimum_order
        super().__init__(
            {"subtotal": [f"Subtotal {subtotal.format()} is below the supplier minimum of {minimum_order.format()}"]}
        )


class QuantityExceedsStock(ValidationError):
    def __init__(self, product_id, requested, available):
        self.product_id = str(product_id)
        self.requested = requested
        self.available = available
        super().__init__({"quantity": [f"Only {available} units of {product_id} in stock, {requested} requested"]})


class QuantityBelowMinimum(ValidationError):
    def __init__(self, product_id, requested, minimum):
        self.product_id = str(product_id)
        self.requested = requested
        self.minimum = minimum
        super().__init__({"quantity": [f"Product {product_id} must be ordered in at least {minimum} units"]})


class PaymentNotCompleted(ValidationError):
    def __init__(self, order_id, payment_status):
        self.order_id = str(order_id)
        self.payment_status = payment_status
        super().__init__({"payment_status": [f"Order {order_id} payment is {payment_status}, not completed"]})


class DeliveryDateUnavailable(ValidationError):
    def __init__(self, delivery_date, reason):
        self.delivery_date = delivery_date
        super().__init__({"delivery_date": [f"{delivery_date.isoformat()} is not available: {reason}"]})


class CurrencyMismatch(ValidationError):
    def __init__(self, left, right):
        super().__init__({"currency": [f"Cannot combine amounts in {left} and {right}"]})


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------
class StateError(InvalidOperationError):
    """Base for requests rejected because of the aggregate's current state."""


class InvalidTransition(StateError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition order from {current} to {target}")


class Unauthorized(StateError):
    def __init__(self, role, current, target):
        self.role = role
        self.current = current
        self.target = target
        super().__init__(f"Role {role} may not move an order from {current} to {target}")


class ConcurrentModification(StateError):
    def __init__(self, order_id, expected, actual):
        self.order_id = str(order_id)
        self.expected = expected
        self.actual = actual
        super().__init__(f"Order {order_id} is at revision {actual}, expected {expected}")


# ---------------------------------------------------------------------------
# Integration
# ---------------------------------------------------------------------------
class IntegrationError(Exception):
    """Raised by adapters when an external collaborator fails or times out."""


class DeliveryNetworkUnavailable(IntegrationError):
    pass


class MailDeliveryFailed(IntegrationError):
    pass


class CatalogUnavailable(IntegrationError):
    pass
