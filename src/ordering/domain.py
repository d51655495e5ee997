"""Ordering bounded context — supplier carts, checkout pricing and order fulfillment.

Carts (CQRS) are priced and converted into event-sourced Orders at checkout.
Orders move through a guarded lifecycle whose side effects (courier
dispatch, stock release, invoicing) are driven by event handlers so that a
slow downstream system never rolls back a committed status change.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
