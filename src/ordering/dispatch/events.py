"""Domain events for the DispatchRequest aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="DispatchRequest")
class DispatchRequested:
    """A courier pickup was requested for an order that became ready."""

    __version__ = 1

    dispatch_id = Identifier(required=True)
    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    weight_class = String(required=True)
    urgency = String(required=True)
    requested_at = DateTime(required=True)


@ordering.event(part_of="DispatchRequest")
class DispatchAssigned:
    """The delivery network accepted the pickup."""

    __version__ = 1

    dispatch_id = Identifier(required=True)
    order_id = Identifier(required=True)
    tracking_id = String(required=True)
    courier = String()
    attempts = Integer(required=True)
    requested_at = DateTime(required=True)
    assigned_at = DateTime(required=True)


@ordering.event(part_of="DispatchRequest")
class DispatchAttemptFailed:
    """An attempt failed; another one is scheduled."""

    __version__ = 1

    dispatch_id = Identifier(required=True)
    order_id = Identifier(required=True)
    attempts = Integer(required=True)
    error = String(max_length=500)
    next_attempt_at = DateTime(required=True)


@ordering.event(part_of="DispatchRequest")
class DispatchFailed:
    """All attempts failed; a person has to arrange the pickup."""

    __version__ = 1

    dispatch_id = Identifier(required=True)
    order_id = Identifier(required=True)
    attempts = Integer(required=True)
    error = String(max_length=500)
    failed_at = DateTime(required=True)


@ordering.event(part_of="DispatchRequest")
class DispatchAborted:
    """Retries stopped because the order moved on without a courier."""

    __version__ = 1

    dispatch_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(max_length=255)
    aborted_at = DateTime(required=True)
