"""FastAPI routes for the Ordering domain — carts, checkout, orders, invoices
and courier callbacks.

The acting role for status changes comes from the ``X-Acting-Role`` header;
authenticating that role is the gateway's job.
"""

from fastapi import APIRouter, Header, Response
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AddToCartRequest,
    BoardRowResponse,
    CartIdResponse,
    CartLineResponse,
    CartResponse,
    CheckoutRequest,
    CourierWebhookRequest,
    DispatchResponse,
    InvoiceRefResponse,
    InvoiceResponse,
    ManualDispatchRequest,
    OrderIdResponse,
    OrderLineResponse,
    OrderResponse,
    PricingSchema,
    RecordPaymentRequest,
    RetryDispatchesRequest,
    RetryDispatchesResponse,
    SendInvoiceRequest,
    SendInvoiceResponse,
    SetCartItemQuantityRequest,
    StatusResponse,
    TransitionRequest,
    TransitionResponse,
)
from ordering.cart.cart import Cart
from ordering.cart.items import AddToCart, RemoveFromCart, SetCartItemQuantity
from ordering.cart.management import AbandonCart
from ordering.catalog import get_catalog
from ordering.checkout.checkout import checkout
from ordering.dispatch.retry import RetryDueDispatches
from ordering.invoice.emailing import SendInvoiceEmail
from ordering.invoice.generation import ensure_invoice
from ordering.invoice.invoice import Invoice
from ordering.invoice.rendering import artifact_filename, render_invoice
from ordering.order.dispatch_tracking import RecordManualDispatch
from ordering.order.lifecycle import transition_order
from ordering.order.order import ActingRole, Order, OrderStatus
from ordering.order.payment import record_payment
from ordering.pricing.calculator import amount_to_free_delivery, amount_to_minimum
from ordering.projections.order_board import board_for_supplier
from ordering.utils.locks import process_for_order

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


def _cart_response(cart) -> CartResponse:
    terms = get_catalog().get_delivery_terms(cart.supplier_id)
    subtotal = cart.subtotal_money()
    to_free_delivery = amount_to_free_delivery(subtotal, terms)
    return CartResponse(
        cart_id=str(cart.id),
        buyer_id=str(cart.buyer_id),
        supplier_id=str(cart.supplier_id),
        status=cart.status,
        currency=cart.currency,
        lines=[
            CartLineResponse(
                product_id=str(line.product_id),
                name=line.name,
                unit_price=line.unit_price,
                quantity=line.quantity,
                line_total=line.unit_price * line.quantity,
            )
            for line in cart.lines
        ],
        subtotal=cart.subtotal,
        amount_to_minimum=amount_to_minimum(subtotal, terms).amount,
        amount_to_free_delivery=to_free_delivery.amount if to_free_delivery is not None else None,
    )


@cart_router.post("/items", response_model=CartIdResponse)
async def add_to_cart(body: AddToCartRequest) -> CartIdResponse:
    command = AddToCart(
        buyer_id=body.buyer_id,
        supplier_id=body.supplier_id,
        product_id=body.product_id,
        quantity=body.quantity,
    )
    result = current_domain.process(command, asynchronous=False)
    return CartIdResponse(cart_id=result)


@cart_router.get("/{cart_id}", response_model=CartResponse)
async def get_cart(cart_id: str) -> CartResponse:
    cart = current_domain.repository_for(Cart).get(cart_id)
    return _cart_response(cart)


@cart_router.put("/{cart_id}/items/{product_id}", response_model=StatusResponse)
async def set_cart_item_quantity(cart_id: str, product_id: str, body: SetCartItemQuantityRequest) -> StatusResponse:
    command = SetCartItemQuantity(
        cart_id=cart_id,
        product_id=product_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_id}/items/{product_id}", response_model=StatusResponse)
async def remove_cart_item(cart_id: str, product_id: str) -> StatusResponse:
    command = RemoveFromCart(cart_id=cart_id, product_id=product_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.put("/{cart_id}/abandon", response_model=StatusResponse)
async def abandon_cart(cart_id: str) -> StatusResponse:
    current_domain.process(AbandonCart(cart_id=cart_id), asynchronous=False)
    return StatusResponse()


@cart_router.post("/{cart_id}/checkout", status_code=201, response_model=OrderIdResponse)
async def checkout_cart(cart_id: str, body: CheckoutRequest) -> OrderIdResponse:
    """Turn the cart into an order priced from the cart's current contents."""
    order_id = checkout(
        cart_id=cart_id,
        buyer_id=body.buyer_id,
        delivery_date=body.delivery_date,
        delivery_slot=body.delivery_slot,
        urgency=body.urgency,
        special_instructions=body.special_instructions,
        delivery_address=body.delivery_address.model_dump(exclude_none=True),
        customer_contact=body.customer_contact.model_dump(exclude_none=True),
        payment_method=body.payment_method,
    )
    return OrderIdResponse(order_id=order_id)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


def _order_response(order) -> OrderResponse:
    dispatch = order.dispatch()
    invoice = order.invoice()
    return OrderResponse(
        order_id=str(order.id),
        buyer_id=str(order.buyer_id),
        supplier_id=str(order.supplier_id),
        status=order.status,
        revision=order.revision,
        items=[
            OrderLineResponse(
                product_id=str(item.product_id),
                name=item.name,
                unit_price=item.unit_price,
                quantity=item.quantity,
                line_total=item.line_total(),
            )
            for item in order.items
        ],
        pricing=PricingSchema(
            subtotal=order.pricing.subtotal,
            delivery_fee=order.pricing.delivery_fee,
            urgency_surcharge=order.pricing.urgency_surcharge,
            total=order.pricing.total,
            currency=order.pricing.currency,
        ),
        urgency=order.urgency,
        delivery_date=order.delivery_date,
        delivery_slot=order.delivery_slot,
        special_instructions=order.special_instructions,
        payment_status=order.payment_status,
        dispatch=(
            DispatchResponse(
                tracking_id=dispatch.tracking_id,
                courier=dispatch.courier,
                requested_at=dispatch.requested_at,
            )
            if dispatch
            else None
        ),
        dispatch_pending=bool(order.dispatch_pending),
        manual_dispatch_required=bool(order.manual_dispatch_required),
        invoice=(
            InvoiceRefResponse(invoice_id=invoice.invoice_id, invoice_number=invoice.invoice_number)
            if invoice
            else None
        ),
        cancellation_reason=order.cancellation_reason,
        refund_eligible=bool(order.refund_eligible),
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return _order_response(order)


@order_router.post("/{order_id}/status", response_model=TransitionResponse)
async def change_order_status(
    order_id: str,
    body: TransitionRequest,
    x_acting_role: ActingRole = Header(),
) -> TransitionResponse:
    changed = transition_order(
        order_id,
        target_status=body.target_status,
        acting_role=x_acting_role.value,
        reason_code=body.reason_code,
        expected_revision=body.expected_revision,
    )
    order = current_domain.repository_for(Order).get(order_id)
    return TransitionResponse(order_id=order_id, status=order.status, changed=changed, revision=order.revision)


@order_router.put("/{order_id}/payment", response_model=StatusResponse)
async def record_order_payment(order_id: str, body: RecordPaymentRequest) -> StatusResponse:
    record_payment(order_id, body.payment_status, body.payment_method)
    return StatusResponse()


@order_router.post("/{order_id}/dispatch", response_model=StatusResponse)
async def record_manual_dispatch(order_id: str, body: ManualDispatchRequest) -> StatusResponse:
    """Record a courier booked by hand after automatic dispatch gave up."""
    command = RecordManualDispatch(
        order_id=order_id,
        tracking_id=body.tracking_id,
        courier=body.courier,
    )
    process_for_order(order_id, command)
    return StatusResponse()


@order_router.post("/{order_id}/invoice", status_code=201, response_model=InvoiceRefResponse)
async def generate_invoice(order_id: str) -> InvoiceRefResponse:
    invoice_id = ensure_invoice(order_id)
    invoice = current_domain.repository_for(Invoice).get(invoice_id)
    return InvoiceRefResponse(invoice_id=invoice_id, invoice_number=invoice.invoice_number)


# ---------------------------------------------------------------------------
# Supplier Router
# ---------------------------------------------------------------------------
supplier_router = APIRouter(prefix="/suppliers", tags=["suppliers"])


@supplier_router.get("/{supplier_id}/orders", response_model=list[BoardRowResponse])
async def supplier_orders(supplier_id: str, status: str | None = None) -> list[BoardRowResponse]:
    return [
        BoardRowResponse(
            order_id=str(row.order_id),
            buyer_id=str(row.buyer_id),
            status=row.status,
            total=row.total,
            currency=row.currency,
            delivery_date=row.delivery_date,
            delivery_slot=row.delivery_slot,
            urgency=row.urgency,
            payment_status=row.payment_status,
            dispatch_pending=bool(row.dispatch_pending),
            manual_dispatch_required=bool(row.manual_dispatch_required),
            tracking_id=row.tracking_id,
            invoice_number=row.invoice_number,
        )
        for row in board_for_supplier(supplier_id, status)
    ]


# ---------------------------------------------------------------------------
# Invoice Router
# ---------------------------------------------------------------------------
invoice_router = APIRouter(prefix="/invoices", tags=["invoices"])


def _invoice_response(invoice) -> InvoiceResponse:
    return InvoiceResponse(
        invoice_id=str(invoice.id),
        invoice_number=invoice.invoice_number,
        order_id=str(invoice.order_id),
        total=invoice.total,
        currency=invoice.currency,
        email_sent=bool(invoice.email_sent),
        email_send_count=invoice.email_send_count,
    )


@invoice_router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: str) -> InvoiceResponse:
    return _invoice_response(current_domain.repository_for(Invoice).get(invoice_id))


@invoice_router.get("/{invoice_id}/document")
async def download_invoice(invoice_id: str) -> Response:
    invoice = current_domain.repository_for(Invoice).get(invoice_id)
    return Response(
        content=render_invoice(invoice),
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{artifact_filename(invoice)}"'},
    )


@invoice_router.post("/{invoice_id}/email", response_model=SendInvoiceResponse)
async def send_invoice(invoice_id: str, body: SendInvoiceRequest) -> SendInvoiceResponse:
    sent = current_domain.process(
        SendInvoiceEmail(invoice_id=invoice_id, recipient=body.recipient),
        asynchronous=False,
    )
    invoice = current_domain.repository_for(Invoice).get(invoice_id)
    return SendInvoiceResponse(
        sent=bool(sent),
        email_sent=bool(invoice.email_sent),
        email_send_count=invoice.email_send_count,
    )


# ---------------------------------------------------------------------------
# Dispatch Router
# ---------------------------------------------------------------------------
dispatch_router = APIRouter(prefix="/dispatch", tags=["dispatch"])

_COURIER_EVENTS = {
    "picked_up": OrderStatus.IN_TRANSIT,
    "delivered": OrderStatus.DELIVERED,
}


@dispatch_router.post("/webhooks/courier", response_model=TransitionResponse)
async def courier_webhook(body: CourierWebhookRequest) -> TransitionResponse:
    """Courier status callback. Pickup and delivery are system transitions."""
    target = _COURIER_EVENTS.get(body.event)
    if target is None:
        raise ValidationError({"event": [f"Unknown courier event: {body.event}"]})

    order = current_domain.repository_for(Order).get(body.order_id)
    if order.dispatch_tracking_id != body.tracking_id:
        raise ValidationError({"tracking_id": [f"Tracking id {body.tracking_id} does not belong to this order"]})

    changed = transition_order(body.order_id, target_status=target, acting_role=ActingRole.SYSTEM)
    order = current_domain.repository_for(Order).get(body.order_id)
    return TransitionResponse(order_id=body.order_id, status=order.status, changed=changed, revision=order.revision)


@dispatch_router.post("/retries", response_model=RetryDispatchesResponse)
async def retry_due_dispatches(body: RetryDispatchesRequest) -> RetryDispatchesResponse:
    attempted = current_domain.process(RetryDueDispatches(as_of=body.as_of), asynchronous=False)
    return RetryDispatchesResponse(attempted=attempted)
