"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands. Amounts are integers in minor units.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    street: str
    city: str
    postal_code: str
    country: str
    notes: str | None = None


class ContactSchema(BaseModel):
    name: str
    email: str
    phone: str | None = None


class PricingSchema(BaseModel):
    subtotal: int
    delivery_fee: int
    urgency_surcharge: int
    total: int
    currency: str


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    buyer_id: str
    supplier_id: str
    product_id: str
    quantity: int = 1

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "buyer_id": "buyer-001",
                    "supplier_id": "sup-001",
                    "product_id": "prod-flour-25kg",
                    "quantity": 2,
                }
            ]
        }
    }


class SetCartItemQuantityRequest(BaseModel):
    quantity: int = Field(ge=0)


class CheckoutRequest(BaseModel):
    buyer_id: str
    delivery_date: date
    delivery_slot: str
    urgency: str = "normal"
    special_instructions: str | None = Field(default=None, max_length=500)
    delivery_address: AddressSchema
    customer_contact: ContactSchema
    payment_method: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "buyer_id": "buyer-001",
                    "delivery_date": "2026-03-02",
                    "delivery_slot": "09:00-10:00",
                    "urgency": "urgent",
                    "special_instructions": "Back door, ring twice",
                    "delivery_address": {
                        "street": "Carrer de Mallorca 120",
                        "city": "Barcelona",
                        "postal_code": "08036",
                        "country": "ES",
                    },
                    "customer_contact": {
                        "name": "Restaurante Sol",
                        "email": "compras@sol.example.com",
                        "phone": "+34 600 000 000",
                    },
                    "payment_method": "card",
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class TransitionRequest(BaseModel):
    target_status: str
    reason_code: str | None = None
    expected_revision: int | None = None


class RecordPaymentRequest(BaseModel):
    payment_status: str
    payment_method: str | None = None


class ManualDispatchRequest(BaseModel):
    tracking_id: str
    courier: str


class SendInvoiceRequest(BaseModel):
    recipient: str | None = None


class CourierWebhookRequest(BaseModel):
    order_id: str
    tracking_id: str
    event: str  # "picked_up" or "delivered"


class RetryDispatchesRequest(BaseModel):
    as_of: datetime | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class CartIdResponse(BaseModel):
    cart_id: str


class OrderIdResponse(BaseModel):
    order_id: str


class CartLineResponse(BaseModel):
    product_id: str
    name: str
    unit_price: int
    quantity: int
    line_total: int


class CartResponse(BaseModel):
    cart_id: str
    buyer_id: str
    supplier_id: str
    status: str
    currency: str
    lines: list[CartLineResponse]
    subtotal: int
    amount_to_minimum: int | None = None
    amount_to_free_delivery: int | None = None


class OrderLineResponse(BaseModel):
    product_id: str
    name: str
    unit_price: int
    quantity: int
    line_total: int


class DispatchResponse(BaseModel):
    tracking_id: str
    courier: str | None = None
    requested_at: datetime | None = None


class InvoiceRefResponse(BaseModel):
    invoice_id: str
    invoice_number: str


class OrderResponse(BaseModel):
    order_id: str
    buyer_id: str
    supplier_id: str
    status: str
    revision: int
    items: list[OrderLineResponse]
    pricing: PricingSchema
    urgency: str
    delivery_date: date | None = None
    delivery_slot: str | None = None
    special_instructions: str | None = None
    payment_status: str
    dispatch: DispatchResponse | None = None
    dispatch_pending: bool = False
    manual_dispatch_required: bool = False
    invoice: InvoiceRefResponse | None = None
    cancellation_reason: str | None = None
    refund_eligible: bool = False


class TransitionResponse(BaseModel):
    order_id: str
    status: str
    changed: bool
    revision: int


class InvoiceResponse(BaseModel):
    invoice_id: str
    invoice_number: str
    order_id: str
    total: int
    currency: str
    email_sent: bool
    email_send_count: int


class SendInvoiceResponse(BaseModel):
    sent: bool
    email_sent: bool
    email_send_count: int


class BoardRowResponse(BaseModel):
    order_id: str
    buyer_id: str
    status: str
    total: int
    currency: str
    delivery_date: date | None = None
    delivery_slot: str | None = None
    urgency: str | None = None
    payment_status: str | None = None
    dispatch_pending: bool = False
    manual_dispatch_required: bool = False
    tracking_id: str | None = None
    invoice_number: str | None = None


class RetryDispatchesResponse(BaseModel):
    attempted: int
