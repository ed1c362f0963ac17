"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands. Field names travel as camelCase on the wire;
Razorpay's own callback fields keep their snake_case names.
"""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------
class Envelope(CamelModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T | None = None


class StatusResponse(CamelModel):
    success: bool = True
    message: str


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(CamelModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    company: str | None = None
    address_line1: str = Field(min_length=1)
    address_line2: str | None = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)
    country: str = "India"
    phone: str = Field(min_length=1)


class PaymentMethodSchema(CamelModel):
    type: str


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(CamelModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = 1

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"examples": [{"productId": "prod-001", "variantId": None, "quantity": 2}]},
    )


class UpdateCartItemRequest(CamelModel):
    quantity: int
    variant_id: str | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(CamelModel):
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    payment_method: str | PaymentMethodSchema
    notes: str | None = None

    @property
    def payment_type(self) -> str:
        if isinstance(self.payment_method, PaymentMethodSchema):
            return self.payment_method.type
        return self.payment_method


class TrackingSchema(CamelModel):
    carrier: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    estimated_delivery: datetime | None = None


class PaymentUpdateSchema(CamelModel):
    status: str | None = None
    transaction_id: str | None = None


class UpdateOrderRequest(CamelModel):
    status: str | None = None
    note: str | None = None
    strict: bool = False
    tracking: TrackingSchema | None = None
    payment: PaymentUpdateSchema | None = None


class CancelOrderRequest(CamelModel):
    reason: str | None = None


class RefundOrderRequest(CamelModel):
    amount: float | None = Field(default=None, gt=0)
    reason: str | None = None


# ---------------------------------------------------------------------------
# Payment Request Schemas
# ---------------------------------------------------------------------------
class CreatePaymentOrderRequest(CamelModel):
    amount: float | None = Field(default=None, gt=0)
    currency: str | None = None
    order_id: str | None = None


class VerifyPaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
    order_id: str | None = Field(default=None, alias="orderId")


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartItemResponse(CamelModel):
    id: str
    product_id: str
    variant_id: str | None = None
    quantity: int
    unit_price: float
    line_total: float
    added_at: datetime | None = None


class CartResponse(CamelModel):
    id: str
    user_id: str
    items: list[CartItemResponse]
    item_count: int
    subtotal: float
    tax: float
    shipping: float
    discount: float
    total: float
    currency: str
    expires_at: datetime | None = None
    updated_at: datetime | None = None


class OrderItemResponse(CamelModel):
    product_id: str
    variant_id: str | None = None
    name: str
    sku: str | None = None
    quantity: int
    unit_price: float
    line_total: float
    image: str | None = None


class PaymentResponse(CamelModel):
    method: str
    status: str
    gateway: str | None = None
    transaction_id: str | None = None
    gateway_order_id: str | None = None
    paid_at: datetime | None = None
    refunded_at: datetime | None = None
    refund_amount: float = 0.0


class PricingResponse(CamelModel):
    subtotal: float
    tax: float
    shipping: float
    discount: float
    total: float
    currency: str


class TrackingResponse(CamelModel):
    carrier: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    estimated_delivery: datetime | None = None
    delivered_at: datetime | None = None


class TimelineEntryResponse(CamelModel):
    status: str
    timestamp: datetime
    note: str | None = None
    updated_by: str | None = None


class OrderResponse(CamelModel):
    id: str
    order_number: str
    user_id: str
    status: str
    items: list[OrderItemResponse]
    shipping_address: AddressSchema
    billing_address: AddressSchema
    payment: PaymentResponse
    pricing: PricingResponse
    tracking: TrackingResponse
    timeline: list[TimelineEntryResponse]
    notes: str | None = None
    cancellation_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PaginationResponse(CamelModel):
    page: int
    limit: int
    total_pages: int
    total_orders: int
    has_more: bool


class OrderListResponse(CamelModel):
    success: bool = True
    data: list[OrderResponse]
    pagination: PaginationResponse
    total_revenue: float | None = None


class OrderStatsResponse(CamelModel):
    total_orders: int
    total_revenue: float
    recent_orders: int
    order_change: int
    revenue_change: int
    orders_by_status: dict[str, int]


class GatewayOrderResponse(CamelModel):
    id: str
    amount: int
    currency: str
    receipt: str | None = None
    key_id: str | None = None


class VerifyPaymentResponse(CamelModel):
    verified: bool = True
    applied: bool
    order_id: str | None = None


class WebhookAckResponse(CamelModel):
    received: bool = True
    outcome: str
