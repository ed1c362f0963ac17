"""FastAPI routes for the Ordering domain: cart, orders and payments."""

import json
import math
import re

from fastapi import APIRouter, Depends, Header, Query, Request
from protean.utils.globals import current_domain

from ordering.api.dependencies import admin_user, current_user
from ordering.api.schemas import (
    AddToCartRequest,
    CartResponse,
    CreatePaymentOrderRequest,
    Envelope,
    GatewayOrderResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatsResponse,
    PaginationResponse,
    PlaceOrderRequest,
    RefundOrderRequest,
    UpdateCartItemRequest,
    UpdateOrderRequest,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
    WebhookAckResponse,
)
from ordering.api.serializers import cart_response, order_response
from ordering.cart.cart import ShoppingCart
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from ordering.cart.management import ClearCart, OpenCart
from ordering.directory.port import UserRecord
from ordering.errors import NotFoundError
from ordering.order.cancellation import CancelOrder, RefundOrder
from ordering.order.creation import PlaceOrder
from ordering.order.management import UpdateOrderStatus, UpdatePaymentDetails, UpdateTracking
from ordering.order.order import Order
from ordering.order.reporting import order_summary
from ordering.payment.initiation import CreateGatewayOrder
from ordering.payment.reconciliation import verify_and_apply
from ordering.payment.webhook import process_webhook


def _load_cart(cart_id) -> ShoppingCart:
    return current_domain.repository_for(ShoppingCart).get(cart_id)


def _cart_envelope(cart_id, message=None) -> Envelope[CartResponse]:
    return Envelope[CartResponse](message=message, data=cart_response(_load_cart(cart_id)))


def _visible_order(order_id, user: UserRecord) -> Order:
    """Load an order the user may see; other users' orders look missing."""
    order = current_domain.repository_for(Order).get(order_id)
    if not user.is_admin and not order.is_owned_by(user.id):
        raise NotFoundError("Order not found")
    return order


def _snake_case(value: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", value).lower()


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=Envelope[CartResponse])
async def get_cart(user: UserRecord = Depends(current_user)):
    cart_id = current_domain.process(OpenCart(customer_id=user.id), asynchronous=False)
    return _cart_envelope(cart_id)


@cart_router.post("", response_model=Envelope[CartResponse])
async def add_to_cart(body: AddToCartRequest, user: UserRecord = Depends(current_user)):
    command = AddToCart(
        customer_id=user.id,
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    cart_id = current_domain.process(command, asynchronous=False)
    return _cart_envelope(cart_id, "Item added to cart")


@cart_router.put("/{product_id}", response_model=Envelope[CartResponse])
async def update_cart_item(product_id: str, body: UpdateCartItemRequest, user: UserRecord = Depends(current_user)):
    command = UpdateCartQuantity(
        customer_id=user.id,
        product_id=product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    cart_id = current_domain.process(command, asynchronous=False)
    return _cart_envelope(cart_id, "Cart updated")


@cart_router.delete("/{product_id}", response_model=Envelope[CartResponse])
async def remove_cart_item(
    product_id: str,
    variant_id: str | None = Query(default=None, alias="variantId"),
    user: UserRecord = Depends(current_user),
):
    command = RemoveFromCart(customer_id=user.id, product_id=product_id, variant_id=variant_id)
    cart_id = current_domain.process(command, asynchronous=False)
    return _cart_envelope(cart_id, "Item removed from cart")


@cart_router.delete("", response_model=Envelope[CartResponse])
async def clear_cart(user: UserRecord = Depends(current_user)):
    current_domain.process(ClearCart(customer_id=user.id), asynchronous=False)
    cart_id = current_domain.process(OpenCart(customer_id=user.id), asynchronous=False)
    return _cart_envelope(cart_id, "Cart cleared")


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = None,
    status: str | None = None,
    sort_by: str = Query(default="createdAt", alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder"),
    user: UserRecord = Depends(current_user),
):
    """Admins see every order (with search and status filters); customers see their own."""
    repo = current_domain.repository_for(Order)
    if user.is_admin:
        orders = repo.matching(
            status=status,
            search=search,
            sort_by=_snake_case(sort_by),
            descending=sort_order != "asc",
        )
    else:
        orders = repo.matching(customer_id=user.id, sort_by=_snake_case(sort_by), descending=sort_order != "asc")

    total = len(orders)
    total_pages = math.ceil(total / limit) if total else 0
    page_items = orders[(page - 1) * limit : page * limit]

    return OrderListResponse(
        data=[order_response(order) for order in page_items],
        pagination=PaginationResponse(
            page=page,
            limit=limit,
            total_pages=total_pages,
            total_orders=total,
            has_more=page < total_pages,
        ),
        total_revenue=round(sum(o.pricing.total for o in orders), 2) if user.is_admin else None,
    )


@order_router.get("/stats/summary", response_model=Envelope[OrderStatsResponse])
async def order_stats(user: UserRecord = Depends(admin_user)):
    return Envelope[OrderStatsResponse](data=OrderStatsResponse(**order_summary()))


@order_router.get("/{order_id}", response_model=Envelope[OrderResponse])
async def get_order(order_id: str, user: UserRecord = Depends(current_user)):
    return Envelope[OrderResponse](data=order_response(_visible_order(order_id, user)))


@order_router.post("", status_code=201, response_model=Envelope[OrderResponse])
async def place_order(body: PlaceOrderRequest, user: UserRecord = Depends(current_user)):
    command = PlaceOrder(
        customer_id=user.id,
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        billing_address=json.dumps(body.billing_address.model_dump()) if body.billing_address else None,
        payment_method=body.payment_type,
        notes=body.notes,
    )
    order_id = current_domain.process(command, asynchronous=False)
    order = current_domain.repository_for(Order).get(order_id)
    return Envelope[OrderResponse](message="Order created successfully", data=order_response(order))


@order_router.put("/{order_id}", response_model=Envelope[OrderResponse])
async def update_order(order_id: str, body: UpdateOrderRequest, user: UserRecord = Depends(admin_user)):
    """Admin update of status, tracking and payment details."""
    current_domain.repository_for(Order).get(order_id)

    if body.status:
        current_domain.process(
            UpdateOrderStatus(
                order_id=order_id,
                status=body.status,
                note=body.note,
                updated_by=user.id,
                strict=body.strict,
            ),
            asynchronous=False,
        )
    if body.tracking:
        current_domain.process(
            UpdateTracking(
                order_id=order_id,
                carrier=body.tracking.carrier,
                tracking_number=body.tracking.tracking_number,
                tracking_url=body.tracking.tracking_url,
                estimated_delivery=body.tracking.estimated_delivery,
            ),
            asynchronous=False,
        )
    if body.payment:
        current_domain.process(
            UpdatePaymentDetails(
                order_id=order_id,
                payment_status=body.payment.status,
                transaction_id=body.payment.transaction_id,
                updated_by=user.id,
            ),
            asynchronous=False,
        )

    order = current_domain.repository_for(Order).get(order_id)
    return Envelope[OrderResponse](message="Order updated successfully", data=order_response(order))


@order_router.delete("/{order_id}", response_model=Envelope[OrderResponse])
async def cancel_order(
    order_id: str,
    reason: str | None = Query(default=None),
    user: UserRecord = Depends(current_user),
):
    _visible_order(order_id, user)
    current_domain.process(
        CancelOrder(order_id=order_id, reason=reason, cancelled_by=user.id),
        asynchronous=False,
    )
    order = current_domain.repository_for(Order).get(order_id)
    return Envelope[OrderResponse](message="Order cancelled successfully", data=order_response(order))


@order_router.post("/{order_id}/refund", response_model=Envelope[OrderResponse])
async def refund_order(order_id: str, body: RefundOrderRequest, user: UserRecord = Depends(admin_user)):
    current_domain.process(
        RefundOrder(order_id=order_id, amount=body.amount, reason=body.reason, refunded_by=user.id),
        asynchronous=False,
    )
    order = current_domain.repository_for(Order).get(order_id)
    return Envelope[OrderResponse](message="Refund processed", data=order_response(order))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/create-order", response_model=Envelope[GatewayOrderResponse])
async def create_payment_order(body: CreatePaymentOrderRequest, user: UserRecord = Depends(current_user)):
    command = CreateGatewayOrder(
        customer_id=user.id,
        order_id=body.order_id,
        amount=body.amount,
        currency=body.currency,
    )
    result = current_domain.process(command, asynchronous=False)
    return Envelope[GatewayOrderResponse](data=GatewayOrderResponse(**result))


@payment_router.post("/verify", response_model=Envelope[VerifyPaymentResponse])
async def verify_payment(body: VerifyPaymentRequest, user: UserRecord = Depends(current_user)):
    applied = verify_and_apply(
        gateway_order_id=body.razorpay_order_id,
        gateway_payment_id=body.razorpay_payment_id,
        signature=body.razorpay_signature,
        order_id=body.order_id,
        customer_id=user.id,
        is_admin=user.is_admin,
    )
    return Envelope[VerifyPaymentResponse](
        message="Payment verified successfully",
        data=VerifyPaymentResponse(applied=applied, order_id=body.order_id),
    )


@payment_router.post("/webhook", response_model=Envelope[WebhookAckResponse])
async def payment_webhook(request: Request, x_razorpay_signature: str | None = Header(default=None)):
    """Razorpay webhook: the signature covers the raw body, so it is read unparsed."""
    body = await request.body()
    outcome = process_webhook(body, x_razorpay_signature)
    return Envelope[WebhookAckResponse](data=WebhookAckResponse(outcome=outcome))
