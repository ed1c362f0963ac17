"""Mapping from aggregates to API response schemas."""

from ordering.api.schemas import (
    AddressSchema,
    CartItemResponse,
    CartResponse,
    OrderItemResponse,
    OrderResponse,
    PaymentResponse,
    PricingResponse,
    TimelineEntryResponse,
    TrackingResponse,
)


def _optional_id(value) -> str | None:
    return str(value) if value else None


def cart_response(cart) -> CartResponse:
    return CartResponse(
        id=str(cart.id),
        user_id=str(cart.customer_id),
        items=[
            CartItemResponse(
                id=str(item.id),
                product_id=str(item.product_id),
                variant_id=_optional_id(item.variant_id),
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=item.line_total,
                added_at=item.added_at,
            )
            for item in cart.items
        ],
        item_count=cart.item_count,
        subtotal=cart.subtotal,
        tax=cart.tax,
        shipping=cart.shipping,
        discount=cart.discount,
        total=cart.total,
        currency=cart.currency,
        expires_at=cart.expires_at,
        updated_at=cart.updated_at,
    )


def address_schema(address) -> AddressSchema:
    return AddressSchema(
        first_name=address.first_name,
        last_name=address.last_name,
        company=address.company,
        address_line1=address.address_line1,
        address_line2=address.address_line2,
        city=address.city,
        state=address.state,
        postal_code=address.postal_code,
        country=address.country,
        phone=address.phone,
    )


def order_response(order) -> OrderResponse:
    pricing = order.pricing
    return OrderResponse(
        id=str(order.id),
        order_number=order.order_number,
        user_id=str(order.customer_id),
        status=order.status,
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                variant_id=_optional_id(item.variant_id),
                name=item.name,
                sku=item.sku,
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=item.line_total,
                image=item.image,
            )
            for item in order.items
        ],
        shipping_address=address_schema(order.shipping_address),
        billing_address=address_schema(order.billing_address),
        payment=PaymentResponse(
            method=order.payment_method,
            status=order.payment_status,
            gateway=order.payment_gateway,
            transaction_id=order.transaction_id,
            gateway_order_id=order.gateway_order_id,
            paid_at=order.paid_at,
            refunded_at=order.refunded_at,
            refund_amount=order.refund_amount or 0.0,
        ),
        pricing=PricingResponse(
            subtotal=pricing.subtotal,
            tax=pricing.tax,
            shipping=pricing.shipping,
            discount=pricing.discount,
            total=pricing.total,
            currency=pricing.currency,
        ),
        tracking=TrackingResponse(
            carrier=order.carrier,
            tracking_number=order.tracking_number,
            tracking_url=order.tracking_url,
            estimated_delivery=order.estimated_delivery,
            delivered_at=order.delivered_at,
        ),
        timeline=[
            TimelineEntryResponse(
                status=entry.status,
                timestamp=entry.timestamp,
                note=entry.note,
                updated_by=entry.updated_by,
            )
            for entry in order.ordered_timeline
        ],
        notes=order.notes,
        cancellation_reason=order.cancellation_reason,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )
