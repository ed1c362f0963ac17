"""Repository for the Order aggregate with the lookups the API and payment flow need."""

from ordering.cart.cart import as_naive_utc
from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus, PaymentMethod, PaymentStatus

# Upper bound for scans that filter in memory (search, revenue totals).
SCAN_LIMIT = 10_000

_SORTABLE_FIELDS = {"created_at", "updated_at", "order_number", "status"}


@ordering.repository(part_of=Order)
class OrderRepository:
    def by_gateway_order_id(self, gateway_order_id) -> Order | None:
        if not gateway_order_id:
            return None
        orders = self._dao.query.filter(gateway_order_id=gateway_order_id).all().items
        return orders[0] if orders else None

    def for_customer(self, customer_id) -> list[Order]:
        return (
            self._dao.query.filter(customer_id=str(customer_id))
            .order_by("-created_at")
            .limit(SCAN_LIMIT)
            .all()
            .items
        )

    def unpaid_before(self, cutoff) -> list[Order]:
        """Pending online orders still awaiting payment that were placed before ``cutoff``."""
        cutoff = as_naive_utc(cutoff)
        orders = (
            self._dao.query.filter(
                status=OrderStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
            )
            .limit(SCAN_LIMIT)
            .all()
            .items
        )
        return [
            order
            for order in orders
            if order.payment_method != PaymentMethod.COD.value
            and order.created_at is not None
            and as_naive_utc(order.created_at) < cutoff
        ]

    def matching(self, customer_id=None, status=None, search=None, sort_by="created_at", descending=True):
        """Every order matching the filters, sorted.

        ``search`` is a case-insensitive substring match on the order number
        and the shipping contact's first and last names.
        """
        sort_field = sort_by if sort_by in _SORTABLE_FIELDS else "created_at"

        query = self._dao.query
        if customer_id is not None:
            query = query.filter(customer_id=str(customer_id))
        if status:
            query = query.filter(status=status)
        orders = query.order_by(f"-{sort_field}" if descending else sort_field).limit(SCAN_LIMIT).all().items

        if search:
            needle = search.lower()
            orders = [order for order in orders if _matches_search(order, needle)]
        return orders


def _matches_search(order, needle: str) -> bool:
    address = order.shipping_address
    haystack = [order.order_number or ""]
    if address is not None:
        haystack += [address.first_name or "", address.last_name or ""]
    return any(needle in value.lower() for value in haystack)
