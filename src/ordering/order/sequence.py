"""Order number allocation through a counter aggregate.

Counting existing orders to derive the next number races under concurrent
checkouts. Instead a single OrderSequence record is incremented inside the
placing unit of work, so two orders never read the same value.
"""

from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from ordering.config import get_settings
from ordering.domain import ordering

ORDER_SEQUENCE = "orders"


@ordering.aggregate
class OrderSequence:
    name = Identifier(identifier=True)
    value = Integer(default=0, min_value=0)

    def next_value(self) -> int:
        self.value += 1
        return self.value


def format_order_number(value: int, prefix: str | None = None) -> str:
    prefix = get_settings().order_number_prefix if prefix is None else prefix
    return f"{prefix}{value:06d}"


def allocate_order_number(prefix: str | None = None) -> str:
    repo = current_domain.repository_for(OrderSequence)
    try:
        sequence = repo.get(ORDER_SEQUENCE)
    except ObjectNotFoundError:
        sequence = OrderSequence(name=ORDER_SEQUENCE)

    value = sequence.next_value()
    repo.add(sequence)
    return format_order_number(value, prefix)
