"""
Order lifecycle

After creation an order only moves forward through
pending -> processing -> shipped -> delivered, or is cancelled while still
pending. Tracking number and notes may be updated at any point.
"""
import logging
from typing import Optional

from apps.core.exceptions import NotFoundException, ValidationException
from apps.core.utils import parse_uuid
from .models import Order

logger = logging.getLogger(__name__)


def get_order(order_id: str) -> Order:
    """Look an order up by primary key or by its 5-digit short id."""
    pk = parse_uuid(order_id)
    queryset = Order.objects.prefetch_related('items')
    order = queryset.filter(pk=pk).first() if pk else queryset.filter(short_order_id=str(order_id)).first()
    if order is None:
        raise NotFoundException("Order", str(order_id))
    return order


def update_order_status(
    order_id: str,
    status: str,
    tracking_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> Order:
    order = get_order(order_id)

    if status not in dict(Order.STATUS_CHOICES):
        raise ValidationException(f"Invalid status: {status}", field="status")
    if not order.can_transition_to(status):
        raise ValidationException(
            f"Cannot move order {order.short_order_id} from {order.status} to {status}", field="status"
        )

    previous = order.status
    order.status = status
    update_fields = ['status']
    if tracking_number is not None:
        order.tracking_number = tracking_number
        update_fields.append('tracking_number')
    if notes is not None:
        order.notes = notes
        update_fields.append('notes')
    order.save_fields(*update_fields)

    logger.info(f"Order {order.short_order_id} status {previous} -> {status}")
    return order
