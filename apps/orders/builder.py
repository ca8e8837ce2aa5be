"""
Order Builder / Checkout Validator

Server-side, authoritative construction of an order from submitted cart
lines:

1. validate the request (items, shipping fields, payment info),
2. re-fetch products to check stock and fill in missing preorder flags,
3. price the lines with the cart aggregator (client totals are ignored),
4. persist the order under a fresh 5-digit short id,
5. decrement stock and hand the order to the export sink once the
   transaction commits, on a background worker unless
   settings.ORDER_EXPORT_ASYNC is off.

Steps 1-3 fail loudly and nothing is written. Once the order row exists it
is never retracted: stock and export failures are logged and swallowed.

Trust boundary: the unit price of each line is the client's already
resolved tier/discount price. With settings.VERIFY_CLIENT_PRICES enabled the
builder re-resolves it from the stored tier table and rejects mismatches
larger than settings.CLIENT_PRICE_TOLERANCE.
"""
import logging
import random
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from functools import partial
from typing import Any, Dict, List, Mapping, Optional, Sequence

from django.conf import settings
from django.db import DatabaseError, IntegrityError, connections, transaction
from django.db.models import F

from apps.catalog.models import Product
from apps.core.exceptions import (
    OrderIdUnavailableException,
    StockException,
    ValidationException,
)
from apps.core.utils import format_money, parse_uuid, to_money, truncate_for_display
from apps.pricing.aggregator import Breakdown, aggregate
from apps.pricing.lines import (
    NEUTRAL_SIZE,
    CartLine,
    PaymentMethod,
    PreorderPaymentType,
    ShippingZone,
    root_product_id,
)
from apps.pricing.tiers import resolve_unit_price
from .export import get_export_sink
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

_export_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix='order-export')

REQUIRED_SHIPPING_FIELDS = {
    ShippingZone.LOCAL: ('name', 'phone', 'studentId', 'department', 'email', 'hallName'),
    ShippingZone.NATIONAL: ('name', 'phone', 'email', 'district', 'address'),
}

SHORT_ORDER_ID_MIN = 10000
SHORT_ORDER_ID_MAX = 99999


@dataclass
class SubmittedLine:
    """A cart line as received from the checkout request."""
    product_id: str
    name: str
    price: Decimal
    quantity: int
    size: str = NEUTRAL_SIZE
    image: str = ''
    is_preorder: Optional[bool] = None
    preorder_payment_type: Optional[str] = None
    original_product_id: Optional[str] = None
    custom_name: Optional[str] = None
    custom_number: Optional[str] = None

    @property
    def root_product_id(self) -> str:
        return root_product_id(self.product_id, self.original_product_id)

    @property
    def is_variant(self) -> bool:
        return self.root_product_id != str(self.product_id)


@dataclass
class ResolvedLine:
    """A submitted line after product lookup and flag resolution."""
    submitted: SubmittedLine
    product: Optional[Product]
    is_preorder: bool
    preorder_payment_type: PreorderPaymentType

    def to_cart_line(self) -> CartLine:
        line = self.submitted
        # The client price is already tier/discount resolved, so it is the
        # list price of a line without tiers.
        return CartLine(
            line_id=str(line.product_id),
            quantity=line.quantity,
            name=line.name,
            size=line.size or NEUTRAL_SIZE,
            unit_list_price=to_money(line.price),
            is_preorder=self.is_preorder,
            preorder_payment_type=self.preorder_payment_type,
            original_product_id=line.root_product_id if line.is_variant else None,
            image=line.image or '',
            custom_name=line.custom_name,
            custom_number=line.custom_number,
        )


def generate_short_order_id() -> str:
    return str(random.randint(SHORT_ORDER_ID_MIN, SHORT_ORDER_ID_MAX))


def decide_payment_status(payment_method: PaymentMethod, deferred_amount: Decimal) -> str:
    """
    Cash on delivery is pending until collected; a prepaid order is paid
    unless a preorder balance remains for delivery.
    """
    if payment_method is PaymentMethod.COD:
        return 'pending'
    return 'partial' if deferred_amount > 0 else 'paid'


def _is_blank(value: Any) -> bool:
    return not str(value or '').strip()


def validate_checkout_request(
    lines: Sequence[SubmittedLine],
    shipping_zone: Optional[str],
    shipping_details: Optional[Mapping[str, Any]],
    payment_method: Optional[str],
    payment_info: Optional[Mapping[str, Any]],
):
    """Reject malformed requests before any lookup. Returns (zone, method)."""
    if not lines:
        raise ValidationException("Order must have at least one item", field="items")

    if not shipping_zone or not shipping_details:
        raise ValidationException("Shipping type and details are required", field="shippingDetails")

    try:
        zone = ShippingZone(shipping_zone)
    except ValueError:
        raise ValidationException(f"Invalid shipping type: {shipping_zone}", field="shippingType")

    missing = [name for name in REQUIRED_SHIPPING_FIELDS[zone] if _is_blank(shipping_details.get(name))]
    if missing:
        raise ValidationException(
            f"Missing shipping fields: {', '.join(missing)}", field="shippingDetails"
        )

    try:
        method = PaymentMethod(payment_method or PaymentMethod.COD)
    except ValueError:
        raise ValidationException(f"Invalid payment method: {payment_method}", field="paymentMethod")

    if method is PaymentMethod.PAY_NOW:
        info = payment_info or {}
        if _is_blank(info.get('paymentNumber')) or _is_blank(info.get('trxId')):
            raise ValidationException(
                "Payment number and transaction id are required", field="paymentInfo"
            )

    for line in lines:
        if line.quantity < 1:
            raise ValidationException(f"Quantity for {line.name} must be at least 1", field="items")

    return zone, method


def _fetch_products(root_ids) -> Dict[str, Product]:
    """Stored products for the given ids. Ids that are not catalog ids are skipped."""
    uuids = [pk for pk in (parse_uuid(root_id) for root_id in root_ids) if pk is not None]
    return {str(pk): product for pk, product in Product.objects.in_bulk(uuids).items()}


def resolve_lines(lines: Sequence[SubmittedLine]) -> List[ResolvedLine]:
    """
    Check stock per product family and settle each line's preorder flags.
    Client flags win; stored product flags only fill in what was omitted.
    """
    family_quantities: Dict[str, int] = OrderedDict()
    for line in lines:
        family_quantities[line.root_product_id] = family_quantities.get(line.root_product_id, 0) + line.quantity

    products = _fetch_products(family_quantities.keys())

    for root_id, quantity in family_quantities.items():
        product = products.get(root_id)
        if product is not None and product.stock < quantity:
            logger.info(f"Rejecting order: {product.name} has {product.stock} in stock, {quantity} requested")
            raise StockException(str(product.pk), product.name, quantity, product.stock)

    verify_prices = getattr(settings, 'VERIFY_CLIENT_PRICES', False)
    tolerance = to_money(getattr(settings, 'CLIENT_PRICE_TOLERANCE', '0.01'))

    resolved = []
    for line in lines:
        product = products.get(line.root_product_id)

        is_preorder = line.is_preorder
        if is_preorder is None:
            is_preorder = product.is_preorder if product else False
        payment_type = line.preorder_payment_type
        if not payment_type:
            payment_type = product.preorder_payment_type if product else PreorderPaymentType.HALF

        if product is not None and is_preorder and product.require_custom_name_number:
            if _is_blank(line.custom_name) or _is_blank(line.custom_number):
                raise ValidationException(
                    f"Custom name and number are required for {product.name}", field="items"
                )

        if verify_prices and product is not None:
            expected = resolve_unit_price(
                product.tiered_pricing,
                product.discounted_price,
                product.price,
                family_quantities[line.root_product_id],
            )
            if abs(expected - to_money(line.price)) > tolerance:
                raise ValidationException(
                    f"Price for {product.name} has changed to {format_money(expected)}", field="items"
                )

        resolved.append(ResolvedLine(
            submitted=line,
            product=product,
            is_preorder=bool(is_preorder),
            preorder_payment_type=PreorderPaymentType(payment_type),
        ))
    return resolved


def _persist_order(fields: Dict[str, Any], resolved: Sequence[ResolvedLine], breakdown: Breakdown) -> Order:
    """
    Insert the order under a random short id, re-drawing when the unique
    constraint reports a collision.
    """
    max_attempts = getattr(settings, 'SHORT_ORDER_ID_MAX_ATTEMPTS', 50)

    for attempt in range(1, max_attempts + 1):
        short_order_id = generate_short_order_id()
        try:
            with transaction.atomic():
                order = Order.objects.create(short_order_id=short_order_id, **fields)
                OrderItem.objects.bulk_create([
                    OrderItem(
                        order=order,
                        product_id=str(line.submitted.product_id),
                        original_product_id=line.submitted.root_product_id if line.submitted.is_variant else None,
                        name=line.submitted.name,
                        price=priced.effective_unit_price,
                        quantity=line.submitted.quantity,
                        size=line.submitted.size or '',
                        image=line.submitted.image or '',
                        is_preorder=line.is_preorder,
                        preorder_payment_type=line.preorder_payment_type.value,
                        is_variant=line.submitted.is_variant,
                        custom_name=line.submitted.custom_name or None,
                        custom_number=line.submitted.custom_number or None,
                    )
                    for line, priced in zip(resolved, breakdown.lines)
                ])
            return order
        except IntegrityError:
            if not Order.objects.filter(short_order_id=short_order_id).exists():
                raise
            logger.warning(f"Short order id {short_order_id} already taken, drawing again (attempt {attempt})")

    raise OrderIdUnavailableException(max_attempts)


def _decrement_stock(resolved: Sequence[ResolvedLine]) -> None:
    """Best effort, one UPDATE per line, no rollback on failure."""
    for line in resolved:
        if line.product is None:
            continue
        try:
            Product.objects.filter(pk=line.product.pk).update(stock=F('stock') - line.submitted.quantity)
        except DatabaseError:
            logger.warning(
                f"Stock decrement failed for product {line.product.pk} "
                f"(qty {line.submitted.quantity}); order kept",
                exc_info=True,
            )


def _run_export(order: Order) -> None:
    try:
        get_export_sink().export(order)
    except Exception:
        logger.warning(f"Export of order {order.short_order_id} failed; order kept", exc_info=True)


def _run_export_in_worker(order: Order) -> None:
    try:
        _run_export(order)
    finally:
        # Worker threads own their connections.
        connections.close_all()


def _dispatch_export(order: Order) -> None:
    if getattr(settings, 'ORDER_EXPORT_ASYNC', True):
        _export_executor.submit(_run_export_in_worker, order)
    else:
        _run_export(order)


def _export(order: Order) -> None:
    """Fire and forget: runs after commit, never raises into checkout."""
    transaction.on_commit(partial(_dispatch_export, order))


def build_order(
    lines: Sequence[SubmittedLine],
    shipping_zone: Optional[str],
    shipping_details: Optional[Mapping[str, Any]],
    payment_method: Optional[str],
    payment_info: Optional[Mapping[str, Any]],
    user,
    client_delivery_charge: Optional[Decimal] = None,
) -> Order:
    """
    Validate, price and persist an order for `user` (an authenticated user
    with uid, email and name). Raises ValidationException or StockException
    before anything is written.
    """
    zone, method = validate_checkout_request(
        lines, shipping_zone, shipping_details, payment_method, payment_info
    )
    resolved = resolve_lines(lines)
    breakdown = aggregate([line.to_cart_line() for line in resolved], zone)

    if client_delivery_charge is not None and to_money(client_delivery_charge) != breakdown.delivery_charge:
        logger.warning(
            f"Client delivery charge {client_delivery_charge} ignored, "
            f"{zone.value} charge is {breakdown.delivery_charge}"
        )

    fields = {
        'user_uid': user.uid,
        'user_email': user.email or shipping_details.get('email', ''),
        'user_name': user.name or shipping_details.get('name', ''),
        'subtotal': breakdown.cart_total,
        'regular_subtotal': breakdown.regular_subtotal,
        'preorder_subtotal': breakdown.preorder_payable_now,
        'payable_subtotal': breakdown.payable_subtotal,
        'remaining_preorder_amount': breakdown.preorder_deferred,
        'discount': breakdown.quantity_discount,
        'delivery_charge': breakdown.delivery_charge,
        'total': breakdown.payable_now,
        'status': Order.STATUS_PENDING,
        'shipping_type': zone.value,
        'shipping_details': dict(shipping_details),
        'payment_method': method.value,
        'payment_status': decide_payment_status(method, breakdown.preorder_deferred),
        'payment_info': dict(payment_info or {}) if method is PaymentMethod.PAY_NOW else None,
    }

    order = _persist_order(fields, resolved, breakdown)
    logger.info(
        f"Order {order.short_order_id} accepted for {truncate_for_display(order.user_name or order.user_uid, 40)}: "
        f"payable now {format_money(order.total)}, due on delivery {format_money(order.remaining_preorder_amount)}"
    )

    _decrement_stock(resolved)
    _export(order)
    return order
