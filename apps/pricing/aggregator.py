"""
Cart Aggregator

Folds cart lines into the monetary breakdown shown at checkout and frozen
on the order:

- cart total (full face value of every line),
- regular subtotal (non-preorder lines, paid in full now),
- preorder payable now / deferred (half or full payment per line),
- delivery charge (flat fee per shipping zone),
- payable now = regular + preorder payable now - discount + delivery.

The same function serves the cart quote endpoint and the order builder, so
it takes everything as arguments and has no side effects. Money is Decimal
throughout, which keeps both paths bit-identical.
"""
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from django.conf import settings

from apps.core.utils import quantize_money, to_money
from .lines import CartLine, PreorderPaymentType, ShippingZone
from .tiers import resolve_unit_price

ZERO = Decimal('0')
HALF = Decimal('0.5')

DEFAULT_DELIVERY_CHARGES = {
    ShippingZone.LOCAL.value: Decimal('0'),
    ShippingZone.NATIONAL.value: Decimal('100'),
}


@dataclass(frozen=True)
class LinePricing:
    """Resolved price of a single cart line."""
    line_id: str
    family_key: str
    quantity: int
    aggregate_quantity: int
    effective_unit_price: Decimal
    line_total: Decimal
    is_preorder: bool
    payable_now: Decimal
    deferred: Decimal


@dataclass(frozen=True)
class Breakdown:
    """Full monetary breakdown of a cart. Every subtotal is kept separately."""
    shipping_zone: ShippingZone
    lines: Tuple[LinePricing, ...]
    cart_total: Decimal
    regular_subtotal: Decimal
    preorder_face_value: Decimal
    preorder_payable_now: Decimal
    preorder_deferred: Decimal
    quantity_discount: Decimal
    delivery_charge: Decimal
    delivery_deferred_share: Decimal

    @property
    def payable_subtotal(self) -> Decimal:
        return self.regular_subtotal + self.preorder_payable_now

    @property
    def payable_now(self) -> Decimal:
        return self.payable_subtotal - self.quantity_discount + self.delivery_charge

    @property
    def deferred_display(self) -> Decimal:
        # Display estimate only; the delivery charge is collected in full now.
        return self.preorder_deferred + self.delivery_deferred_share

    @property
    def has_preorder(self) -> bool:
        return any(line.is_preorder for line in self.lines)

    def line(self, line_id: str) -> LinePricing:
        for priced in self.lines:
            if priced.line_id == line_id:
                return priced
        raise KeyError(line_id)

    def as_dict(self) -> Dict[str, Any]:
        return {
            'shippingType': self.shipping_zone.value,
            'items': [
                {
                    'lineId': priced.line_id,
                    'familyKey': priced.family_key,
                    'quantity': priced.quantity,
                    'aggregateQuantity': priced.aggregate_quantity,
                    'effectivePrice': priced.effective_unit_price,
                    'lineTotal': priced.line_total,
                    'isPreorder': priced.is_preorder,
                    'payableNow': priced.payable_now,
                    'deferred': priced.deferred,
                }
                for priced in self.lines
            ],
            'cartTotal': self.cart_total,
            'regularSubtotal': self.regular_subtotal,
            'preorderFaceValue': self.preorder_face_value,
            'preorderPayableNow': self.preorder_payable_now,
            'preorderDeferred': self.preorder_deferred,
            'deferredDisplay': self.deferred_display,
            'discount': self.quantity_discount,
            'payableSubtotal': self.payable_subtotal,
            'deliveryCharge': self.delivery_charge,
            'deliveryDeferredShare': self.delivery_deferred_share,
            'payableNow': self.payable_now,
        }


def get_delivery_charges() -> Mapping[str, Any]:
    if settings.configured:
        return getattr(settings, 'DELIVERY_CHARGES', DEFAULT_DELIVERY_CHARGES)
    return DEFAULT_DELIVERY_CHARGES


def delivery_charge_for(
    shipping_zone: Union[ShippingZone, str],
    delivery_charges: Optional[Mapping[str, Any]] = None,
) -> Decimal:
    """Flat delivery fee configured for a zone."""
    zone = ShippingZone(shipping_zone)
    charges = delivery_charges if delivery_charges is not None else get_delivery_charges()
    return to_money(charges.get(zone.value, ZERO))


def aggregate_quantities(lines: Sequence[CartLine]) -> Dict[str, int]:
    """Total quantity per product family, all sizes combined."""
    totals: Dict[str, int] = defaultdict(int)
    for line in lines:
        totals[line.family_key] += line.quantity
    return dict(totals)


def quantity_discount(lines: Sequence[CartLine]) -> Decimal:
    """
    Cart-level quantity discount. Pricing incentives live in tier tables and
    discounted prices, so this always returns zero; it is kept so the
    breakdown and the stored order carry an explicit discount figure.
    """
    return ZERO


def price_line(line: CartLine, aggregate_quantity: int) -> LinePricing:
    unit_price = resolve_unit_price(
        line.tiered_pricing,
        line.discounted_price,
        line.unit_list_price,
        aggregate_quantity,
    )
    line_total = unit_price * line.quantity

    if not line.is_preorder:
        payable_now, deferred = line_total, ZERO
    elif line.preorder_payment_type is PreorderPaymentType.HALF:
        payable_now = quantize_money(line_total * HALF)
        deferred = line_total - payable_now
    else:
        payable_now, deferred = line_total, ZERO

    return LinePricing(
        line_id=line.line_id,
        family_key=line.family_key,
        quantity=line.quantity,
        aggregate_quantity=aggregate_quantity,
        effective_unit_price=unit_price,
        line_total=line_total,
        is_preorder=line.is_preorder,
        payable_now=payable_now,
        deferred=deferred,
    )


def aggregate(
    lines: Sequence[CartLine],
    shipping_zone: Union[ShippingZone, str],
    delivery_charges: Optional[Mapping[str, Any]] = None,
) -> Breakdown:
    """
    Price every line against its family's aggregate quantity and fold the
    results into a Breakdown.
    """
    zone = ShippingZone(shipping_zone)
    quantities = aggregate_quantities(lines)
    priced = tuple(price_line(line, quantities[line.family_key]) for line in lines)

    cart_total = sum((p.line_total for p in priced), ZERO)
    regular_subtotal = sum((p.line_total for p in priced if not p.is_preorder), ZERO)
    preorder_face_value = sum((p.line_total for p in priced if p.is_preorder), ZERO)
    preorder_payable_now = sum((p.payable_now for p in priced if p.is_preorder), ZERO)
    preorder_deferred = sum((p.deferred for p in priced if p.is_preorder), ZERO)

    delivery_charge = delivery_charge_for(zone, delivery_charges)

    has_half_payment = any(
        line.is_preorder and line.preorder_payment_type is PreorderPaymentType.HALF
        for line in lines
    )
    delivery_deferred_share = ZERO
    if has_half_payment and cart_total > 0:
        delivery_deferred_share = quantize_money(
            delivery_charge * (preorder_face_value / cart_total) * HALF
        )

    return Breakdown(
        shipping_zone=zone,
        lines=priced,
        cart_total=cart_total,
        regular_subtotal=regular_subtotal,
        preorder_face_value=preorder_face_value,
        preorder_payable_now=preorder_payable_now,
        preorder_deferred=preorder_deferred,
        quantity_discount=quantity_discount(lines),
        delivery_charge=delivery_charge,
        delivery_deferred_share=delivery_deferred_share,
    )
