"""
Tiered Price Resolver

A tier pairs a quantity threshold with a unit price. Buying at least
`quantity` units of a product (all sizes counted together) unlocks the
tier's price. The resolver is shared by the cart display path and the
order path, so it must stay pure.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from apps.core.utils import to_money


@dataclass(frozen=True)
class PriceTier:
    """One row of a product's tier table."""
    quantity: int
    price: Decimal

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PriceTier":
        return cls(quantity=int(data['quantity']), price=to_money(data['price']))

    def to_dict(self) -> dict:
        return {'quantity': self.quantity, 'price': str(self.price)}


TierInput = Union[PriceTier, Mapping[str, Any]]


def coerce_tiers(tiers: Optional[Iterable[TierInput]]) -> Tuple[PriceTier, ...]:
    """Accept PriceTier objects or raw {quantity, price} dicts from JSON."""
    if not tiers:
        return ()
    return tuple(
        tier if isinstance(tier, PriceTier) else PriceTier.from_dict(tier)
        for tier in tiers
    )


def sort_tiers(tiers: Iterable[TierInput]) -> List[PriceTier]:
    """
    Ascending by threshold. The sort is stable, so for duplicate thresholds
    the tier defined later stays later.
    """
    return sorted(coerce_tiers(tiers), key=lambda tier: tier.quantity)


def resolve_unit_price(
    tiers: Optional[Sequence[TierInput]],
    discounted_price: Optional[Decimal],
    list_price: Decimal,
    aggregate_quantity: int,
) -> Decimal:
    """
    Effective unit price for `aggregate_quantity` units of one product.

    - No tiers: the discounted price when it undercuts the list price,
      otherwise the list price.
    - Tiers: the tier with the largest threshold <= aggregate_quantity.
      Duplicate thresholds resolve to the last-defined tier. Below the
      smallest threshold, the discounted price if set, else the list price.
    """
    list_price = to_money(list_price)
    if discounted_price is not None:
        discounted_price = to_money(discounted_price)

    ordered = sort_tiers(tiers or ())
    if not ordered:
        if discounted_price is not None and discounted_price < list_price:
            return discounted_price
        return list_price

    applicable = None
    for tier in ordered:
        if tier.quantity > aggregate_quantity:
            break
        applicable = tier

    if applicable is not None:
        return applicable.price
    return discounted_price if discounted_price is not None else list_price
