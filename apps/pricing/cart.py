"""
Cart session state

CartState is the explicit, serializable cart owned by whatever session layer
holds it (browser storage, a server session, a test). Nothing here reads
global state: callers pass the state into the aggregator and persist it
through to_dict()/from_dict().
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

from .aggregator import Breakdown, aggregate
from .lines import (
    NEUTRAL_SIZE,
    CartLine,
    PaymentMethod,
    ShippingZone,
    clone_for_new_size,
    set_quantity,
)


@dataclass
class CartState:
    lines: List[CartLine] = field(default_factory=list)
    shipping_zone: ShippingZone = ShippingZone.LOCAL
    shipping_details: Optional[Dict[str, Any]] = None
    payment_method: PaymentMethod = PaymentMethod.COD
    payment_info: Dict[str, Any] = field(default_factory=dict)

    def _find(self, line_id: str) -> CartLine:
        for line in self.lines:
            if line.line_id == line_id:
                return line
        raise KeyError(line_id)

    def add_product(self, product, size: str = NEUTRAL_SIZE) -> CartLine:
        """
        Add one unit of a catalog product. A product already in the cart
        gets its root line incremented instead of a second line.
        """
        product_id = str(product.id)
        for line in self.lines:
            if line.line_id == product_id:
                self.lines = set_quantity(self.lines, product_id, line.quantity + 1)
                return self._find(product_id)
        line = CartLine.from_product(product, size=size)
        self.lines.append(line)
        return line

    def remove_line(self, line_id: str) -> None:
        self.lines = [line for line in self.lines if line.line_id != line_id]

    def set_quantity(self, line_id: str, quantity: int) -> None:
        self.lines = set_quantity(self.lines, line_id, quantity)

    def set_size(self, line_id: str, size: str) -> None:
        self.lines = [
            replace(line, size=size) if line.line_id == line_id else line
            for line in self.lines
        ]

    def add_size_variant(self, line_id: str) -> CartLine:
        """Append a quantity-1 clone of a line so another size can be picked."""
        clone = clone_for_new_size(self._find(line_id))
        self.lines.append(clone)
        return clone

    def family_quantity(self, product_id: str) -> int:
        """Units of a product across all of its size lines."""
        return sum(line.quantity for line in self.lines if line.family_key == str(product_id))

    @property
    def count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def clear(self) -> None:
        self.lines = []

    def clear_checkout(self) -> None:
        self.shipping_zone = ShippingZone.LOCAL
        self.shipping_details = None
        self.payment_method = PaymentMethod.COD
        self.payment_info = {}

    def breakdown(self, delivery_charges: Optional[Mapping[str, Any]] = None) -> Breakdown:
        return aggregate(self.lines, self.shipping_zone, delivery_charges)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'items': [line.to_dict() for line in self.lines],
            'shippingType': self.shipping_zone.value,
            'shippingDetails': self.shipping_details,
            'paymentMethod': self.payment_method.value,
            'paymentInfo': dict(self.payment_info),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CartState":
        return cls(
            lines=[CartLine.from_dict(item) for item in data.get('items', [])],
            shipping_zone=ShippingZone(data.get('shippingType') or ShippingZone.LOCAL),
            shipping_details=data.get('shippingDetails'),
            payment_method=PaymentMethod(data.get('paymentMethod') or PaymentMethod.COD),
            payment_info=dict(data.get('paymentInfo') or {}),
        )
