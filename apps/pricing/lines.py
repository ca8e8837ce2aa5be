"""
Cart Line Model

A cart line is one purchasable row: a product, or a size-variant clone of
a product, with its quantity and the price snapshot taken when it was
added. Money fields are snapshots for display; the effective unit price is
always re-resolved from the tier table by the aggregator.

Variant lines carry `original_product_id` so every size of a product is
counted together when picking a tier. The id never nests: a variant of a
variant still points at the root product.
"""
import uuid
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from apps.core.utils import to_money
from .tiers import PriceTier, coerce_tiers

NEUTRAL_SIZE = 'M'
VARIANT_SEPARATOR = '_'


class PreorderPaymentType(str, Enum):
    """How much of a preorder line is collected at checkout."""
    HALF = "half"
    FULL = "full"


class ShippingZone(str, Enum):
    """Delivery zones with a flat delivery fee each."""
    LOCAL = "local"
    NATIONAL = "national"


class PaymentMethod(str, Enum):
    COD = "COD"
    PAY_NOW = "PAY_NOW"


def root_product_id(line_id: str, original_product_id: Optional[str] = None) -> str:
    """
    The catalog id a line belongs to. Variant ids have the form
    `<root>_<suffix>`, so the root can be recovered even when a client
    dropped `original_product_id`.
    """
    if original_product_id:
        return str(original_product_id)
    line_id = str(line_id)
    if VARIANT_SEPARATOR in line_id:
        return line_id.split(VARIANT_SEPARATOR, 1)[0]
    return line_id


@dataclass(frozen=True)
class CartLine:
    """
    One line in a cart. `line_id` equals the product id for the first line
    of a product and is freshly generated for every size variant.
    """
    line_id: str
    quantity: int = 1
    name: str = ''
    size: str = NEUTRAL_SIZE
    unit_list_price: Decimal = Decimal('0')
    discounted_price: Optional[Decimal] = None
    tiered_pricing: Tuple[PriceTier, ...] = ()
    is_preorder: bool = False
    preorder_payment_type: PreorderPaymentType = PreorderPaymentType.HALF
    original_product_id: Optional[str] = None
    image: str = ''
    require_custom_name_number: bool = False
    custom_name: Optional[str] = None
    custom_number: Optional[str] = None

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError(f"Cart line quantity must be >= 1, got {self.quantity}")
        # Normalise wire values so equal carts compare and price identically.
        object.__setattr__(self, 'unit_list_price', to_money(self.unit_list_price))
        if self.discounted_price is not None:
            object.__setattr__(self, 'discounted_price', to_money(self.discounted_price))
        object.__setattr__(self, 'tiered_pricing', coerce_tiers(self.tiered_pricing))
        object.__setattr__(
            self, 'preorder_payment_type', PreorderPaymentType(self.preorder_payment_type)
        )

    @property
    def is_variant(self) -> bool:
        return self.original_product_id is not None

    @property
    def family_key(self) -> str:
        """Key shared by every line (all sizes) of the same product."""
        return root_product_id(self.line_id, self.original_product_id)

    @property
    def product_id(self) -> str:
        return self.family_key

    @classmethod
    def from_product(cls, product, size: str = NEUTRAL_SIZE) -> "CartLine":
        """Snapshot a catalog product into a fresh root line."""
        return cls(
            line_id=str(product.id),
            quantity=1,
            name=product.name,
            size=size,
            unit_list_price=product.price,
            discounted_price=product.discounted_price,
            tiered_pricing=coerce_tiers(product.tiered_pricing),
            is_preorder=product.is_preorder,
            preorder_payment_type=product.preorder_payment_type,
            image=product.image or '',
            require_custom_name_number=product.require_custom_name_number,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lineId': self.line_id,
            'originalProductId': self.original_product_id,
            'name': self.name,
            'quantity': self.quantity,
            'size': self.size,
            'price': str(self.unit_list_price),
            'discountedPrice': None if self.discounted_price is None else str(self.discounted_price),
            'tieredPricing': [tier.to_dict() for tier in self.tiered_pricing],
            'isPreorder': self.is_preorder,
            'preorderPaymentType': self.preorder_payment_type.value,
            'image': self.image,
            'requireCustomNameNumber': self.require_custom_name_number,
            'customName': self.custom_name,
            'customNumber': self.custom_number,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CartLine":
        discounted = data.get('discountedPrice')
        return cls(
            line_id=str(data['lineId']),
            quantity=int(data.get('quantity', 1)),
            name=data.get('name') or '',
            size=data.get('size') or NEUTRAL_SIZE,
            unit_list_price=to_money(data.get('price', 0)),
            discounted_price=None if discounted is None else to_money(discounted),
            tiered_pricing=coerce_tiers(data.get('tieredPricing')),
            is_preorder=bool(data.get('isPreorder', False)),
            preorder_payment_type=data.get('preorderPaymentType') or PreorderPaymentType.HALF,
            original_product_id=data.get('originalProductId'),
            image=data.get('image') or '',
            require_custom_name_number=bool(data.get('requireCustomNameNumber', False)),
            custom_name=data.get('customName'),
            custom_number=data.get('customNumber'),
        )


def new_variant_id(root_id: str) -> str:
    return f"{root_id}{VARIANT_SEPARATOR}{uuid.uuid4().hex[:12]}"


def clone_for_new_size(line: CartLine) -> CartLine:
    """
    A new line for buying the same product in another size. Starts at
    quantity 1 and points at the root product, never at an intermediate
    variant. Custom name/number text is per line and is not copied.
    """
    root_id = line.family_key
    return replace(
        line,
        line_id=new_variant_id(root_id),
        quantity=1,
        original_product_id=root_id,
        custom_name=None,
        custom_number=None,
    )


def set_quantity(lines: Sequence[CartLine], line_id: str, quantity: int) -> List[CartLine]:
    """
    New line list with `line_id` set to `quantity`. Anything below 1
    removes the line.
    """
    if quantity < 1:
        return [line for line in lines if line.line_id != line_id]
    return [
        replace(line, quantity=quantity) if line.line_id == line_id else line
        for line in lines
    ]
