"""Tests for cart lines, size variants and the CartState session object."""
import json
from decimal import Decimal

import pytest

from apps.pricing.cart import CartState
from apps.pricing.lines import (
    CartLine,
    PaymentMethod,
    PreorderPaymentType,
    ShippingZone,
    clone_for_new_size,
    root_product_id,
    set_quantity,
)


def make_line(**overrides):
    fields = {
        'line_id': 'prod-a',
        'quantity': 3,
        'name': 'Department Tee',
        'size': 'M',
        'unit_list_price': Decimal('1000'),
        'tiered_pricing': [{'quantity': 3, 'price': '900'}],
    }
    fields.update(overrides)
    return CartLine(**fields)


class TestCartLine:
    def test_quantity_must_be_positive(self):
        with pytest.raises(ValueError):
            make_line(quantity=0)

    def test_wire_values_are_normalised(self):
        line = make_line(unit_list_price=1000, preorder_payment_type='full')
        assert line.unit_list_price == Decimal('1000')
        assert line.preorder_payment_type is PreorderPaymentType.FULL
        assert line.tiered_pricing[0].price == Decimal('900')

    def test_root_line_is_its_own_family(self):
        line = make_line()
        assert not line.is_variant
        assert line.family_key == 'prod-a'

    def test_variant_id_without_original_id_still_groups(self):
        assert root_product_id('prod-a_3fa9c2') == 'prod-a'
        assert make_line(line_id='prod-a_3fa9c2').family_key == 'prod-a'

    def test_from_product(self, make_product):
        product = make_product(
            discounted_price=Decimal('950'),
            tiered_pricing=[{'quantity': 3, 'price': '900'}],
            is_preorder=True,
            preorder_payment_type='full',
        )
        line = CartLine.from_product(product, size='L')
        assert line.line_id == str(product.id)
        assert line.quantity == 1
        assert line.size == 'L'
        assert line.discounted_price == Decimal('950')
        assert line.is_preorder
        assert line.preorder_payment_type is PreorderPaymentType.FULL

    def test_dict_round_trip_is_json_safe(self):
        line = make_line(custom_name='RAHIM', custom_number='10')
        payload = json.loads(json.dumps(line.to_dict()))
        assert CartLine.from_dict(payload) == line


class TestSizeVariants:
    def test_clone_starts_at_one_and_points_at_root(self):
        original = make_line(quantity=4, custom_name='RAHIM', custom_number='7')
        clone = clone_for_new_size(original)
        assert clone.quantity == 1
        assert clone.original_product_id == 'prod-a'
        assert clone.line_id != original.line_id
        assert clone.line_id.startswith('prod-a_')
        assert clone.custom_name is None
        assert clone.custom_number is None
        assert clone.tiered_pricing == original.tiered_pricing

    def test_clone_of_clone_never_nests(self):
        grandchild = clone_for_new_size(clone_for_new_size(make_line()))
        assert grandchild.original_product_id == 'prod-a'
        assert grandchild.family_key == 'prod-a'

    def test_clones_get_distinct_ids(self):
        line = make_line()
        assert clone_for_new_size(line).line_id != clone_for_new_size(line).line_id


class TestSetQuantity:
    def test_updates_only_the_target_line(self):
        lines = [make_line(), make_line(line_id='prod-b', quantity=1)]
        updated = set_quantity(lines, 'prod-b', 5)
        assert [line.quantity for line in updated] == [3, 5]
        assert lines[1].quantity == 1

    @pytest.mark.parametrize('quantity', [0, -2])
    def test_below_one_removes_line(self, quantity):
        lines = [make_line(), make_line(line_id='prod-b')]
        assert [line.line_id for line in set_quantity(lines, 'prod-a', quantity)] == ['prod-b']


class TestCartState:
    def test_add_product_twice_increments_root_line(self, make_product):
        product = make_product()
        cart = CartState()
        cart.add_product(product)
        cart.add_product(product, size='L')
        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 2
        assert cart.lines[0].size == 'M'

    def test_variant_counts_toward_family(self, make_product):
        product = make_product(tiered_pricing=[{'quantity': 3, 'price': '900'}])
        cart = CartState()
        root = cart.add_product(product)
        cart.set_quantity(root.line_id, 2)
        variant = cart.add_size_variant(root.line_id)
        cart.set_size(variant.line_id, 'XL')

        assert cart.count == 3
        assert cart.family_quantity(product.id) == 3
        breakdown = cart.breakdown()
        assert all(p.effective_unit_price == Decimal('900') for p in breakdown.lines)

    def test_remove_and_clear(self):
        cart = CartState(lines=[make_line(), make_line(line_id='prod-b')])
        cart.remove_line('prod-a')
        assert [line.line_id for line in cart.lines] == ['prod-b']
        cart.clear()
        assert cart.count == 0

    def test_unknown_line_raises(self):
        with pytest.raises(KeyError):
            CartState().add_size_variant('missing')

    def test_clear_checkout_resets_defaults(self):
        cart = CartState(
            shipping_zone=ShippingZone.NATIONAL,
            shipping_details={'name': 'Karim'},
            payment_method=PaymentMethod.PAY_NOW,
            payment_info={'trxId': 'ABC'},
        )
        cart.clear_checkout()
        assert cart.shipping_zone is ShippingZone.LOCAL
        assert cart.shipping_details is None
        assert cart.payment_method is PaymentMethod.COD
        assert cart.payment_info == {}

    def test_round_trip(self):
        cart = CartState(
            lines=[make_line(), clone_for_new_size(make_line())],
            shipping_zone=ShippingZone.NATIONAL,
            payment_method=PaymentMethod.PAY_NOW,
            payment_info={'provider': 'bKash'},
        )
        restored = CartState.from_dict(json.loads(json.dumps(cart.to_dict())))
        assert restored == cart
        assert restored.breakdown().as_dict() == cart.breakdown().as_dict()
