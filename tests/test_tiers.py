"""Tests for the tiered unit price resolver."""
from decimal import Decimal

import pytest

from apps.pricing.tiers import PriceTier, coerce_tiers, resolve_unit_price, sort_tiers

TIERS = [
    {'quantity': 3, 'price': '900'},
    {'quantity': 10, 'price': '800'},
]


class TestResolveWithoutTiers:
    def test_list_price(self):
        assert resolve_unit_price([], None, Decimal('1000'), 5) == Decimal('1000')

    def test_discounted_price_when_lower(self):
        assert resolve_unit_price([], Decimal('850'), Decimal('1000'), 1) == Decimal('850')

    def test_discounted_price_ignored_when_not_lower(self):
        assert resolve_unit_price(None, Decimal('1200'), Decimal('1000'), 1) == Decimal('1000')


class TestResolveWithTiers:
    def test_below_smallest_threshold_uses_list_price(self):
        assert resolve_unit_price(TIERS, None, Decimal('1000'), 2) == Decimal('1000')

    def test_below_smallest_threshold_uses_discounted_price(self):
        assert resolve_unit_price(TIERS, Decimal('950'), Decimal('1000'), 2) == Decimal('950')

    @pytest.mark.parametrize('quantity, expected', [
        (3, Decimal('900')),
        (9, Decimal('900')),
        (10, Decimal('800')),
        (250, Decimal('800')),
    ])
    def test_largest_threshold_not_above_quantity(self, quantity, expected):
        assert resolve_unit_price(TIERS, None, Decimal('1000'), quantity) == expected

    def test_unsorted_input(self):
        tiers = list(reversed(TIERS))
        assert resolve_unit_price(tiers, None, Decimal('1000'), 4) == Decimal('900')

    def test_duplicate_thresholds_last_defined_wins(self):
        tiers = [
            {'quantity': 5, 'price': '700'},
            {'quantity': 5, 'price': '750'},
        ]
        assert resolve_unit_price(tiers, None, Decimal('1000'), 5) == Decimal('750')

    def test_accepts_price_tier_objects(self):
        tiers = [PriceTier(quantity=2, price=Decimal('480'))]
        assert resolve_unit_price(tiers, None, Decimal('500'), 2) == Decimal('480')

    def test_prices_weakly_decrease_as_quantity_grows(self):
        tiers = [
            {'quantity': 2, 'price': '950'},
            {'quantity': 5, 'price': '900'},
            {'quantity': 12, 'price': '820'},
        ]
        prices = [resolve_unit_price(tiers, None, Decimal('1000'), q) for q in range(2, 30)]
        assert all(later <= earlier for earlier, later in zip(prices, prices[1:]))


class TestTierHelpers:
    def test_sort_is_stable(self):
        ordered = sort_tiers([
            {'quantity': 10, 'price': '1'},
            {'quantity': 3, 'price': '2'},
            {'quantity': 3, 'price': '3'},
        ])
        assert [(t.quantity, t.price) for t in ordered] == [
            (3, Decimal('2')), (3, Decimal('3')), (10, Decimal('1')),
        ]

    def test_coerce_empty(self):
        assert coerce_tiers(None) == ()

    def test_float_prices_keep_their_decimal_value(self):
        tier = PriceTier.from_dict({'quantity': '3', 'price': 899.9})
        assert tier.quantity == 3
        assert tier.price == Decimal('899.9')

    def test_to_dict(self):
        assert PriceTier(quantity=3, price=Decimal('900')).to_dict() == {'quantity': 3, 'price': '900'}
