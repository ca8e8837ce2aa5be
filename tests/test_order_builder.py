"""Tests for the server-side order builder."""
import threading
from decimal import Decimal
from unittest import mock

import pytest
from django.db import DatabaseError
from django.db.models.query import QuerySet

from apps.catalog.models import Product
from apps.core.exceptions import OrderIdUnavailableException, StockException, ValidationException
from apps.orders import builder
from apps.orders.builder import SubmittedLine, build_order, decide_payment_status
from apps.orders.models import Order
from apps.pricing.lines import PaymentMethod

pytestmark = pytest.mark.django_db


def submitted(product, quantity=1, price=None, **extra):
    return SubmittedLine(
        product_id=extra.pop('product_id', str(product.id)),
        name=product.name,
        price=price if price is not None else product.price,
        quantity=quantity,
        **extra
    )


@pytest.fixture
def short_ids(monkeypatch):
    """Feed the builder a fixed sequence of short ids."""
    def _feed(*ids):
        sequence = iter(ids)
        monkeypatch.setattr(builder, 'generate_short_order_id', lambda: next(sequence))
    return _feed


class TestValidation:
    def test_empty_cart(self, customer, local_shipping):
        with pytest.raises(ValidationException) as exc:
            build_order([], 'local', local_shipping, 'COD', None, customer)
        assert exc.value.message == 'Order must have at least one item'

    def test_missing_shipping(self, make_product, customer):
        with pytest.raises(ValidationException) as exc:
            build_order([submitted(make_product())], 'local', None, 'COD', None, customer)
        assert exc.value.message == 'Shipping type and details are required'

    def test_unknown_shipping_type(self, make_product, customer, local_shipping):
        with pytest.raises(ValidationException):
            build_order([submitted(make_product())], 'overseas', local_shipping, 'COD', None, customer)

    def test_missing_zone_fields_are_named(self, make_product, customer, local_shipping):
        del local_shipping['hallName']
        local_shipping['studentId'] = '  '
        with pytest.raises(ValidationException) as exc:
            build_order([submitted(make_product())], 'local', local_shipping, 'COD', None, customer)
        assert 'studentId' in exc.value.message
        assert 'hallName' in exc.value.message

    def test_pay_now_requires_transaction_details(self, make_product, customer, local_shipping):
        with pytest.raises(ValidationException) as exc:
            build_order(
                [submitted(make_product())], 'local', local_shipping, 'PAY_NOW',
                {'provider': 'bKash', 'paymentNumber': '01800000000'}, customer,
            )
        assert exc.value.field == 'paymentInfo'

    def test_custom_text_required_for_personalised_preorders(self, make_product, customer, local_shipping):
        jersey = make_product(
            name='Club Jersey', category='jersey', is_preorder=True, require_custom_name_number=True
        )
        with pytest.raises(ValidationException) as exc:
            build_order([submitted(jersey, custom_name='RAHIM')], 'local', local_shipping, 'COD', None, customer)
        assert 'Club Jersey' in exc.value.message

    def test_nothing_persisted_on_failure(self, make_product, customer, local_shipping):
        product = make_product(stock=1)
        with pytest.raises(StockException):
            build_order([submitted(product, quantity=2)], 'local', local_shipping, 'COD', None, customer)
        assert Order.objects.count() == 0
        product.refresh_from_db()
        assert product.stock == 1


class TestStock:
    def test_insufficient_stock(self, make_product, customer, local_shipping):
        product = make_product(stock=2)
        with pytest.raises(StockException) as exc:
            build_order([submitted(product, quantity=3)], 'local', local_shipping, 'COD', None, customer)
        assert exc.value.requested == 3
        assert exc.value.available == 2
        assert exc.value.message == f'Insufficient stock for {product.name}'

    def test_family_quantity_is_checked(self, make_product, customer, local_shipping):
        product = make_product(stock=4)
        lines = [
            submitted(product, quantity=3, size='M'),
            submitted(product, quantity=2, size='L', product_id=f'{product.id}_9a8b7c'),
        ]
        with pytest.raises(StockException):
            build_order(lines, 'local', local_shipping, 'COD', None, customer)

    def test_stock_is_decremented_per_line(self, make_product, customer, local_shipping, export_sink):
        product = make_product(stock=10)
        lines = [
            submitted(product, quantity=3, size='M'),
            submitted(product, quantity=2, size='L', product_id=f'{product.id}_9a8b7c'),
        ]
        build_order(lines, 'local', local_shipping, 'COD', None, customer)
        product.refresh_from_db()
        assert product.stock == 5

    def test_unknown_products_skip_stock_checks(self, customer, local_shipping, export_sink):
        line = SubmittedLine(product_id='legacy-42', name='Old Stock Tee', price=Decimal('300'), quantity=2)
        order = build_order([line], 'local', local_shipping, 'COD', None, customer)
        assert order.total == Decimal('600')

    def test_stock_failure_keeps_order(
        self, make_product, customer, local_shipping, export_sink, monkeypatch,
        django_capture_on_commit_callbacks,
    ):
        product = make_product(stock=10)

        def broken_update(self, **kwargs):
            raise DatabaseError('database is locked')

        monkeypatch.setattr(QuerySet, 'update', broken_update)
        with django_capture_on_commit_callbacks(execute=True):
            order = build_order([submitted(product, quantity=2)], 'local', local_shipping, 'COD', None, customer)

        assert Order.objects.filter(pk=order.pk).exists()
        assert export_sink.exported == [order.short_order_id]
        assert Product.objects.get(pk=product.pk).stock == 10


class TestTotals:
    def test_tiered_order_national(self, make_product, customer, national_shipping, export_sink):
        product = make_product(tiered_pricing=[{'quantity': 3, 'price': '900'}])
        order = build_order(
            [submitted(product, quantity=3, price=Decimal('900'))],
            'national', national_shipping, 'COD', None, customer,
        )
        assert order.regular_subtotal == Decimal('2700')
        assert order.delivery_charge == Decimal('100')
        assert order.total == Decimal('2800')
        assert order.items.get().price == Decimal('900')

    def test_half_payment_preorder(self, make_product, customer, local_shipping, export_sink):
        product = make_product(price=Decimal('500'), is_preorder=True, preorder_payment_type='half')
        order = build_order(
            [submitted(product, quantity=2, is_preorder=True, preorder_payment_type='half')],
            'local', local_shipping, 'COD', None, customer,
        )
        assert order.subtotal == Decimal('1000')
        assert order.preorder_subtotal == Decimal('500')
        assert order.remaining_preorder_amount == Decimal('500')
        assert order.total == Decimal('500')

    def test_preorder_flags_filled_from_product(self, make_product, customer, local_shipping, export_sink):
        product = make_product(price=Decimal('800'), is_preorder=True, preorder_payment_type='full')
        order = build_order([submitted(product)], 'local', local_shipping, 'COD', None, customer)

        item = order.items.get()
        assert item.is_preorder
        assert item.preorder_payment_type == 'full'
        assert order.remaining_preorder_amount == Decimal('0')
        assert order.total == Decimal('800')

    def test_client_flags_win_over_product(self, make_product, customer, local_shipping, export_sink):
        product = make_product(is_preorder=True)
        order = build_order(
            [submitted(product, is_preorder=False)], 'local', local_shipping, 'COD', None, customer
        )
        assert not order.items.get().is_preorder
        assert order.regular_subtotal == product.price

    def test_client_delivery_charge_is_ignored(self, make_product, customer, national_shipping, export_sink):
        order = build_order(
            [submitted(make_product())], 'national', national_shipping, 'COD', None, customer,
            client_delivery_charge=Decimal('0'),
        )
        assert order.delivery_charge == Decimal('100')

    @pytest.mark.parametrize('zone', ['local', 'national'])
    def test_payable_subtotal_plus_delivery_equals_total(
        self, zone, make_product, customer, local_shipping, national_shipping, export_sink
    ):
        regular = make_product(price=Decimal('749.99'))
        preorder = make_product(name='Fest Hoodie', price=Decimal('1299.50'), is_preorder=True)
        shipping = local_shipping if zone == 'local' else national_shipping
        order = build_order(
            [submitted(regular, quantity=3), submitted(preorder, quantity=1)],
            zone, shipping, 'COD', None, customer,
        )
        order.refresh_from_db()
        assert order.payable_subtotal + order.delivery_charge == order.total

    def test_verified_prices_reject_stale_client_price(
        self, settings, make_product, customer, local_shipping, export_sink
    ):
        settings.VERIFY_CLIENT_PRICES = True
        product = make_product(tiered_pricing=[{'quantity': 3, 'price': '900'}])

        with pytest.raises(ValidationException):
            build_order(
                [submitted(product, quantity=3, price=Decimal('1000'))],
                'local', local_shipping, 'COD', None, customer,
            )
        order = build_order(
            [submitted(product, quantity=3, price=Decimal('900'))],
            'local', local_shipping, 'COD', None, customer,
        )
        assert order.total == Decimal('2700')


class TestVariants:
    def test_variant_items_keep_line_id_and_root(self, make_product, customer, local_shipping, export_sink):
        product = make_product()
        variant_id = f'{product.id}_5d1e2f'
        order = build_order(
            [
                submitted(product, quantity=1, size='M'),
                submitted(product, quantity=1, size='XL', product_id=variant_id),
            ],
            'local', local_shipping, 'COD', None, customer,
        )
        root_item, variant_item = order.items.all()
        assert not root_item.is_variant
        assert root_item.original_product_id is None
        assert variant_item.is_variant
        assert variant_item.product_id == variant_id
        assert variant_item.original_product_id == str(product.id)
        assert variant_item.size == 'XL'


class TestPaymentStatus:
    def test_decide(self):
        assert decide_payment_status(PaymentMethod.COD, Decimal('500')) == 'pending'
        assert decide_payment_status(PaymentMethod.PAY_NOW, Decimal('500')) == 'partial'
        assert decide_payment_status(PaymentMethod.PAY_NOW, Decimal('0')) == 'paid'

    def test_cod_order_has_no_payment_info(self, make_product, customer, local_shipping, export_sink):
        order = build_order(
            [submitted(make_product())], 'local', local_shipping, 'COD',
            {'provider': 'bKash', 'paymentNumber': '018', 'trxId': 'X1'}, customer,
        )
        assert order.payment_status == 'pending'
        assert order.payment_info is None

    def test_prepaid_with_preorder_balance_is_partial(self, make_product, customer, local_shipping, export_sink):
        product = make_product(is_preorder=True, preorder_payment_type='half')
        payment_info = {'provider': 'bKash', 'paymentNumber': '01800000000', 'trxId': '9XK2L1'}
        order = build_order([submitted(product)], 'local', local_shipping, 'PAY_NOW', payment_info, customer)
        assert order.payment_status == 'partial'
        assert order.payment_info == payment_info

    def test_prepaid_regular_is_paid(self, make_product, customer, local_shipping, export_sink):
        payment_info = {'provider': 'Nagad', 'paymentNumber': '01900000000', 'trxId': 'N77'}
        order = build_order(
            [submitted(make_product())], 'local', local_shipping, 'PAY_NOW', payment_info, customer
        )
        assert order.payment_status == 'paid'


class TestShortOrderId:
    def test_five_digit_reference(self, make_product, customer, local_shipping, export_sink):
        order = build_order([submitted(make_product())], 'local', local_shipping, 'COD', None, customer)
        assert len(order.short_order_id) == 5
        assert 10000 <= int(order.short_order_id) <= 99999

    def test_collision_draws_again(self, make_product, customer, local_shipping, export_sink, short_ids):
        product = make_product()
        short_ids('12345', '12345', '12345', '54321')
        first = build_order([submitted(product)], 'local', local_shipping, 'COD', None, customer)
        second = build_order([submitted(product)], 'local', local_shipping, 'COD', None, customer)

        assert first.short_order_id == '12345'
        assert second.short_order_id == '54321'
        assert second.items.count() == 1

    def test_gives_up_after_max_attempts(
        self, settings, make_product, customer, local_shipping, export_sink, monkeypatch
    ):
        settings.SHORT_ORDER_ID_MAX_ATTEMPTS = 3
        product = make_product(stock=10)
        monkeypatch.setattr(builder, 'generate_short_order_id', lambda: '11111')
        build_order([submitted(product)], 'local', local_shipping, 'COD', None, customer)

        with pytest.raises(OrderIdUnavailableException):
            build_order([submitted(product)], 'local', local_shipping, 'COD', None, customer)
        assert Order.objects.count() == 1
        product.refresh_from_db()
        assert product.stock == 9

    def test_ids_are_unique_across_orders(self, make_product, customer, local_shipping, export_sink, short_ids):
        product = make_product(stock=100)
        short_ids('20000', '20000', '20001', '20001', '20000', '20002', '20003')
        ids = [
            build_order([submitted(product)], 'local', local_shipping, 'COD', None, customer).short_order_id
            for _ in range(4)
        ]
        assert ids == ['20000', '20001', '20002', '20003']


class TestDownstreamFailures:
    def test_export_failure_keeps_order(
        self, make_product, customer, local_shipping, monkeypatch, django_capture_on_commit_callbacks
    ):
        class BrokenSink:
            def export(self, order):
                raise ConnectionError('sheets unreachable')

        monkeypatch.setattr(builder, 'get_export_sink', lambda: BrokenSink())
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            order = build_order([submitted(make_product())], 'local', local_shipping, 'COD', None, customer)

        assert len(callbacks) == 1
        assert Order.objects.filter(pk=order.pk).exists()

    def test_exported_once(self, make_product, customer, local_shipping, export_sink, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            order = build_order([submitted(make_product())], 'local', local_shipping, 'COD', None, customer)
        assert export_sink.exported == [order.short_order_id]

    def test_export_waits_for_commit(self, make_product, customer, local_shipping, export_sink, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks() as callbacks:
            build_order([submitted(make_product())], 'local', local_shipping, 'COD', None, customer)
            assert export_sink.exported == []
        assert len(callbacks) == 1

    def test_slow_sink_does_not_hold_checkout(
        self, settings, make_product, customer, local_shipping, monkeypatch, django_capture_on_commit_callbacks
    ):
        settings.ORDER_EXPORT_ASYNC = True
        monkeypatch.setattr(builder, 'connections', mock.Mock())
        release = threading.Event()
        done = threading.Event()
        exported = []

        class SlowSink:
            def export(self, order):
                release.wait(timeout=5)
                exported.append(order.short_order_id)
                done.set()

        monkeypatch.setattr(builder, 'get_export_sink', lambda: SlowSink())
        with django_capture_on_commit_callbacks(execute=True):
            order = build_order([submitted(make_product())], 'local', local_shipping, 'COD', None, customer)

        # build_order returned while the sink is still blocked
        assert exported == []
        release.set()
        assert done.wait(timeout=5)
        assert exported == [order.short_order_id]

    def test_user_name_falls_back_to_shipping_name(self, make_product, local_shipping, export_sink):
        from apps.accounts.identity import AuthenticatedUser, IdentityClaims

        user = AuthenticatedUser(IdentityClaims(uid='anon-7', email='anon@example.com'))
        order = build_order([submitted(make_product())], 'local', local_shipping, 'COD', None, user)
        assert order.user_name == 'Rahim Uddin'
        assert order.user_uid == 'anon-7'
