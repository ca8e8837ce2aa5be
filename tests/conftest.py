"""Pytest fixtures for storefront tests."""
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from apps.accounts.identity import (
    AuthenticatedUser,
    IdentityClaims,
    TokenVerificationError,
    TokenVerifier,
)
from apps.accounts.models import UserProfile
from apps.catalog.media import MediaUploader
from apps.catalog.models import Product


class FakeTokenVerifier(TokenVerifier):
    """Accepts tokens of the form `valid:<uid>`."""

    def __init__(self):
        self.deleted = []

    def verify(self, token):
        if not token.startswith('valid:'):
            raise TokenVerificationError('Firebase ID token has expired')
        uid = token.split(':', 1)[1]
        return IdentityClaims(uid=uid, email=f'{uid}@example.com', name=uid.title())

    def delete_user(self, uid):
        self.deleted.append(uid)


class RecordingExportSink:
    is_configured = True

    def __init__(self):
        self.exported = []

    def export(self, order):
        self.exported.append(order.short_order_id)


class FakeMediaUploader(MediaUploader):
    def __init__(self):
        self.uploads = []

    def upload_image(self, file, folder='products'):
        self.uploads.append((file.name, folder, file.read()))
        return f'https://media.example.com/{folder}/{file.name}'


@pytest.fixture
def token_verifier(monkeypatch):
    verifier = FakeTokenVerifier()
    monkeypatch.setattr('api.authentication.get_token_verifier', lambda: verifier)
    monkeypatch.setattr('api.views.get_token_verifier', lambda: verifier)
    return verifier


@pytest.fixture
def export_sink(monkeypatch):
    sink = RecordingExportSink()
    monkeypatch.setattr('apps.orders.builder.get_export_sink', lambda: sink)
    return sink


@pytest.fixture
def media_uploader(monkeypatch):
    uploader = FakeMediaUploader()
    monkeypatch.setattr('api.views.get_media_uploader', lambda: uploader)
    return uploader


@pytest.fixture
def make_product(db):
    """Factory for catalog products with sensible defaults."""
    def _make(**overrides):
        fields = {
            'name': 'Department Tee',
            'category': 'tshirt',
            'price': Decimal('1000'),
            'stock': 100,
            'image': 'https://cdn.example.com/tee.jpg',
            'sizes': ['S', 'M', 'L', 'XL'],
        }
        fields.update(overrides)
        return Product.objects.create(**fields)
    return _make


@pytest.fixture
def customer():
    return AuthenticatedUser(IdentityClaims(uid='customer-1', email='rahim@example.com', name='Rahim Uddin'))


@pytest.fixture
def admin_user(db):
    UserProfile.objects.create(uid='admin-1', email='admin@example.com', display_name='Admin', role='admin')
    return AuthenticatedUser(IdentityClaims(uid='admin-1', email='admin@example.com', name='Admin'))


@pytest.fixture
def subadmin_user(db):
    UserProfile.objects.create(uid='subadmin-1', email='sub@example.com', display_name='Sub', role='subadmin')
    return AuthenticatedUser(IdentityClaims(uid='subadmin-1', email='sub@example.com', name='Sub'))


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def customer_client(customer):
    client = APIClient()
    client.force_authenticate(user=customer)
    return client


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def subadmin_client(subadmin_user):
    client = APIClient()
    client.force_authenticate(user=subadmin_user)
    return client


@pytest.fixture
def local_shipping():
    return {
        'name': 'Rahim Uddin',
        'phone': '01700000000',
        'studentId': '1904001',
        'department': 'CSE',
        'email': 'rahim@example.com',
        'hallName': 'Shaheed Tareq Huda Hall',
    }


@pytest.fixture
def national_shipping():
    return {
        'name': 'Karim Ahmed',
        'phone': '01800000000',
        'email': 'karim@example.com',
        'district': 'Sylhet',
        'address': '12 Zindabazar Road',
    }
