"""
API Serializers for Request/Response handling

Wire names are camelCase (the storefront SPA's convention); model fields
are mapped with `source=`.
"""
from typing import List
from urllib.parse import urlparse

from django.conf import settings
from rest_framework import serializers

from apps.accounts.models import UserProfile
from apps.catalog.models import Product, SiteSettings
from apps.core.utils import normalize_category
from apps.orders.builder import SubmittedLine
from apps.orders.models import Order, OrderItem
from apps.pricing.lines import ShippingZone
from apps.pricing.tiers import sort_tiers


class PriceTierSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


# =============================================================================
# Catalog
# =============================================================================

class ProductSerializer(serializers.ModelSerializer):
    """
    Product read/write serializer. Tier tables are stored sorted ascending
    by quantity; categories accept common spellings (`t-shirt`, `hoodies`).
    """
    category = serializers.CharField(max_length=20)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    discountedPrice = serializers.DecimalField(
        source='discounted_price', max_digits=12, decimal_places=2, min_value=0,
        required=False, allow_null=True,
    )
    tieredPricing = serializers.ListField(
        source='tiered_pricing', child=PriceTierSerializer(), required=False
    )
    stock = serializers.IntegerField()
    image = serializers.URLField(max_length=500)
    isActive = serializers.BooleanField(source='is_active', required=False)
    isPreorder = serializers.BooleanField(source='is_preorder', required=False)
    preorderPaymentType = serializers.ChoiceField(
        source='preorder_payment_type', choices=Product.PREORDER_PAYMENT_CHOICES, required=False
    )
    requireCustomNameNumber = serializers.BooleanField(source='require_custom_name_number', required=False)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'category', 'description', 'price', 'discountedPrice',
            'tieredPricing', 'stock', 'image', 'images', 'sizes', 'colors', 'tags',
            'isActive', 'featured', 'isPreorder', 'preorderPaymentType',
            'requireCustomNameNumber', 'createdAt', 'updatedAt',
        ]
        read_only_fields = ['id']

    def validate_category(self, value):
        category = normalize_category(value)
        if category not in dict(Product.CATEGORY_CHOICES):
            raise serializers.ValidationError(f"Unknown category: {value}")
        return category

    def validate_image(self, value):
        if urlparse(value).scheme not in ('http', 'https'):
            raise serializers.ValidationError(
                "Image must be an http(s) URL. Upload the file to /api/upload/image/ first."
            )
        return value

    def validate_tieredPricing(self, value):
        """Stored sorted; prices must not rise as the threshold grows."""
        tiers = sort_tiers(value)
        for previous, tier in zip(tiers, tiers[1:]):
            if tier.quantity == previous.quantity:
                raise serializers.ValidationError(
                    f"Duplicate tier for quantity {tier.quantity}"
                )
            if tier.price > previous.price:
                raise serializers.ValidationError(
                    f"Tier price for {tier.quantity}+ ({tier.price}) is higher than "
                    f"for {previous.quantity}+ ({previous.price})"
                )
        return [tier.to_dict() for tier in tiers]


class SiteSettingsSerializer(serializers.ModelSerializer):
    siteName = serializers.CharField(source='site_name', max_length=100, required=False)
    heroTitle = serializers.CharField(source='hero_title', max_length=255, required=False)
    heroSubtitle = serializers.CharField(source='hero_subtitle', max_length=255, required=False)
    carouselImages = serializers.ListField(
        source='carousel_images', child=serializers.URLField(), required=False
    )
    bannerImage = serializers.URLField(source='banner_image', required=False, allow_blank=True)
    contactEmail = serializers.EmailField(source='contact_email', required=False)
    contactPhone = serializers.CharField(source='contact_phone', max_length=30, required=False)
    socialMedia = serializers.DictField(
        source='social_media', child=serializers.CharField(allow_blank=True), required=False
    )
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = SiteSettings
        fields = [
            'siteName', 'tagline', 'heroTitle', 'heroSubtitle', 'carouselImages',
            'bannerImage', 'contactEmail', 'contactPhone', 'socialMedia', 'updatedAt',
        ]


# =============================================================================
# Cart quote
# =============================================================================

class CartLineSnapshotSerializer(serializers.Serializer):
    """A cart line as held by the client session (see CartLine.to_dict)."""
    lineId = serializers.CharField(max_length=100)
    originalProductId = serializers.CharField(max_length=100, required=False, allow_null=True)
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1)
    size = serializers.CharField(max_length=20, required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    discountedPrice = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    tieredPricing = serializers.ListField(child=PriceTierSerializer(), required=False)
    isPreorder = serializers.BooleanField(required=False, default=False)
    preorderPaymentType = serializers.ChoiceField(
        choices=Product.PREORDER_PAYMENT_CHOICES, required=False, default='half'
    )


class CartQuoteSerializer(serializers.Serializer):
    items = CartLineSnapshotSerializer(many=True)
    shippingType = serializers.ChoiceField(
        choices=[zone.value for zone in ShippingZone], required=False, default=ShippingZone.LOCAL.value
    )


# =============================================================================
# Orders
# =============================================================================

class OrderItemInputSerializer(serializers.Serializer):
    productId = serializers.CharField(max_length=100)
    originalProductId = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True)
    name = serializers.CharField(max_length=255)
    price = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0,
        help_text="Effective unit price shown in the cart"
    )
    quantity = serializers.IntegerField(min_value=1)
    size = serializers.CharField(max_length=20, required=False, allow_blank=True, default='M')
    image = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    isPreorder = serializers.BooleanField(required=False, allow_null=True, default=None)
    preorderPaymentType = serializers.ChoiceField(
        choices=Product.PREORDER_PAYMENT_CHOICES, required=False, allow_null=True, allow_blank=True,
        default=None,
    )
    customName = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True)
    customNumber = serializers.CharField(max_length=20, required=False, allow_null=True, allow_blank=True)


class PaymentInfoSerializer(serializers.Serializer):
    provider = serializers.CharField(max_length=50, required=False, allow_blank=True)
    paymentNumber = serializers.CharField(max_length=30, required=False, allow_blank=True)
    trxId = serializers.CharField(max_length=100, required=False, allow_blank=True)


class CreateOrderSerializer(serializers.Serializer):
    """
    Checkout request. Required shipping fields, payment info and stock are
    checked by the order builder; `subtotal` and `deliveryCharge` are
    accepted but never used for the money math.
    """
    items = OrderItemInputSerializer(many=True)
    shippingType = serializers.CharField(max_length=20, required=False, allow_blank=True)
    shippingDetails = serializers.DictField(required=False, allow_null=True)
    deliveryCharge = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    paymentMethod = serializers.CharField(max_length=10, required=False, default='COD')
    paymentInfo = PaymentInfoSerializer(required=False, allow_null=True)

    def submitted_lines(self) -> List[SubmittedLine]:
        return [
            SubmittedLine(
                product_id=item['productId'],
                original_product_id=item.get('originalProductId') or None,
                name=item['name'],
                price=item['price'],
                quantity=item['quantity'],
                size=item.get('size') or 'M',
                image=item.get('image') or '',
                is_preorder=item.get('isPreorder'),
                preorder_payment_type=item.get('preorderPaymentType'),
                custom_name=item.get('customName'),
                custom_number=item.get('customNumber'),
            )
            for item in self.validated_data['items']
        ]


class OrderItemSerializer(serializers.ModelSerializer):
    productId = serializers.CharField(source='product_id')
    originalProductId = serializers.CharField(source='original_product_id', allow_null=True)
    isPreorder = serializers.BooleanField(source='is_preorder')
    preorderPaymentType = serializers.CharField(source='preorder_payment_type')
    isVariant = serializers.BooleanField(source='is_variant')
    customName = serializers.CharField(source='custom_name', allow_null=True)
    customNumber = serializers.CharField(source='custom_number', allow_null=True)

    class Meta:
        model = OrderItem
        fields = [
            'productId', 'originalProductId', 'name', 'price', 'quantity', 'size', 'image',
            'isPreorder', 'preorderPaymentType', 'isVariant', 'customName', 'customNumber',
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read-only order record with the full monetary breakdown."""
    shortOrderId = serializers.CharField(source='short_order_id')
    userId = serializers.CharField(source='user_uid')
    userEmail = serializers.CharField(source='user_email')
    userName = serializers.CharField(source='user_name')
    items = OrderItemSerializer(many=True, read_only=True)
    regularSubtotal = serializers.DecimalField(source='regular_subtotal', max_digits=12, decimal_places=2)
    preorderSubtotal = serializers.DecimalField(source='preorder_subtotal', max_digits=12, decimal_places=2)
    payableSubtotal = serializers.DecimalField(source='payable_subtotal', max_digits=12, decimal_places=2)
    remainingPreorderAmount = serializers.DecimalField(
        source='remaining_preorder_amount', max_digits=12, decimal_places=2
    )
    deliveryCharge = serializers.DecimalField(source='delivery_charge', max_digits=12, decimal_places=2)
    shippingType = serializers.CharField(source='shipping_type')
    shippingDetails = serializers.JSONField(source='shipping_details')
    paymentMethod = serializers.CharField(source='payment_method')
    paymentStatus = serializers.CharField(source='payment_status')
    paymentInfo = serializers.JSONField(source='payment_info', allow_null=True)
    trackingNumber = serializers.CharField(source='tracking_number')
    createdAt = serializers.DateTimeField(source='created_at')
    updatedAt = serializers.DateTimeField(source='updated_at')

    class Meta:
        model = Order
        fields = [
            'id', 'shortOrderId', 'userId', 'userEmail', 'userName', 'items',
            'subtotal', 'regularSubtotal', 'preorderSubtotal', 'payableSubtotal',
            'remainingPreorderAmount', 'discount', 'deliveryCharge', 'total',
            'status', 'shippingType', 'shippingDetails', 'paymentMethod',
            'paymentStatus', 'paymentInfo', 'trackingNumber', 'notes',
            'createdAt', 'updatedAt',
        ]
        read_only_fields = fields


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)
    trackingNumber = serializers.CharField(max_length=100, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


# =============================================================================
# Users
# =============================================================================

class UserProfileSerializer(serializers.ModelSerializer):
    displayName = serializers.CharField(source='display_name')
    photoURL = serializers.CharField(source='photo_url')
    createdAt = serializers.DateTimeField(source='created_at')
    lastLogin = serializers.DateTimeField(source='last_login', allow_null=True)

    class Meta:
        model = UserProfile
        fields = ['id', 'uid', 'email', 'displayName', 'photoURL', 'role', 'createdAt', 'lastLogin']
        read_only_fields = fields


class UserSyncSerializer(serializers.Serializer):
    """Profile data the client may supply on sign-in; token claims take precedence for email."""
    email = serializers.EmailField(required=False, allow_blank=True)
    displayName = serializers.CharField(max_length=255, required=False, allow_blank=True)
    photoURL = serializers.URLField(max_length=500, required=False, allow_blank=True)


class RoleUpdateSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=UserProfile.ROLE_CHOICES)


# =============================================================================
# Media
# =============================================================================

class ImageUploadSerializer(serializers.Serializer):
    image = serializers.FileField()
    folder = serializers.RegexField(r'^[\w\-/]+$', max_length=100, required=False, default='products')

    def validate_image(self, value):
        content_type = getattr(value, 'content_type', '') or ''
        if not content_type.startswith('image/'):
            raise serializers.ValidationError('File must be an image.')
        if value.size > settings.MAX_IMAGE_UPLOAD_SIZE:
            raise serializers.ValidationError('Image is larger than 10MB.')
        return value


class ImageUploadResponseSerializer(serializers.Serializer):
    url = serializers.URLField()


class HealthCheckSerializer(serializers.Serializer):
    """
    Response serializer for health check.
    """
    status = serializers.CharField()
    version = serializers.CharField()
    database = serializers.CharField()
    timestamp = serializers.DateTimeField()
