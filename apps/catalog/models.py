"""
Catalog Models
Tables: Products, SiteSettings
"""
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from apps.core.models import BaseModel, TimestampedModel


class Product(BaseModel):
    """
    Product in the catalog.

    `tiered_pricing` is a list of {"quantity": int, "price": "decimal"}
    rows kept sorted ascending by quantity.
    """
    CATEGORY_CHOICES = [
        ('tshirt', 'T-Shirt'),
        ('hoodie', 'Hoodie'),
        ('jersey', 'Jersey'),
    ]
    PREORDER_PAYMENT_CHOICES = [
        ('half', 'Half now, half on delivery'),
        ('full', 'Full payment now'),
    ]

    name = models.CharField(max_length=255)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, db_index=True)
    description = models.TextField(blank=True, default='')
    price = models.DecimalField(max_digits=12, decimal_places=2)
    discounted_price = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)
    tiered_pricing = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    # Signed: concurrent checkouts may oversell below zero.
    stock = models.IntegerField(default=0)
    image = models.URLField(max_length=500)
    images = models.JSONField(default=list, blank=True)
    sizes = models.JSONField(default=list, blank=True)
    colors = models.JSONField(default=list, blank=True)
    tags = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    featured = models.BooleanField(default=False)
    is_preorder = models.BooleanField(default=False, db_index=True)
    preorder_payment_type = models.CharField(
        max_length=10, choices=PREORDER_PAYMENT_CHOICES, default='half'
    )
    require_custom_name_number = models.BooleanField(
        default=False, help_text="Customer must supply custom name and number text"
    )

    class Meta:
        db_table = 'catalog_products'
        verbose_name = 'Product'
        verbose_name_plural = 'Products'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['category', 'is_active']),
        ]

    def __str__(self):
        return f"{self.name} ({self.price})"


class SiteSettings(TimestampedModel):
    """
    Storefront-wide display settings. A single row is used.
    """
    site_name = models.CharField(max_length=100, default='TorunHut')
    tagline = models.CharField(max_length=255, default='Wear Your Style')
    hero_title = models.CharField(max_length=255, default='Welcome to TorunHut')
    hero_subtitle = models.CharField(max_length=255, default='Premium Quality Clothing')
    carousel_images = models.JSONField(default=list, blank=True)
    banner_image = models.URLField(max_length=500, blank=True, default='')
    contact_email = models.EmailField(default='contact@torunhut.com')
    contact_phone = models.CharField(max_length=30, default='+1234567890')
    social_media = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = 'catalog_site_settings'
        verbose_name = 'Site settings'
        verbose_name_plural = 'Site settings'

    def __str__(self):
        return self.site_name

    @classmethod
    def load(cls) -> "SiteSettings":
        """Return the settings row, creating it with defaults on first use."""
        settings = cls.objects.order_by('pk').first()
        if settings is None:
            settings = cls.objects.create(
                social_media={'facebook': '', 'instagram': '', 'twitter': ''}
            )
        return settings
