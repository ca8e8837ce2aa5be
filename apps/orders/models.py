"""
Orders Models
Tables: Orders, OrderItems

Monetary fields are written once by the order builder and never updated;
only status, tracking number and notes change after creation.
"""
from django.db import models
from apps.core.models import BaseModel


class Order(BaseModel):
    """
    Customer order placed at checkout.
    """
    STATUS_PENDING = 'pending'
    STATUS_PROCESSING = 'processing'
    STATUS_SHIPPED = 'shipped'
    STATUS_DELIVERED = 'delivered'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_PROCESSING, 'Processing'),
        (STATUS_SHIPPED, 'Shipped'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    ALLOWED_TRANSITIONS = {
        STATUS_PENDING: {STATUS_PROCESSING, STATUS_CANCELLED},
        STATUS_PROCESSING: {STATUS_SHIPPED},
        STATUS_SHIPPED: {STATUS_DELIVERED},
        STATUS_DELIVERED: set(),
        STATUS_CANCELLED: set(),
    }

    SHIPPING_CHOICES = [
        ('local', 'Local / campus'),
        ('national', 'Nationwide'),
    ]
    PAYMENT_METHOD_CHOICES = [
        ('COD', 'Cash on delivery'),
        ('PAY_NOW', 'Pay now'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('partial', 'Partially paid'),
        ('paid', 'Paid'),
    ]

    short_order_id = models.CharField(max_length=5, unique=True, help_text="5-digit customer-facing reference")
    user_uid = models.CharField(max_length=128, db_index=True)
    user_email = models.CharField(max_length=255)
    user_name = models.CharField(max_length=255, blank=True, default='')

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=0, help_text="Full cart value")
    regular_subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    preorder_subtotal = models.DecimalField(
        max_digits=12, decimal_places=2, default=0, help_text="Preorder amount payable now"
    )
    payable_subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    remaining_preorder_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=0, help_text="Preorder balance due on delivery"
    )
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    delivery_charge = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=12, decimal_places=2, help_text="Amount payable now")

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    shipping_type = models.CharField(max_length=20, choices=SHIPPING_CHOICES)
    shipping_details = models.JSONField(default=dict)
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, default='COD')
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default='pending')
    payment_info = models.JSONField(blank=True, null=True)
    tracking_number = models.CharField(max_length=100, blank=True, default='')
    notes = models.TextField(blank=True, default='')

    class Meta:
        db_table = 'orders_orders'
        verbose_name = 'Order'
        verbose_name_plural = 'Orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user_uid', 'created_at']),
            models.Index(fields=['status', 'created_at']),
        ]

    def __str__(self):
        return f"Order #{self.short_order_id} - {self.user_email}"

    def can_transition_to(self, status: str) -> bool:
        if status == self.status:
            return True
        return status in self.ALLOWED_TRANSITIONS.get(self.status, set())


class OrderItem(models.Model):
    """
    Line item inside an order. `price` is the effective unit price at order
    time and is frozen; later product price changes never touch it.
    """
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product_id = models.CharField(max_length=100, help_text="Cart line id (variant ids included)")
    original_product_id = models.CharField(max_length=100, blank=True, null=True)
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    quantity = models.PositiveIntegerField()
    size = models.CharField(max_length=20, blank=True, default='')
    image = models.CharField(max_length=500, blank=True, default='')
    is_preorder = models.BooleanField(default=False)
    preorder_payment_type = models.CharField(max_length=10, default='half')
    is_variant = models.BooleanField(default=False)
    custom_name = models.CharField(max_length=100, blank=True, null=True)
    custom_number = models.CharField(max_length=20, blank=True, null=True)

    class Meta:
        db_table = 'orders_items'
        verbose_name = 'Order Item'
        verbose_name_plural = 'Order Items'
        ordering = ['id']

    def __str__(self):
        return f"{self.quantity}x {self.name}"

    @property
    def line_total(self):
        return self.price * self.quantity
