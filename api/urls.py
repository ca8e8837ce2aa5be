"""
API URL Configuration
"""
from django.urls import path
from .views import (
    CartQuoteView,
    HealthCheckView,
    ImageUploadView,
    MyOrdersView,
    OrderListCreateView,
    OrderStatusView,
    ProductCategoryView,
    ProductDetailView,
    ProductListView,
    SiteSettingsView,
    StatsView,
    UserDeleteView,
    UserListView,
    UserRoleUpdateView,
    UserRoleView,
    UserSyncView,
)

app_name = 'api'

urlpatterns = [
    # Catalog
    path('products/', ProductListView.as_view(), name='product-list'),
    path('products/category/<str:category>/', ProductCategoryView.as_view(), name='product-category'),
    path('products/<str:product_id>/', ProductDetailView.as_view(), name='product-detail'),

    # Cart and checkout
    path('cart/quote/', CartQuoteView.as_view(), name='cart-quote'),
    path('orders/', OrderListCreateView.as_view(), name='order-list'),
    path('orders/my-orders/', MyOrdersView.as_view(), name='my-orders'),
    path('orders/<str:order_id>/status/', OrderStatusView.as_view(), name='order-status'),

    # Users
    path('users/', UserListView.as_view(), name='user-list'),
    path('users/create/', UserSyncView.as_view(), name='user-create'),
    path('users/role/', UserRoleView.as_view(), name='user-role'),
    path('users/<str:uid>/role/', UserRoleUpdateView.as_view(), name='user-role-update'),
    path('users/<str:uid>/', UserDeleteView.as_view(), name='user-delete'),

    # Media
    path('upload/image/', ImageUploadView.as_view(), name='image-upload'),

    # Admin dashboard and storefront settings
    path('stats/', StatsView.as_view(), name='stats'),
    path('settings/', SiteSettingsView.as_view(), name='site-settings'),

    # Health check
    path('health/', HealthCheckView.as_view(), name='health'),
]
