"""
API Views for the TorunHut storefront

This module provides REST API endpoints for:
- Catalog: product listing, detail and admin maintenance
- Cart: price quotes computed by the cart aggregator
- Orders: checkout, order history and admin status updates
- Users: profile sync, roles and admin user management
- Site settings, dashboard stats and health check
"""
import logging
import math

from django.db import connection
from django.db.models import Count, Q, Sum
from django.utils import timezone
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.accounts.identity import get_token_verifier
from apps.accounts.models import UserProfile
from apps.catalog.media import get_media_uploader
from apps.catalog.models import Product, SiteSettings
from apps.core.exceptions import NotFoundException
from apps.core.utils import normalize_category, parse_uuid
from apps.orders.builder import build_order
from apps.orders.lifecycle import update_order_status
from apps.orders.models import Order
from apps.pricing.aggregator import aggregate
from apps.pricing.lines import CartLine
from .permissions import HasAdminAccess, IsAdminRole
from .serializers import (
    CartQuoteSerializer,
    CreateOrderSerializer,
    HealthCheckSerializer,
    ImageUploadResponseSerializer,
    ImageUploadSerializer,
    OrderSerializer,
    OrderStatusUpdateSerializer,
    ProductSerializer,
    RoleUpdateSerializer,
    SiteSettingsSerializer,
    UserProfileSerializer,
    UserSyncSerializer,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


def invalid_request(serializer):
    return Response(
        {"error": "Invalid request", "details": serializer.errors},
        status=status.HTTP_400_BAD_REQUEST
    )


def _positive_int(value, default):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def get_active_product(product_id) -> Product:
    pk = parse_uuid(product_id)
    product = Product.objects.filter(pk=pk, is_active=True).first() if pk else None
    if product is None:
        raise NotFoundException("Product", str(product_id))
    return product


# =============================================================================
# Catalog
# =============================================================================

class ProductListView(APIView):
    """
    Active products with optional category, featured and search filters.
    Admins and subadmins may create products via POST.
    """

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated(), HasAdminAccess()]
        return [AllowAny()]

    @extend_schema(
        parameters=[
            OpenApiParameter('category', str, description="tshirt, hoodie or jersey (aliases accepted)"),
            OpenApiParameter('featured', bool),
            OpenApiParameter('search', str, description="Matches name or description"),
            OpenApiParameter('page', int),
            OpenApiParameter('limit', int),
        ],
        responses={200: ProductSerializer(many=True)},
        description="List active products"
    )
    def get(self, request):
        params = request.query_params
        queryset = Product.objects.filter(is_active=True)

        if params.get('category'):
            queryset = queryset.filter(category=normalize_category(params['category']))
        if params.get('featured', '').lower() == 'true':
            queryset = queryset.filter(featured=True)
        if params.get('search'):
            search = params['search']
            queryset = queryset.filter(Q(name__icontains=search) | Q(description__icontains=search))

        page = _positive_int(params.get('page'), 1)
        limit = _positive_int(params.get('limit'), DEFAULT_PAGE_SIZE)
        total = queryset.count()
        offset = (page - 1) * limit
        products = queryset.order_by('-created_at')[offset:offset + limit]

        return Response({
            "products": ProductSerializer(products, many=True).data,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        })

    @extend_schema(
        request=ProductSerializer,
        responses={201: ProductSerializer},
        description="Create a product (admin or subadmin)"
    )
    def post(self, request):
        serializer = ProductSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer)

        product = serializer.save()
        logger.info(f"Product created: {product.name} ({product.id}) by {request.user}")
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)


class ProductDetailView(APIView):
    """
    Single product. Inactive products are hidden from the public detail.
    """

    def get_permissions(self):
        if self.request.method in ('PUT', 'PATCH', 'DELETE'):
            return [IsAuthenticated(), HasAdminAccess()]
        return [AllowAny()]

    def _get_any(self, product_id) -> Product:
        pk = parse_uuid(product_id)
        product = Product.objects.filter(pk=pk).first() if pk else None
        if product is None:
            raise NotFoundException("Product", str(product_id))
        return product

    @extend_schema(responses={200: ProductSerializer})
    def get(self, request, product_id):
        return Response(ProductSerializer(get_active_product(product_id)).data)

    @extend_schema(
        request=ProductSerializer,
        responses={200: ProductSerializer},
        description="Partially update a product (admin or subadmin)"
    )
    def put(self, request, product_id):
        product = self._get_any(product_id)
        serializer = ProductSerializer(product, data=request.data, partial=True)
        if not serializer.is_valid():
            return invalid_request(serializer)

        product = serializer.save()
        logger.info(f"Product updated: {product.name} ({product.id}) by {request.user}")
        return Response(ProductSerializer(product).data)

    @extend_schema(responses={200: None}, description="Delete a product (admin or subadmin)")
    def delete(self, request, product_id):
        product = self._get_any(product_id)
        product.delete()
        logger.info(f"Product deleted: {product_id} by {request.user}")
        return Response({"message": "Product deleted successfully"})


class ProductCategoryView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(responses={200: ProductSerializer(many=True)})
    def get(self, request, category):
        products = Product.objects.filter(is_active=True, category=normalize_category(category))
        return Response(ProductSerializer(products, many=True).data)


# =============================================================================
# Cart
# =============================================================================

class CartQuoteView(APIView):
    """
    Price a cart without placing an order. Uses the same aggregator as the
    order builder, so the quote matches what checkout will charge.
    """
    permission_classes = [AllowAny]

    @extend_schema(
        request=CartQuoteSerializer,
        description="Compute the checkout breakdown for a cart",
        examples=[
            OpenApiExample(
                "Tiered cart",
                value={
                    "items": [{
                        "lineId": "3f0c5c8e-3a52-4a5b-9d7e-0d3f9f1b2c11",
                        "name": "Department Tee",
                        "quantity": 3,
                        "size": "M",
                        "price": 1000,
                        "tieredPricing": [{"quantity": 3, "price": 900}],
                    }],
                    "shippingType": "national",
                },
                request_only=True
            ),
        ]
    )
    def post(self, request):
        serializer = CartQuoteSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer)

        data = serializer.validated_data
        lines = [CartLine.from_dict(item) for item in data['items']]
        breakdown = aggregate(lines, data['shippingType'])
        return Response(breakdown.as_dict())


# =============================================================================
# Orders
# =============================================================================

class OrderListCreateView(APIView):
    """
    POST places an order for the caller; GET lists every order (staff only).
    """

    def get_permissions(self):
        if self.request.method == 'GET':
            return [IsAuthenticated(), HasAdminAccess()]
        return [IsAuthenticated()]

    @extend_schema(
        request=CreateOrderSerializer,
        responses={201: OrderSerializer},
        description="Place an order. Totals are computed server-side.",
        examples=[
            OpenApiExample(
                "Campus order",
                value={
                    "items": [{
                        "productId": "3f0c5c8e-3a52-4a5b-9d7e-0d3f9f1b2c11",
                        "name": "Department Tee",
                        "price": 900,
                        "quantity": 3,
                        "size": "L",
                    }],
                    "shippingType": "local",
                    "shippingDetails": {
                        "name": "Rahim Uddin",
                        "phone": "01700000000",
                        "studentId": "1904001",
                        "department": "CSE",
                        "email": "rahim@example.com",
                        "hallName": "Shaheed Tareq Huda Hall",
                    },
                    "paymentMethod": "COD",
                },
                request_only=True
            ),
        ]
    )
    def post(self, request):
        serializer = CreateOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer)

        data = serializer.validated_data
        order = build_order(
            lines=serializer.submitted_lines(),
            shipping_zone=data.get('shippingType'),
            shipping_details=data.get('shippingDetails'),
            payment_method=data.get('paymentMethod'),
            payment_info=data.get('paymentInfo'),
            user=request.user,
            client_delivery_charge=data.get('deliveryCharge'),
        )
        return Response(
            {"message": "Order created successfully", "order": OrderSerializer(order).data},
            status=status.HTTP_201_CREATED
        )

    @extend_schema(responses={200: OrderSerializer(many=True)}, description="All orders, newest first")
    def get(self, request):
        orders = Order.objects.prefetch_related('items').order_by('-created_at')
        return Response(OrderSerializer(orders, many=True).data)


class MyOrdersView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: OrderSerializer(many=True)}, description="The caller's orders, newest first")
    def get(self, request):
        orders = (
            Order.objects.filter(user_uid=request.user.uid)
            .prefetch_related('items')
            .order_by('-created_at')
        )
        return Response(OrderSerializer(orders, many=True).data)


class OrderStatusView(APIView):
    permission_classes = [IsAuthenticated, HasAdminAccess]

    @extend_schema(
        request=OrderStatusUpdateSerializer,
        responses={200: OrderSerializer},
        description="Move an order along its lifecycle and update tracking/notes"
    )
    def put(self, request, order_id):
        serializer = OrderStatusUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer)

        data = serializer.validated_data
        order = update_order_status(
            order_id,
            data['status'],
            tracking_number=data.get('trackingNumber'),
            notes=data.get('notes'),
        )
        return Response({"message": "Order status updated", "order": OrderSerializer(order).data})


# =============================================================================
# Users
# =============================================================================

class UserSyncView(APIView):
    """
    Create or refresh the caller's profile after sign-in. The role is never
    taken from the request.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(request=UserSyncSerializer, responses={200: UserProfileSerializer})
    def post(self, request):
        serializer = UserSyncSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer)

        data = serializer.validated_data
        user = request.user
        defaults = {
            'email': user.email or data.get('email', ''),
            'last_login': timezone.now(),
        }
        display_name = data.get('displayName') or user.name
        if display_name:
            defaults['display_name'] = display_name
        photo_url = data.get('photoURL') or user.claims.picture
        if photo_url:
            defaults['photo_url'] = photo_url

        profile, created = UserProfile.objects.update_or_create(uid=user.uid, defaults=defaults)
        if created:
            logger.info(f"New user profile {profile.uid} ({profile.email})")
        return Response(
            {"message": "User saved successfully", "user": UserProfileSerializer(profile).data}
        )


class UserRoleView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({"role": request.user.role})


class UserListView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    @extend_schema(responses={200: UserProfileSerializer(many=True)})
    def get(self, request):
        profiles = UserProfile.objects.order_by('-created_at')
        return Response(UserProfileSerializer(profiles, many=True).data)


class UserRoleUpdateView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    @extend_schema(request=RoleUpdateSerializer, responses={200: UserProfileSerializer})
    def put(self, request, uid):
        serializer = RoleUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer)

        profile = UserProfile.objects.filter(uid=uid).first()
        if profile is None:
            raise NotFoundException("User", uid)

        profile.role = serializer.validated_data['role']
        profile.save_fields('role')
        logger.info(f"User {uid} role set to {profile.role} by {request.user}")
        return Response({"message": "User role updated", "user": UserProfileSerializer(profile).data})


class UserDeleteView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    def delete(self, request, uid):
        profile = UserProfile.objects.filter(uid=uid).first()
        if profile is None:
            raise NotFoundException("User", uid)

        try:
            get_token_verifier().delete_user(uid)
        except Exception as e:
            logger.warning(f"Identity provider deletion failed for {uid}: {e}")

        profile.delete()
        logger.info(f"User {uid} deleted by {request.user}")
        return Response({"message": "User deleted successfully"})


# =============================================================================
# Media
# =============================================================================

class ImageUploadView(APIView):
    """Upload a product or settings image to the media host."""
    permission_classes = [IsAuthenticated, HasAdminAccess]
    parser_classes = [MultiPartParser, FormParser]

    @extend_schema(
        request={"multipart/form-data": ImageUploadSerializer},
        responses={200: ImageUploadResponseSerializer},
        description="Upload an image (admin or subadmin) and get its public URL",
    )
    def post(self, request):
        serializer = ImageUploadSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer)

        image = serializer.validated_data["image"]
        folder = serializer.validated_data["folder"]
        url = get_media_uploader().upload_image(image, folder=folder)
        logger.info(f"Image {image.name} uploaded to {folder} by {request.user}")
        return Response({"url": url})


# =============================================================================
# Stats, settings, health
# =============================================================================

class StatsView(APIView):
    """Dashboard counters for staff."""
    permission_classes = [IsAuthenticated, HasAdminAccess]

    def get(self, request):
        active_products = Product.objects.filter(is_active=True)
        revenue = (
            Order.objects.exclude(status=Order.STATUS_CANCELLED)
            .aggregate(revenue=Sum('total'))['revenue']
        )

        orders_by_status = {
            row['status']: row['count']
            for row in Order.objects.values('status').annotate(count=Count('id'))
        }
        products_by_category = {
            row['category']: row['count']
            for row in active_products.values('category').annotate(count=Count('id'))
        }

        return Response({
            "totalUsers": UserProfile.objects.count(),
            "totalProducts": active_products.count(),
            "totalOrders": Order.objects.count(),
            "pendingOrders": orders_by_status.get(Order.STATUS_PENDING, 0),
            "totalRevenue": revenue or 0,
            "ordersByStatus": orders_by_status,
            "productsByCategory": products_by_category,
        })


class SiteSettingsView(APIView):

    def get_permissions(self):
        if self.request.method == 'PUT':
            return [IsAuthenticated(), HasAdminAccess()]
        return [AllowAny()]

    @extend_schema(responses={200: SiteSettingsSerializer})
    def get(self, request):
        return Response(SiteSettingsSerializer(SiteSettings.load()).data)

    @extend_schema(request=SiteSettingsSerializer, responses={200: SiteSettingsSerializer})
    def put(self, request):
        serializer = SiteSettingsSerializer(SiteSettings.load(), data=request.data, partial=True)
        if not serializer.is_valid():
            return invalid_request(serializer)

        site_settings = serializer.save()
        logger.info(f"Site settings updated by {request.user}")
        return Response(SiteSettingsSerializer(site_settings).data)


class HealthCheckView(APIView):
    """
    System health check endpoint.

    Returns the status of the API and database connectivity.
    """
    permission_classes = [AllowAny]

    @extend_schema(
        responses={200: HealthCheckSerializer},
        description="Check system health status"
    )
    def get(self, request):
        db_status = "healthy"
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
        except Exception as e:
            db_status = f"unhealthy: {str(e)}"

        response_data = {
            "status": "healthy" if db_status == "healthy" else "degraded",
            "version": "1.0.0",
            "database": db_status,
            "timestamp": timezone.now().isoformat(),
        }

        return Response(response_data, status=status.HTTP_200_OK)
