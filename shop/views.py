# shop/views.py - health, products (ViewSet), orders and admin endpoints
import random

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS
from django.db.models import ProtectedError
from django.http import JsonResponse
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status, viewsets
from rest_framework.decorators import action, api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated

from .audit import AuditSink
from .errors import BadRequest, NotFound
from .filters import ProductFilter
from .models import Product
from .params import OrderListQuery, Pagination, parse_sort_order, parse_threshold
from .permissions import IsAdmin
from .responses import api_response, envelope, meta
from .serializers import (
    PRODUCT_SORT_FIELDS,
    CheckoutSerializer,
    InventoryAdjustSerializer,
    OrderSerializer,
    PayOrderSerializer,
    ProductSerializer,
    ProductUpdateSerializer,
    UpdateOrderStatusSerializer,
    order_with_items_data,
)
from .services import AdminService, OrderEngine


def order_engine() -> OrderEngine:
    return OrderEngine(using=DEFAULT_DB_ALIAS, audit=AuditSink(using=DEFAULT_DB_ALIAS))


def admin_service() -> AdminService:
    return AdminService(using=DEFAULT_DB_ALIAS, audit=AuditSink(using=DEFAULT_DB_ALIAS))


# -------------------------------------------------
# Health
# -------------------------------------------------
@api_view(["GET"])
@authentication_classes([])
@permission_classes([AllowAny])
def health(_request):
    return api_response("Health check", {"status": "ok"})


# -------------------------------------------------
# Django-level error pages (unmatched routes, crashes outside DRF)
# -------------------------------------------------
def not_found(_request, exception=None):
    message = "Not Found"
    return JsonResponse(envelope(message, {"error": message}), status=404)


def server_error(_request):
    message = "Internal Server Error"
    return JsonResponse(envelope(message, {"error": message}), status=500)


# -------------------------------------------------
# Products (public reads, admin writes)
# -------------------------------------------------
class ProductViewSet(viewsets.GenericViewSet):
    serializer_class = ProductSerializer
    queryset = Product.objects.all()
    filter_backends = [DjangoFilterBackend]
    filterset_class = ProductFilter

    def get_permissions(self):
        if self.action in ("list", "retrieve"):
            return [AllowAny()]
        return [IsAdmin()]

    def _get_product(self, pk) -> Product:
        product = Product.objects.filter(pk=pk).first()
        if product is None:
            raise NotFound()
        return product

    def list(self, request):
        qp = request.query_params
        page, per_page, offset = Pagination.from_query(qp).normalize()

        sort_by = (qp.get("sort_by") or "created_at").strip().lower()
        if sort_by not in PRODUCT_SORT_FIELDS:
            raise BadRequest("sort_by must be one of: created_at, price, name")
        sort_order = parse_sort_order(qp.get("sort_order"))
        prefix = "-" if sort_order == "desc" else ""

        qs = self.filter_queryset(self.get_queryset()).order_by(f"{prefix}{sort_by}", f"{prefix}id")
        total = qs.count()
        items = ProductSerializer(qs[offset:offset + per_page], many=True).data
        return api_response("Products", {"items": items}, meta(page, per_page, total))

    def retrieve(self, request, pk=None):
        return api_response("Product", ProductSerializer(self._get_product(pk)).data)

    def create(self, request):
        ser = ProductSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        product = ser.save()
        AuditSink().record(request.user.user_id, "product_create", "products", {"product_id": str(product.id)})
        return api_response("Product created", ProductSerializer(product).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None, partial=False):
        product = self._get_product(pk)
        ser = ProductUpdateSerializer(product, data=request.data, partial=partial)
        ser.is_valid(raise_exception=True)
        product = ser.save()
        AuditSink().record(request.user.user_id, "product_update", "products", {"product_id": str(product.id)})
        return api_response("Updated", ProductSerializer(product).data)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    def destroy(self, request, pk=None):
        product = self._get_product(pk)
        product_id = str(product.id)
        try:
            product.delete()
        except ProtectedError:
            raise BadRequest("Product has orders and cannot be deleted")
        AuditSink().record(request.user.user_id, "product_delete", "products", {"product_id": product_id})
        return api_response("Deleted", {})

    @action(detail=False, methods=["post"])
    def seed(self, request):
        if not (getattr(settings, "ENABLE_SEED", False) or settings.DEBUG):
            raise BadRequest("Seed disabled")
        created = 0
        for n in range(12):
            Product.objects.create(
                name=f"Sample product {n + 1}",
                description="",
                price=random.choice([5990, 9900, 12990, 19990, 29990]),
                stock=random.randint(0, 50),
            )
            created += 1
        AuditSink().record(request.user.user_id, "product_seed", "products", {"created": created})
        return api_response("Seeded", {"created": created}, status=status.HTTP_201_CREATED)


# -------------------------------------------------
# Orders (current user)
# -------------------------------------------------
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def orders_list(request):
    query = OrderListQuery.from_query(request.query_params)
    orders, total, (page, per_page) = order_engine().list_orders(query, user_id=request.user.user_id)
    data = {"items": OrderSerializer(orders, many=True).data}
    return api_response("Ok", data, meta(page, per_page, total))


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def orders_checkout(request):
    ser = CheckoutSerializer(data=request.data or {})
    ser.is_valid(raise_exception=True)
    result = order_engine().checkout(
        request.user.user_id,
        address=ser.validated_data.get("address"),
        payment_method=ser.validated_data.get("payment_method"),
    )
    return api_response("Checkout success", order_with_items_data(result))


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def order_detail(request, order_id):
    result = order_engine().get_order(order_id, user_id=request.user.user_id)
    return api_response("OK", order_with_items_data(result))


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def order_pay(request, order_id):
    ser = PayOrderSerializer(data=request.data or {})
    ser.is_valid(raise_exception=True)
    result = order_engine().pay_order(
        request.user.user_id,
        order_id,
        invoice_number=ser.validated_data.get("invoice_number"),
    )
    return api_response("Payment recorded", order_with_items_data(result))


# -------------------------------------------------
# Admin
# -------------------------------------------------
@api_view(["GET"])
@permission_classes([IsAdmin])
def admin_orders_list(request):
    query = OrderListQuery.from_query(request.query_params)
    orders, total, (page, per_page) = order_engine().list_orders(query, user_id=None)
    data = {"items": OrderSerializer(orders, many=True).data}
    return api_response("Orders", data, meta(page, per_page, total))


@api_view(["GET"])
@permission_classes([IsAdmin])
def admin_order_detail(request, order_id):
    result = order_engine().get_order(order_id, user_id=None)
    return api_response("Order found", order_with_items_data(result))


@api_view(["PATCH"])
@permission_classes([IsAdmin])
def admin_order_status(request, order_id):
    ser = UpdateOrderStatusSerializer(data=request.data or {})
    ser.is_valid(raise_exception=True)
    order = admin_service().update_order_status(request.user.user_id, order_id, ser.validated_data["status"])
    return api_response("Order updated", OrderSerializer(order).data)


@api_view(["GET"])
@permission_classes([IsAdmin])
def admin_low_stock(request):
    qp = request.query_params
    threshold = parse_threshold(qp.get("threshold"), settings.LOW_STOCK_THRESHOLD)
    products, total, (page, per_page) = admin_service().list_low_stock(threshold, Pagination.from_query(qp))
    data = {"items": ProductSerializer(products, many=True).data}
    return api_response("Low stock", data, meta(page, per_page, total))


@api_view(["PATCH"])
@permission_classes([IsAdmin])
def admin_inventory_adjust(request, product_id):
    ser = InventoryAdjustSerializer(data=request.data or {})
    ser.is_valid(raise_exception=True)
    product = admin_service().adjust_inventory(request.user.user_id, product_id, ser.validated_data["delta"])
    return api_response("Inventory updated", ProductSerializer(product).data)
