# shop/customer_views.py - registration/login, cart and favorites for the current user
from __future__ import annotations

from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated

from .accounts import login_user, register_user
from .audit import AuditSink
from .errors import BadRequest, NotFound
from .models import CartItem, Favorite, Product
from .params import Pagination
from .responses import api_response, meta
from .serializers import (
    AddFavoriteSerializer,
    AddToCartSerializer,
    CartItemSerializer,
    CartRowSerializer,
    CredentialsSerializer,
    FavoriteSerializer,
    ProductSerializer,
    UserSerializer,
)


# ---------------------------
# Auth
# ---------------------------
@csrf_exempt
@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def register(request):
    """
    Body: { "email": "...", "password": "..." }
    New accounts always get role "user".
    """
    ser = CredentialsSerializer(data=request.data or {})
    ser.is_valid(raise_exception=True)
    user = register_user(ser.validated_data["email"], ser.validated_data["password"], AuditSink())
    return api_response("User created", UserSerializer(user).data, status=status.HTTP_201_CREATED)


@csrf_exempt
@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def login(request):
    ser = CredentialsSerializer(data=request.data or {})
    ser.is_valid(raise_exception=True)
    token = login_user(ser.validated_data["email"], ser.validated_data["password"], AuditSink())
    return api_response("Logged in", {"token": token})


# ---------------------------
# Cart
# ---------------------------
def _cart_list(request):
    page, per_page, offset = Pagination.from_query(request.query_params).normalize()
    qs = (
        CartItem.objects.select_related("product")
        .filter(user_id=request.user.user_id)
        .order_by("-created_at", "-id")
    )
    total = qs.count()
    data = {"items": CartItemSerializer(qs[offset:offset + per_page], many=True).data}
    return api_response("Cart", data, meta(page, per_page, total))


def _cart_add(request):
    ser = AddToCartSerializer(data=request.data or {})
    ser.is_valid(raise_exception=True)
    product_id = ser.validated_data["product_id"]
    quantity = ser.validated_data["quantity"]

    if quantity <= 0:
        raise BadRequest("quantity must be greater than 0")
    if not Product.objects.filter(pk=product_id).exists():
        raise BadRequest("product not found")

    # quantity is replaced, not accumulated
    item, _created = CartItem.objects.update_or_create(
        user_id=request.user.user_id,
        product_id=product_id,
        defaults={"quantity": quantity},
    )
    AuditSink().record(request.user.user_id, "cart_update", "cart",
                       {"product_id": str(product_id), "quantity": quantity})
    return api_response("Cart updated", CartRowSerializer(item).data)


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def cart(request):
    if request.method == "GET":
        return _cart_list(request)
    return _cart_add(request)


@api_view(["DELETE"])
@permission_classes([IsAuthenticated])
def cart_remove(request, product_id):
    deleted, _ = CartItem.objects.filter(user_id=request.user.user_id, product_id=product_id).delete()
    if not deleted:
        raise NotFound()
    AuditSink().record(request.user.user_id, "cart_remove", "cart", {"product_id": str(product_id)})
    return api_response("Removed from cart", {})


# ---------------------------
# Favorites
# ---------------------------
def _favorites_list(request):
    page, per_page, offset = Pagination.from_query(request.query_params).normalize()
    qs = (
        Favorite.objects.select_related("product")
        .filter(user_id=request.user.user_id)
        .order_by("-created_at", "-id")
    )
    total = qs.count()
    products = [fav.product for fav in qs[offset:offset + per_page]]
    data = {"items": ProductSerializer(products, many=True).data}
    return api_response("Favorites", data, meta(page, per_page, total))


def _favorites_add(request):
    ser = AddFavoriteSerializer(data=request.data or {})
    ser.is_valid(raise_exception=True)
    product_id = ser.validated_data["product_id"]

    if not Product.objects.filter(pk=product_id).exists():
        raise BadRequest("Product not found")

    fav, _created = Favorite.objects.get_or_create(user_id=request.user.user_id, product_id=product_id)
    AuditSink().record(request.user.user_id, "favorite_add", "favorites", {"product_id": str(product_id)})
    return api_response("Added to favorites", FavoriteSerializer(fav).data)


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def favorites(request):
    if request.method == "GET":
        return _favorites_list(request)
    return _favorites_add(request)


@api_view(["DELETE"])
@permission_classes([IsAuthenticated])
def favorite_remove(request, product_id):
    deleted, _ = Favorite.objects.filter(user_id=request.user.user_id, product_id=product_id).delete()
    if not deleted:
        raise NotFound()
    AuditSink().record(request.user.user_id, "favorite_remove", "favorites", {"product_id": str(product_id)})
    return api_response("Removed from favorites", {})
