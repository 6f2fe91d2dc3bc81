# shop/serializers.py - read serializers for the envelope payloads + request (write) serializers
from rest_framework import serializers

from .models import CartItem, Favorite, Order, OrderItem, Product, User

# 32-bit column bound for cart quantities and stock deltas
MAX_QUANTITY = 2**31 - 1


# --------- Users ---------
class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "email", "role", "created_at"]


class CredentialsSerializer(serializers.Serializer):
    email = serializers.EmailField(max_length=255)
    password = serializers.CharField(min_length=1, max_length=128, trim_whitespace=False)


# --------- Products ---------
class ProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ["id", "name", "description", "price", "stock", "created_at"]
        read_only_fields = ["id", "created_at"]


class ProductUpdateSerializer(serializers.ModelSerializer):
    # stock changes only through inventory adjustment or checkout
    class Meta:
        model = Product
        fields = ["id", "name", "description", "price", "stock", "created_at"]
        read_only_fields = ["id", "stock", "created_at"]


PRODUCT_SORT_FIELDS = ("created_at", "price", "name")


# --------- Cart / Favorites ---------
class CartItemSerializer(serializers.ModelSerializer):
    product = ProductSerializer(read_only=True)

    class Meta:
        model = CartItem
        fields = ["id", "product", "quantity"]


class CartRowSerializer(serializers.ModelSerializer):
    class Meta:
        model = CartItem
        fields = ["id", "user_id", "product_id", "quantity", "created_at"]


class AddToCartSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(max_value=MAX_QUANTITY)


class FavoriteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Favorite
        fields = ["id", "user_id", "product_id", "created_at"]


class AddFavoriteSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()


# ===========================
#  ORDER / ITEMS (READ)
# ===========================
class OrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = [
            "id",
            "user_id",
            "total_amount",
            "status",
            "payment_status",
            "invoice_number",
            "paid_at",
            "created_at",
            "updated_at",
        ]


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ["id", "order_id", "product_id", "quantity", "price", "created_at"]


def order_with_items_data(result):
    """OrderWithItems -> {"order": {...}, "items": [...]}"""
    return {
        "order": OrderSerializer(result.order).data,
        "items": OrderItemSerializer(result.items, many=True).data,
    }


# ===========================
#  ORDER REQUESTS (WRITE)
# ===========================
class CheckoutSerializer(serializers.Serializer):
    # pass-through metadata, no invariants attached
    address = serializers.CharField(required=False, allow_blank=True, default="")
    payment_method = serializers.CharField(required=False, allow_blank=True, default="")


class PayOrderSerializer(serializers.Serializer):
    invoice_number = serializers.CharField(required=False, allow_blank=True, default="")


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.CharField()


class InventoryAdjustSerializer(serializers.Serializer):
    delta = serializers.IntegerField(min_value=-MAX_QUANTITY, max_value=MAX_QUANTITY)

