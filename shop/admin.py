# shop/admin.py
from django.contrib import admin

from .models import AuditLog, CartItem, Favorite, Order, OrderItem, Product, User


def _money_fmt(minor_units) -> str:
    try:
        return f"{int(minor_units or 0) / 100:.2f}"
    except (TypeError, ValueError):
        return "-"


# ===============================
# User
# ===============================
@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("id", "email", "role", "created_at")
    list_filter = ("role",)
    search_fields = ("email",)
    readonly_fields = ("password_hash", "created_at")


# ===============================
# Product
# ===============================
@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "price_fmt", "stock", "created_at")
    search_fields = ("name", "description")
    # stock moves through checkout and the inventory endpoint only
    readonly_fields = ("stock", "created_at")

    def price_fmt(self, obj):
        return _money_fmt(obj.price)
    price_fmt.short_description = "Price"


# ===============================
# Order / OrderItem
# ===============================
class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ("product", "quantity", "price", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "status", "payment_status", "total_fmt", "invoice_number", "created_at")
    list_filter = ("status", "payment_status")
    search_fields = ("invoice_number", "user__email")
    readonly_fields = ("user", "total_amount", "payment_status", "invoice_number", "paid_at", "created_at", "updated_at")
    inlines = [OrderItemInline]

    def total_fmt(self, obj):
        return _money_fmt(obj.total_amount)
    total_fmt.short_description = "Total"


# ===============================
# Cart / Favorites
# ===============================
@admin.register(CartItem)
class CartItemAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "product", "quantity", "created_at")
    search_fields = ("user__email", "product__name")


@admin.register(Favorite)
class FavoriteAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "product", "created_at")
    search_fields = ("user__email", "product__name")


# ===============================
# AuditLog (read-only)
# ===============================
@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "action", "resource", "user")
    list_filter = ("action", "resource")
    search_fields = ("action", "resource")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
