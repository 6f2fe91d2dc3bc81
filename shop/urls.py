# shop/urls.py - explicit routes, no trailing slash
from django.urls import path

from . import customer_views as cust_views
from . import views

product_list = views.ProductViewSet.as_view({"get": "list", "post": "create"})
product_detail = views.ProductViewSet.as_view({
    "get": "retrieve",
    "put": "update",
    "patch": "partial_update",
    "delete": "destroy",
})
product_seed = views.ProductViewSet.as_view({"post": "seed"})

urlpatterns = [
    # Auth
    path("auth/register", cust_views.register, name="auth-register"),
    path("auth/login", cust_views.login, name="auth-login"),

    # Catalog
    path("products", product_list, name="product-list"),
    path("products/seed", product_seed, name="product-seed"),
    path("products/<uuid:pk>", product_detail, name="product-detail"),

    # Cart / Favorites
    path("cart", cust_views.cart, name="cart"),
    path("cart/<uuid:product_id>", cust_views.cart_remove, name="cart-remove"),
    path("favorites", cust_views.favorites, name="favorites"),
    path("favorites/<uuid:product_id>", cust_views.favorite_remove, name="favorite-remove"),

    # Orders
    path("orders", views.orders_list, name="orders-list"),
    path("orders/checkout", views.orders_checkout, name="orders-checkout"),
    path("orders/<uuid:order_id>", views.order_detail, name="order-detail"),
    path("orders/<uuid:order_id>/pay", views.order_pay, name="order-pay"),

    # Admin
    path("admin/orders", views.admin_orders_list, name="admin-orders-list"),
    path("admin/orders/<uuid:order_id>", views.admin_order_detail, name="admin-order-detail"),
    path("admin/orders/<uuid:order_id>/status", views.admin_order_status, name="admin-order-status"),
    path("admin/inventory/low-stock", views.admin_low_stock, name="admin-low-stock"),
    path("admin/inventory/<uuid:product_id>", views.admin_inventory_adjust, name="admin-inventory-adjust"),
]
