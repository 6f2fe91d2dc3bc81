import uuid

import pytest

from shop.authentication import issue_token
from shop.models import AuditLog, CartItem, Favorite, Order, Product, User
from shop.services import OrderEngine

pytestmark = pytest.mark.django_db(transaction=True)


# ---------- health / auth ----------
def test_health(api_client):
    resp = api_client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {
        "message": "Health check",
        "data": {"status": "ok"},
        "meta": {"page": None, "per_page": None, "total": None},
    }


def test_register_and_login(api_client):
    resp = api_client.post("/api/auth/register", {"email": " New@Test.com ", "password": "pw-123456"}, format="json")
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "User created"
    assert body["data"]["email"] == "new@test.com"
    assert body["data"]["role"] == "user"
    assert "password_hash" not in body["data"]

    dup = api_client.post("/api/auth/register", {"email": "new@test.com", "password": "other"}, format="json")
    assert dup.status_code == 400
    assert dup.json()["data"] == {"error": "Email is already taken"}

    login = api_client.post("/api/auth/login", {"email": "new@test.com", "password": "pw-123456"}, format="json")
    assert login.status_code == 200
    assert login.json()["message"] == "Logged in"
    assert login.json()["data"]["token"].startswith("Bearer ")

    user = User.objects.get(email="new@test.com")
    assert AuditLog.objects.filter(user=user, action__in=["user_register", "user_login"]).count() == 2


def test_login_wrong_password(api_client, user):
    resp = api_client.post("/api/auth/login", {"email": user.email, "password": "nope"}, format="json")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid email or password"


def test_register_validation_error(api_client):
    resp = api_client.post("/api/auth/register", {"email": "not-an-email"}, format="json")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Validation error"
    assert "email" in resp.json()["data"]["error"]


def test_missing_and_invalid_tokens_are_401(api_client):
    assert api_client.get("/api/orders").status_code == 401

    api_client.credentials(HTTP_AUTHORIZATION="Bearer not-a-jwt")
    resp = api_client.get("/api/orders")
    assert resp.status_code == 401
    assert resp.json()["message"] == "Unauthorized"


def test_issued_token_round_trips_through_login(api_client, user):
    resp = api_client.post("/api/auth/login", {"email": user.email, "password": "secret-pw"}, format="json")
    api_client.credentials(HTTP_AUTHORIZATION=resp.json()["data"]["token"])
    assert api_client.get("/api/orders").status_code == 200


# ---------- products ----------
def test_product_list_search_filter_sort_and_paginate(api_client, make_product):
    make_product(name="Red shirt", price=2000, description="cotton")
    make_product(name="Blue shirt", price=1500)
    make_product(name="Green hat", price=900, description="wool shirt-like")
    make_product(name="Mug", price=500)

    resp = api_client.get("/api/products", {"q": "shirt", "sort_by": "price", "sort_order": "asc"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Products"
    assert [p["name"] for p in body["data"]["items"]] == ["Green hat", "Blue shirt", "Red shirt"]
    assert body["meta"] == {"page": 1, "per_page": 20, "total": 3}

    resp = api_client.get("/api/products", {"min_price": 900, "max_price": 1500, "sort_by": "name", "sort_order": "asc"})
    assert [p["name"] for p in resp.json()["data"]["items"]] == ["Blue shirt", "Green hat"]

    resp = api_client.get("/api/products", {"per_page": 2, "page": 2, "sort_by": "price"})
    body = resp.json()
    assert body["meta"] == {"page": 2, "per_page": 2, "total": 4}
    assert [p["price"] for p in body["data"]["items"]] == [900, 500]


def test_product_list_rejects_unknown_sort(api_client):
    resp = api_client.get("/api/products", {"sort_by": "stock"})
    assert resp.status_code == 400


def test_product_writes_are_admin_only(api_client, user_client, admin_client):
    payload = {"name": "Lamp", "price": 4500, "stock": 3}
    assert api_client.post("/api/products", payload, format="json").status_code == 401

    forbidden = user_client.post("/api/products", payload, format="json")
    assert forbidden.status_code == 403
    assert forbidden.json()["message"] == "Forbidden"

    created = admin_client.post("/api/products", payload, format="json")
    assert created.status_code == 201
    assert created.json()["message"] == "Product created"
    product_id = created.json()["data"]["id"]
    assert AuditLog.objects.filter(action="product_create").count() == 1

    updated = admin_client.patch(f"/api/products/{product_id}", {"price": 4000, "stock": 999}, format="json")
    assert updated.status_code == 200
    assert updated.json()["data"]["price"] == 4000
    assert updated.json()["data"]["stock"] == 3

    deleted = admin_client.delete(f"/api/products/{product_id}")
    assert deleted.status_code == 200
    assert not Product.objects.filter(pk=product_id).exists()
    assert api_client.get(f"/api/products/{product_id}").status_code == 404


def test_product_with_orders_cannot_be_deleted(admin_client, user, make_product, add_to_cart):
    product = make_product()
    add_to_cart(user, product, 1)
    OrderEngine().checkout(user.id)

    resp = admin_client.delete(f"/api/products/{product.id}")
    assert resp.status_code == 400
    assert Product.objects.filter(pk=product.id).exists()


# ---------- cart ----------
def test_cart_add_replace_list_and_remove(user_client, user, make_product):
    product = make_product(stock=10)

    resp = user_client.post("/api/cart", {"product_id": str(product.id), "quantity": 2}, format="json")
    assert resp.status_code == 200
    resp = user_client.post("/api/cart", {"product_id": str(product.id), "quantity": 5}, format="json")
    assert resp.json()["data"]["quantity"] == 5
    assert CartItem.objects.get(user=user).quantity == 5

    listing = user_client.get("/api/cart").json()
    assert listing["meta"]["total"] == 1
    assert listing["data"]["items"][0]["product"]["id"] == str(product.id)

    removed = user_client.delete(f"/api/cart/{product.id}")
    assert removed.status_code == 200
    assert removed.json()["message"] == "Removed from cart"
    assert user_client.delete(f"/api/cart/{product.id}").status_code == 404
    assert AuditLog.objects.filter(action="cart_update").count() == 2
    assert AuditLog.objects.filter(action="cart_remove").count() == 1


def test_cart_add_validation(user_client, make_product):
    product = make_product()
    resp = user_client.post("/api/cart", {"product_id": str(product.id), "quantity": 0}, format="json")
    assert resp.status_code == 400
    assert resp.json()["message"] == "quantity must be greater than 0"

    resp = user_client.post("/api/cart", {"product_id": str(uuid.uuid4()), "quantity": 1}, format="json")
    assert resp.status_code == 400
    assert resp.json()["message"] == "product not found"


# ---------- favorites ----------
def test_favorites_are_idempotent(user_client, user, make_product):
    product = make_product()
    for _ in range(2):
        resp = user_client.post("/api/favorites", {"product_id": str(product.id)}, format="json")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Added to favorites"
    assert Favorite.objects.filter(user=user).count() == 1

    listing = user_client.get("/api/favorites").json()
    assert [p["id"] for p in listing["data"]["items"]] == [str(product.id)]

    missing = user_client.post("/api/favorites", {"product_id": str(uuid.uuid4())}, format="json")
    assert missing.status_code == 400
    assert missing.json()["message"] == "Product not found"

    assert user_client.delete(f"/api/favorites/{product.id}").json()["message"] == "Removed from favorites"
    assert user_client.delete(f"/api/favorites/{product.id}").status_code == 404


# ---------- orders ----------
def test_checkout_and_pay_flow(user_client, user, make_product):
    product = make_product(price=1000, stock=10)
    user_client.post("/api/cart", {"product_id": str(product.id), "quantity": 2}, format="json")

    resp = user_client.post("/api/orders/checkout", {"address": "Main St 1", "payment_method": "card"}, format="json")
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Checkout success"
    order = body["data"]["order"]
    assert order["total_amount"] == 2000
    assert order["status"] == "pending"
    assert order["payment_status"] == "unpaid"
    assert order["user_id"] == str(user.id)
    assert body["data"]["items"][0]["price"] == 1000
    product.refresh_from_db()
    assert product.stock == 8

    detail = user_client.get(f"/api/orders/{order['id']}")
    assert detail.status_code == 200
    assert detail.json()["message"] == "OK"

    paid = user_client.post(f"/api/orders/{order['id']}/pay", format="json")
    assert paid.status_code == 200
    assert paid.json()["message"] == "Payment recorded"
    assert paid.json()["data"]["order"]["status"] == "paid"
    assert paid.json()["data"]["order"]["paid_at"] is not None

    again = user_client.post(f"/api/orders/{order['id']}/pay", format="json")
    assert again.status_code == 400
    assert again.json() == {
        "message": "Order already paid",
        "data": {"error": "Order already paid"},
        "meta": {"page": None, "per_page": None, "total": None},
    }

    listing = user_client.get("/api/orders", {"status": "paid"}).json()
    assert listing["message"] == "Ok"
    assert listing["meta"]["total"] == 1


def test_checkout_empty_cart_endpoint(user_client):
    resp = user_client.post("/api/orders/checkout", format="json")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cart is empty"
    assert Order.objects.count() == 0


def test_checkout_insufficient_stock_endpoint(user_client, user, make_product, add_to_cart):
    product = make_product(stock=3)
    add_to_cart(user, product, 5)

    resp = user_client.post("/api/orders/checkout", format="json")
    assert resp.status_code == 400
    assert resp.json()["message"] == f"Insufficient stock for product {product.id}"
    product.refresh_from_db()
    assert product.stock == 3


def test_orders_of_other_users_are_hidden(user_client, make_user, make_product, add_to_cart):
    other = make_user(email="other@test.com")
    add_to_cart(other, make_product(), 1)
    order = OrderEngine().checkout(other.id).order

    assert user_client.get(f"/api/orders/{order.id}").status_code == 404
    assert user_client.post(f"/api/orders/{order.id}/pay", format="json").status_code == 404
    assert user_client.get("/api/orders").json()["meta"]["total"] == 0


# ---------- admin ----------
def test_admin_endpoints_reject_plain_users(user_client):
    for path in ("/api/admin/orders", "/api/admin/inventory/low-stock"):
        resp = user_client.get(path)
        assert resp.status_code == 403
        assert resp.json()["message"] == "Forbidden"


def test_admin_order_management(admin_client, user, make_product, add_to_cart):
    add_to_cart(user, make_product(), 1)
    order = OrderEngine().checkout(user.id).order

    listing = admin_client.get("/api/admin/orders").json()
    assert listing["message"] == "Orders"
    assert listing["meta"]["total"] == 1

    detail = admin_client.get(f"/api/admin/orders/{order.id}")
    assert detail.json()["message"] == "Order found"

    resp = admin_client.patch(f"/api/admin/orders/{order.id}/status", {"status": "shipped"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Order updated"
    assert resp.json()["data"]["status"] == "shipped"

    bad = admin_client.patch(f"/api/admin/orders/{order.id}/status", {"status": "lost"}, format="json")
    assert bad.status_code == 400
    assert bad.json()["message"] == "Invalid order status"

    missing = admin_client.patch(f"/api/admin/orders/{uuid.uuid4()}/status", {"status": "paid"}, format="json")
    assert missing.status_code == 404


def test_admin_inventory(admin_client, make_product, settings):
    settings.LOW_STOCK_THRESHOLD = 5
    make_product(name="plenty", stock=50)
    low = make_product(name="low", stock=1)

    resp = admin_client.get("/api/admin/inventory/low-stock")
    assert resp.json()["message"] == "Low stock"
    assert [p["id"] for p in resp.json()["data"]["items"]] == [str(low.id)]

    resp = admin_client.get("/api/admin/inventory/low-stock", {"threshold": 100})
    assert resp.json()["meta"]["total"] == 2

    resp = admin_client.patch(f"/api/admin/inventory/{low.id}", {"delta": 9}, format="json")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Inventory updated"
    assert resp.json()["data"]["stock"] == 10

    resp = admin_client.patch(f"/api/admin/inventory/{low.id}", {"delta": -11}, format="json")
    assert resp.status_code == 400
    assert resp.json()["message"] == "stock cannot be negative"


def test_token_for_admin_role_reaches_admin_routes(api_client, admin_user):
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token(admin_user.id, 'admin')}")
    assert api_client.get("/api/admin/orders").status_code == 200


def test_seed_is_gated(admin_client, settings):
    settings.DEBUG = False
    settings.ENABLE_SEED = False
    assert admin_client.post("/api/products/seed", format="json").status_code == 400

    settings.ENABLE_SEED = True
    resp = admin_client.post("/api/products/seed", format="json")
    assert resp.status_code == 201
    assert Product.objects.count() == resp.json()["data"]["created"] == 12


# ---------- input bounds / error pages ----------
def test_oversized_page_is_a_bad_request(user_client):
    resp = user_client.get("/api/orders", {"page": "99999999999999999999"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "page is out of range"

    resp = user_client.get("/api/orders", {"page": str(2**62)})
    assert resp.status_code == 200
    assert resp.json()["data"]["items"] == []


def test_oversized_cart_quantity_is_a_bad_request(user_client, user, make_product):
    product = make_product()
    resp = user_client.post("/api/cart", {"product_id": str(product.id), "quantity": 10**20}, format="json")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Validation error"
    assert "quantity" in resp.json()["data"]["error"]
    assert not CartItem.objects.filter(user=user).exists()


def test_oversized_inventory_delta_is_a_bad_request(admin_client, make_product):
    product = make_product(stock=4)
    for delta in (10**20, -(10**20)):
        resp = admin_client.patch(f"/api/admin/inventory/{product.id}", {"delta": delta}, format="json")
        assert resp.status_code == 400
    product.refresh_from_db()
    assert product.stock == 4


def test_unmatched_route_returns_json_envelope(user_client):
    resp = user_client.get("/api/orders/not-a-uuid")
    assert resp.status_code == 404
    assert resp["Content-Type"] == "application/json"
    assert resp.json() == {
        "message": "Not Found",
        "data": {"error": "Not Found"},
        "meta": {"page": None, "per_page": None, "total": None},
    }


def test_register_applies_password_validators(api_client):
    resp = api_client.post("/api/auth/register", {"email": "weak@test.com", "password": "123"}, format="json")
    assert resp.status_code == 400
    assert "too short" in resp.json()["message"]
    assert not User.objects.filter(email="weak@test.com").exists()
