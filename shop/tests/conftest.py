import pytest
from django.contrib.auth.hashers import make_password
from rest_framework.test import APIClient

from shop.authentication import issue_token
from shop.models import CartItem, Product, User


@pytest.fixture
def make_user(db):
    def _make(email="user@test.com", password="secret-pw", role="user"):
        return User.objects.create(email=email, password_hash=make_password(password), role=role)
    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def admin_user(make_user):
    return make_user(email="admin@test.com", role="admin")


@pytest.fixture
def make_product(db):
    def _make(name="Widget", price=1000, stock=10, description=None):
        return Product.objects.create(name=name, price=price, stock=stock, description=description)
    return _make


@pytest.fixture
def add_to_cart(db):
    def _add(user, product, quantity):
        return CartItem.objects.create(user=user, product=product, quantity=quantity)
    return _add


@pytest.fixture
def api_client():
    return APIClient()


def _client_for(u):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token(u.id, u.role)}")
    return client


@pytest.fixture
def user_client(user):
    return _client_for(user)


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)
