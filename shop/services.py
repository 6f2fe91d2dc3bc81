# shop/services.py - order engine (checkout / pay / reads) and admin operations
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import timezone as dt_timezone
from functools import wraps
from typing import List, Optional, Tuple

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from .audit import AuditSink
from .errors import BadRequest, NotFound
from .models import CartItem, Order, OrderItem, Product
from .params import OrderListQuery, Pagination

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("pending", "paid", "shipped", "completed", "cancelled")

# PostgreSQL: serialization failure / deadlock detected
PG_RETRY_ERRCODES = {"40001", "40P01"}

# PositiveIntegerField upper bound on every backend
MAX_STOCK = 2**31 - 1


# ======================================================================
# Transaction retry
# ======================================================================
def _sqlstate_from(exc: Exception):
    cause = getattr(exc, "__cause__", None)
    for candidate in (exc, cause):
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return code
    return None


def is_retryable(exc: Exception) -> bool:
    code = _sqlstate_from(exc)
    if code and code in PG_RETRY_ERRCODES:
        return True
    msg = str(exc).lower()
    return any(k in msg for k in ("deadlock detected", "could not serialize access"))


def retry_on_tx_failure(max_attempts: Optional[int] = None, backoff: float = 0.05):
    """
    Re-runs a method that owns its whole transaction when the database aborts
    it with a deadlock or serialization failure. Nothing is retried when the
    caller already holds an atomic block, since that outer transaction is gone.
    """
    def deco(fn):
        @wraps(fn)
        def wrapper(self, *args, **kwargs):
            attempts = max_attempts or getattr(settings, "CHECKOUT_MAX_ATTEMPTS", 3)
            nested = transaction.get_connection(self.using).in_atomic_block
            attempt = 0
            while True:
                attempt += 1
                try:
                    return fn(self, *args, **kwargs)
                except DatabaseError as e:
                    if nested or attempt >= attempts or not is_retryable(e):
                        raise
                    logger.warning(f"{fn.__name__}: retrying after transaction failure (attempt {attempt}/{attempts}): {e}")
                    time.sleep(backoff * attempt)
        return wrapper
    return deco


# ======================================================================
# Helpers
# ======================================================================
def build_invoice_number(order_id: uuid.UUID, now=None) -> str:
    """INV-<UTC YYYYMMDD>-<first 8 chars of the order id>. Not checked for uniqueness."""
    now = now or timezone.now()
    date = now.astimezone(dt_timezone.utc).strftime("%Y%m%d")
    return f"INV-{date}-{str(order_id)[:8]}"


@dataclass
class OrderWithItems:
    order: Order
    items: List[OrderItem] = field(default_factory=list)


# ======================================================================
# Order engine
# ======================================================================
class OrderEngine:
    """
    Cart -> order conversion and the pending -> paid transition.

    Every mutating call runs in a single transaction on the injected database
    alias. Product rows are locked (SELECT ... FOR UPDATE) before any stock
    check and stock is only ever written as `stock - qty`. Audit records go
    out after commit and never affect the result.
    """

    def __init__(self, using: str = DEFAULT_DB_ALIAS, audit: Optional[AuditSink] = None):
        self.using = using
        self.audit = audit or AuditSink(using=using)

    # ---------- checkout ----------
    @retry_on_tx_failure()
    def checkout(self, user_id, address: Optional[str] = None, payment_method: Optional[str] = None) -> OrderWithItems:
        # address / payment_method are request metadata only
        with transaction.atomic(using=self.using):
            lines = self._lock_cart_lines(user_id)
            if not lines:
                raise BadRequest("Cart is empty")

            total_amount = 0
            for line in lines:
                if line.quantity <= 0:
                    raise BadRequest("Cart has invalid quantity")
                if line.product.stock < line.quantity:
                    logger.warning(
                        f"checkout rejected for user {user_id}: product {line.product_id} "
                        f"stock={line.product.stock} requested={line.quantity}"
                    )
                    raise BadRequest(f"Insufficient stock for product {line.product_id}")
                total_amount += int(line.product.price) * int(line.quantity)

            order_id = uuid.uuid4()
            order = Order.objects.using(self.using).create(
                id=order_id,
                user_id=user_id,
                total_amount=total_amount,
                status="pending",
                payment_status="unpaid",
                invoice_number=build_invoice_number(order_id),
            )

            items: List[OrderItem] = []
            for line in lines:
                items.append(OrderItem.objects.using(self.using).create(
                    order=order,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price=line.product.price,
                ))
                self._decrement_stock(line.product_id, line.quantity)

            # only the lines that were locked and ordered
            CartItem.objects.using(self.using).filter(pk__in=[line.pk for line in lines]).delete()

            self.audit.record_on_commit(user_id, "checkout", "orders", {"order_id": str(order.id)})

        logger.info(f"checkout ok: order={order.id} user={user_id} total={total_amount} lines={len(items)}")
        return OrderWithItems(order=order, items=items)

    def _lock_cart_lines(self, user_id) -> List[CartItem]:
        # Locks the cart rows and the joined product rows; product-id order keeps
        # concurrent checkouts acquiring locks in the same sequence.
        return list(
            CartItem.objects.using(self.using)
            .select_for_update()
            .select_related("product")
            .filter(user_id=user_id)
            .order_by("product_id")
        )

    def _decrement_stock(self, product_id, quantity: int) -> None:
        Product.objects.using(self.using).filter(pk=product_id).update(stock=F("stock") - quantity)

    # ---------- payment ----------
    @retry_on_tx_failure()
    def pay_order(self, user_id, order_id, invoice_number: Optional[str] = None) -> OrderWithItems:
        with transaction.atomic(using=self.using):
            order = (
                Order.objects.using(self.using)
                .select_for_update()
                .filter(user_id=user_id, pk=order_id)
                .first()
            )
            if order is None:
                raise NotFound()
            if order.payment_status == "paid":
                raise BadRequest("Order already paid")

            now = timezone.now()
            order.payment_status = "paid"
            order.status = "paid"
            order.paid_at = now
            order.save(using=self.using, update_fields=["payment_status", "status", "paid_at", "updated_at"])

            items = list(OrderItem.objects.using(self.using).filter(order_id=order.id))

            self.audit.record_on_commit(user_id, "order_paid", "orders", {"order_id": str(order.id)})

        logger.info(f"order paid: order={order.id} user={user_id} amount={order.total_amount}")
        return OrderWithItems(order=order, items=items)

    # ---------- reads ----------
    def get_order(self, order_id, user_id=None) -> OrderWithItems:
        """user_id=None is the admin path (no ownership filter)."""
        qs = Order.objects.using(self.using).filter(pk=order_id)
        if user_id is not None:
            qs = qs.filter(user_id=user_id)
        order = qs.first()
        if order is None:
            raise NotFound()
        items = list(OrderItem.objects.using(self.using).filter(order_id=order.id))
        return OrderWithItems(order=order, items=items)

    def list_orders(self, query: OrderListQuery, user_id=None) -> Tuple[List[Order], int, Tuple[int, int]]:
        """Returns (orders, total, (page, per_page))."""
        page, per_page, offset = query.pagination.normalize()

        qs = Order.objects.using(self.using).all()
        if user_id is not None:
            qs = qs.filter(user_id=user_id)
        if query.status:
            qs = qs.filter(status=query.status)

        if query.sort_order == "asc":
            qs = qs.order_by("created_at", "id")
        else:
            qs = qs.order_by("-created_at", "-id")

        total = qs.count()
        orders = list(qs[offset:offset + per_page])
        return orders, total, (page, per_page)


# ======================================================================
# Admin operations
# ======================================================================
class AdminService:
    """Status changes and inventory for admins; reads go through OrderEngine."""

    def __init__(self, using: str = DEFAULT_DB_ALIAS, audit: Optional[AuditSink] = None):
        self.using = using
        self.audit = audit or AuditSink(using=using)

    def update_order_status(self, actor_id, order_id, status: str) -> Order:
        if status not in ORDER_STATUSES:
            raise BadRequest("Invalid order status")

        updated = Order.objects.using(self.using).filter(pk=order_id).update(
            status=status,
            updated_at=timezone.now(),
        )
        if not updated:
            raise NotFound()

        order = Order.objects.using(self.using).get(pk=order_id)
        self.audit.record(actor_id, "order_status_update", "orders",
                          {"order_id": str(order.id), "status": order.status})
        return order

    def list_low_stock(self, threshold: int, pagination: Pagination) -> Tuple[List[Product], int, Tuple[int, int]]:
        page, per_page, offset = pagination.normalize()
        qs = Product.objects.using(self.using).filter(stock__lte=threshold).order_by("stock", "-created_at")
        total = qs.count()
        return list(qs[offset:offset + per_page]), total, (page, per_page)

    @retry_on_tx_failure()
    def adjust_inventory(self, actor_id, product_id, delta: int) -> Product:
        if delta == 0:
            raise BadRequest("delta must not be 0")

        with transaction.atomic(using=self.using):
            product = (
                Product.objects.using(self.using)
                .select_for_update()
                .filter(pk=product_id)
                .first()
            )
            if product is None:
                raise NotFound()
            if product.stock + delta < 0:
                raise BadRequest("stock cannot be negative")
            if product.stock + delta > MAX_STOCK:
                raise BadRequest("stock is too large")

            Product.objects.using(self.using).filter(pk=product.pk).update(stock=F("stock") + delta)
            product.refresh_from_db(using=self.using, fields=["stock"])

            self.audit.record_on_commit(actor_id, "inventory_adjust", "products",
                                        {"product_id": str(product.id), "delta": delta})

        logger.info(f"inventory adjusted: product={product.id} delta={delta} stock={product.stock}")
        return product
