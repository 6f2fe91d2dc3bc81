# shop/params.py - pagination and list query parameters
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from .errors import BadRequest

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100

# signed 64-bit column range; page is capped so the OFFSET stays inside it
INT64_MAX = 2**63 - 1
INT64_MIN = -(2**63)
MAX_PAGE = INT64_MAX // MAX_PER_PAGE

SORT_ORDERS = ("asc", "desc")


def _to_int(raw, name: str) -> Optional[int]:
    if raw is None or str(raw).strip() == "":
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise BadRequest(f"{name} must be an integer")
    if not INT64_MIN <= value <= INT64_MAX:
        raise BadRequest(f"{name} is out of range")
    return value


@dataclass
class Pagination:
    page: Optional[int] = None
    per_page: Optional[int] = None

    def normalize(self) -> Tuple[int, int, int]:
        """(page, per_page, offset) with page in [1, MAX_PAGE] and per_page clamped to [1, 100]."""
        page = min(max(self.page if self.page is not None else 1, 1), MAX_PAGE)
        per_page = self.per_page if self.per_page is not None else DEFAULT_PER_PAGE
        per_page = min(max(per_page, 1), MAX_PER_PAGE)
        offset = (page - 1) * per_page
        return page, per_page, offset

    @classmethod
    def from_query(cls, qp: Mapping) -> "Pagination":
        return cls(page=_to_int(qp.get("page"), "page"), per_page=_to_int(qp.get("per_page"), "per_page"))


def parse_sort_order(raw, default: str = "desc") -> str:
    value = (raw or "").strip().lower()
    if not value:
        return default
    if value not in SORT_ORDERS:
        raise BadRequest("sort_order must be one of: asc, desc")
    return value


@dataclass
class OrderListQuery:
    pagination: Pagination
    status: Optional[str] = None
    sort_order: str = "desc"

    @classmethod
    def from_query(cls, qp: Mapping) -> "OrderListQuery":
        status = (qp.get("status") or "").strip() or None
        return cls(
            pagination=Pagination.from_query(qp),
            status=status,
            sort_order=parse_sort_order(qp.get("sort_order")),
        )


def parse_threshold(raw, default: int) -> int:
    value = _to_int(raw, "threshold")
    return default if value is None else value
