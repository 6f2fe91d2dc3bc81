# shop/responses.py - uniform {message, data, meta} envelope
from typing import Any, Dict, Optional

from rest_framework import status as http_status
from rest_framework.response import Response


def meta(page: Optional[int] = None, per_page: Optional[int] = None, total: Optional[int] = None) -> Dict[str, Any]:
    return {"page": page, "per_page": per_page, "total": total}


def envelope(message: str, data: Any = None, meta_block: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"message": message, "data": data, "meta": meta_block if meta_block is not None else meta()}


def api_response(message: str, data: Any = None, meta_block: Optional[Dict[str, Any]] = None,
                 status: int = http_status.HTTP_200_OK) -> Response:
    return Response(envelope(message, data, meta_block), status=status)
