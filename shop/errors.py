# shop/errors.py - error taxonomy and the DRF exception handler that renders it
import logging

from django.db import DatabaseError
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status

from .responses import api_response

logger = logging.getLogger(__name__)


class ShopError(Exception):
    """Base for errors surfaced to the client with a specific status."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(ShopError):
    """Validation failure the caller can fix; message goes out verbatim."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad Request"


class NotFound(ShopError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not Found"


def _drf_error_detail(exc: drf_exceptions.APIException):
    detail = exc.detail
    if isinstance(detail, (list, dict)):
        return detail
    return str(detail)


def envelope_exception_handler(exc, context):
    """
    REST_FRAMEWORK["EXCEPTION_HANDLER"].
    - ShopError -> its own status, message verbatim
    - DRF APIException (validation, auth, 405...) -> its status
    - DatabaseError / anything else -> 500, generic message, details only in the log
    """
    if isinstance(exc, ShopError):
        return api_response(exc.message, {"error": exc.message}, status=exc.status_code)

    if isinstance(exc, Http404):
        exc = drf_exceptions.NotFound()

    if isinstance(exc, drf_exceptions.APIException):
        if isinstance(exc, drf_exceptions.ValidationError):
            message = "Validation error"
        else:
            message = str(exc.detail)
        response = api_response(message, {"error": _drf_error_detail(exc)}, status=exc.status_code)
        auth_header = getattr(exc, "auth_header", None)
        if auth_header:
            response["WWW-Authenticate"] = auth_header
        wait = getattr(exc, "wait", None)
        if wait:
            response["Retry-After"] = "%d" % wait
        return response

    view = context.get("view") if context else None
    if isinstance(exc, DatabaseError):
        logger.exception(f"Database error in {view.__class__.__name__ if view else '-'}")
    else:
        logger.exception(f"Unhandled error in {view.__class__.__name__ if view else '-'}")
    message = ShopError.default_message
    return api_response(message, {"error": message}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
