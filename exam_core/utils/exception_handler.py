import logging

from django.conf import settings
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from ..exceptions import PlatformError, ResourceNotFound

logger = logging.getLogger(__name__)


def _flatten_message(detail):
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = _flatten_message(value)
            if key == "non_field_errors":
                return message
            return f"{key}: {message}"
        return ""
    if isinstance(detail, list):
        return _flatten_message(detail[0]) if detail else ""
    return str(detail)


def exception_handler(exc, context):
    """
    Render every error as ``{"code": ..., "message": ..., **context}``.

    Unexpected exceptions are logged with their traceback and reported to the
    client with a generic message.
    """
    response = drf_exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.exception("Unhandled error in %s", view.__class__.__name__ if view else "request")
        body = {"code": "SERVER_ERROR", "message": "Server error"}
        if settings.DEBUG:
            body["detail"] = str(exc)
        return Response(body, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, PlatformError):
        body = {"code": exc.code, "message": str(exc.detail)}
        body.update(exc.context)
    elif isinstance(exc, exceptions.ValidationError):
        errors = exc.detail if isinstance(exc.detail, dict) else {"non_field_errors": exc.detail}
        body = {
            "code": "VALIDATION_ERROR",
            "message": _flatten_message(errors),
            "errors": errors,
        }
    elif isinstance(exc, exceptions.NotAuthenticated):
        body = {"code": "NO_TOKEN", "message": "Access denied. No token provided."}
    elif isinstance(exc, (Http404, exceptions.NotFound)):
        body = {"code": ResourceNotFound.default_code, "message": str(ResourceNotFound.default_detail)}
    else:
        detail = getattr(exc, "detail", "")
        code = getattr(exc, "default_code", "error")
        body = {"code": str(code).upper(), "message": _flatten_message(detail)}

    response.data = body
    return response
