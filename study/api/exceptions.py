import math

from django.utils import timezone
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler
import structlog

from ..domain.errors import RateLimitExceeded, SchedulingError
from .throttling import rate_limit_headers

logger = structlog.get_logger()


def _error_body(code, message, details=None):
    return {"error": {"code": code, "message": message, "details": details or {}}}


def api_exception_handler(exc, context):
    """Render domain and validation errors as {"error": {code, message, details}}."""
    if isinstance(exc, SchedulingError):
        response = Response(_error_body(exc.code, exc.message, exc.details),
                            status=exc.status_code)
        if isinstance(exc, RateLimitExceeded):
            for name, value in rate_limit_headers(exc.info).items():
                response[name] = value
            wait = (exc.info.reset_at - timezone.now()).total_seconds()
            response["Retry-After"] = str(max(0, math.ceil(wait)))
        if exc.status_code >= 500:
            logger.error("api_error", code=exc.code, message=exc.message)
        return response

    if isinstance(exc, exceptions.ValidationError):
        return Response(
            _error_body("VALIDATION_ERROR", "Invalid request", {"errors": exc.detail}),
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = exception_handler(exc, context)
    if response is not None:
        code = getattr(exc, "default_code", "error")
        response.data = _error_body(str(code).upper(), str(getattr(exc, "detail", exc)))
    return response
