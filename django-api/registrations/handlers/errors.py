"""Maps domain errors to HTTP responses.

Installed as the DRF ``EXCEPTION_HANDLER``. Every error body has the shape
``{"success": false, "code": ..., "message": ...}`` plus ``errors`` for
field-level validation detail. Internal details never leave the process.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from registrations.domain.errors import (
    ConflictError,
    DomainError,
    ErrorCode,
    ForbiddenError,
    GatewayError,
    GatewayTimeoutError,
    InvalidSignatureError,
    NotFoundError,
    SettlementFailedError,
    UnauthorizedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Order matters: subclasses before their bases.
_STATUS_BY_KIND: list[tuple[type[DomainError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidSignatureError, status.HTTP_400_BAD_REQUEST),
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (GatewayTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (GatewayError, status.HTTP_502_BAD_GATEWAY),
    (SettlementFailedError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(error: DomainError) -> int:
    for kind, status_code in _STATUS_BY_KIND:
        if isinstance(error, kind):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(error: DomainError) -> Response:
    body = {"success": False, "code": error.code.value, "message": error.message}
    if isinstance(error, ValidationError) and error.errors:
        body["errors"] = error.errors
    return Response(body, status=status_for(error))


def domain_exception_handler(exc, context):
    """DRF exception handler that understands domain errors."""
    if isinstance(exc, DomainError):
        response = error_response(exc)
        if response.status_code >= 500:
            logger.error("Request failed", extra={"code": exc.code.value})
        return response

    response = exception_handler(exc, context)
    if response is None:
        return None

    if response.status_code == status.HTTP_400_BAD_REQUEST and isinstance(response.data, dict):
        response.data = {
            "success": False,
            "code": ErrorCode.VALIDATION_FAILED.value,
            "message": "Validation failed",
            "errors": response.data,
        }
    else:
        detail = response.data.get("detail") if isinstance(response.data, dict) else None
        response.data = {
            "success": False,
            "code": getattr(detail, "code", "error").upper(),
            "message": str(detail) if detail is not None else "Request failed",
        }
    return response
