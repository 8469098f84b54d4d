"""Error payloads shared by billing and tenant endpoints."""
from __future__ import annotations

from typing import Any, Dict, Optional

from django.http import JsonResponse
from rest_framework import status

from billing.exceptions import (
    DependencyFailure,
    EntityNotFound,
    InvalidTransition,
    LifecycleConflict,
    LifecycleError,
    LifecycleValidationError,
)

_STATUS_BY_ERROR = (
    (EntityNotFound, status.HTTP_404_NOT_FOUND, "not_found"),
    (InvalidTransition, status.HTTP_409_CONFLICT, "invalid_transition"),
    (LifecycleConflict, status.HTTP_409_CONFLICT, "conflict"),
    (LifecycleValidationError, status.HTTP_400_BAD_REQUEST, "invalid_payload"),
    (DependencyFailure, status.HTTP_503_SERVICE_UNAVAILABLE, "dependency_failure"),
)


def error_response(code: str, message: str, *, http_status: int,
                   details: Optional[Dict[str, Any]] = None) -> JsonResponse:
    return JsonResponse(
        {"code": code, "message": message, "details": details or {}},
        status=http_status,
    )


def lifecycle_error_response(exc: LifecycleError) -> JsonResponse:
    for error_class, http_status, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return error_response(code, str(exc), http_status=http_status)
    return error_response("lifecycle_error", str(exc), http_status=status.HTTP_500_INTERNAL_SERVER_ERROR)
