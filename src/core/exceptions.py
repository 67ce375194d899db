"""Error taxonomy and the DRF handler rendering ``{statusCode, message, error}``."""

from http import HTTPStatus
from typing import Any

from django.conf import settings
from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException, AuthenticationFailed, NotAuthenticated, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

GENERIC_UNAUTHORIZED_MESSAGE = "Invalid credentials"


class Conflict(APIException):
    """Resource already exists (e.g. duplicate login)."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists."
    default_code = "conflict"


class InternalError(APIException):
    """The store returned an unexpected empty/zero-affected result."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error."
    default_code = "internal_error"


def _first_error(detail: Any, path: tuple[str, ...] = ()) -> tuple[tuple[str, ...], str]:
    """Walk a DRF error structure depth-first and return the first message."""

    if isinstance(detail, dict):
        for key, value in detail.items():
            return _first_error(value, path if key == "non_field_errors" else path + (str(key),))
    if isinstance(detail, (list, tuple)):
        for item in detail:
            return _first_error(item, path)
    return path, str(detail)


def _validation_message(detail: Any) -> str:
    path, message = _first_error(detail)
    return f"{'.'.join(path)}: {message}" if path else message


def _error_body(status_code: int, message: str) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "message": message,
        "error": HTTPStatus(status_code).phrase,
    }


def custom_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """Render DRF errors as ``{statusCode, message, error}``.

    - Uses DRF's default handler to produce the base response.
    - Validation errors report only the first failing field.
    - 401 messages are generic unless DEBUG_AUTH_ERRORS is enabled.
    """

    # Treat database errors as a temporary service outage instead of
    # returning Django's HTML 500 page.
    if isinstance(exc, DatabaseError):
        return Response(
            _error_body(status.HTTP_503_SERVICE_UNAVAILABLE, "Service temporarily unavailable."),
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    response = drf_exception_handler(exc, context)

    if response is None:
        return response

    if isinstance(exc, (AuthenticationFailed, NotAuthenticated)):
        response.status_code = status.HTTP_401_UNAUTHORIZED

    if isinstance(exc, ValidationError):
        message = _validation_message(exc.detail)
    elif response.status_code == status.HTTP_401_UNAUTHORIZED and not getattr(
        settings, "DEBUG_AUTH_ERRORS", False
    ):
        # Never tell the caller which credential check failed.
        message = GENERIC_UNAUTHORIZED_MESSAGE
    elif isinstance(response.data, dict) and "detail" in response.data:
        message = str(response.data["detail"])
    else:
        message = _validation_message(response.data)

    response.data = _error_body(response.status_code, message)
    return response


__all__ = ["Conflict", "InternalError", "custom_exception_handler", "GENERIC_UNAUTHORIZED_MESSAGE"]
