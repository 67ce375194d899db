"""Middleware to authenticate requests via the bearer access JWT."""

import logging
from typing import Optional

from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed

from authentication.models import User
from authentication.services import TokenService
from core.exceptions import GENERIC_UNAUTHORIZED_MESSAGE

logger = logging.getLogger(__name__)


class JWTAuthMiddleware(MiddlewareMixin):
    """Decode the access JWT and attach the owning ``User`` as request.user."""

    def process_request(self, request):  # type: ignore[override]
        """Authenticate request using Bearer access token if present."""
        auth_header = request.META.get("HTTP_AUTHORIZATION", "")
        if not auth_header or not auth_header.startswith("Bearer "):
            request.user = AnonymousUser()
            return None

        token = auth_header.split(" ", 1)[1].strip()

        try:
            payload = TokenService.from_settings().decode_token(token, expected_type="access")
        except AuthenticationFailed as exc:
            logger.debug("Rejected access token: %s", exc.detail)
            return _unauthorized()

        user = self._get_user(payload.get("sub"))
        if user is None:
            return _unauthorized()

        request.user = user
        return None

    @staticmethod
    def _get_user(user_id: Optional[str]) -> Optional[User]:
        if not user_id:
            return None
        try:
            return User.objects.get(id=user_id, deleted_at__isnull=True)
        except (User.DoesNotExist, DjangoValidationError):
            return None


def _unauthorized() -> JsonResponse:
    return JsonResponse(
        {
            "statusCode": status.HTTP_401_UNAUTHORIZED,
            "message": GENERIC_UNAUTHORIZED_MESSAGE,
            "error": "Unauthorized",
        },
        status=status.HTTP_401_UNAUTHORIZED,
    )


__all__ = ["JWTAuthMiddleware"]
