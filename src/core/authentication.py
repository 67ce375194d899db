"""Authentication helpers that bridge the JWT middleware into DRF.

DRF's ``Request.user`` normally relies on its own authentication classes.
Since this project verifies the access token in ``JWTAuthMiddleware``, this
module provides a lightweight authenticator that simply surfaces the user
already attached to the underlying Django request.
"""

from typing import Any, Optional, Tuple

from django.contrib.auth.models import AnonymousUser
from rest_framework.authentication import BaseAuthentication


class MiddlewareUserAuthentication(BaseAuthentication):
    """Expose ``request._request.user`` (set by middleware) to DRF.

    No credential parsing happens here. If the user is anonymous or missing,
    authentication is skipped and DRF falls back to ``AnonymousUser``.
    """

    def authenticate(self, request) -> Optional[Tuple[Any, None]]:
        django_request = getattr(request, "_request", None)
        if django_request is None:
            return None

        user = getattr(django_request, "user", None)
        if user is None or isinstance(user, AnonymousUser):
            return None

        if not getattr(user, "is_authenticated", False):
            return None

        return user, None

    def authenticate_header(self, request) -> str:
        # Makes DRF answer NotAuthenticated with 401 instead of 403.
        return "Bearer"


__all__ = ["MiddlewareUserAuthentication"]
