"""Authentication endpoints: register, login, refresh, logout."""

from typing import Any

from asgiref.sync import async_to_sync
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import LoginSerializer, RegisterSerializer, TokenPairSerializer
from .services import TokenService, build_auth_service


class RegisterView(APIView):
    permission_classes: list[Any] = []

    @extend_schema(request=RegisterSerializer, responses={201: TokenPairSerializer}, auth=[])
    def post(self, request):
        """Create the user and its credential, then issue the first token pair."""
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tokens = async_to_sync(build_auth_service().register)(**serializer.validated_data)
        return Response(TokenPairSerializer(tokens).data, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    permission_classes: list[Any] = []

    @extend_schema(request=LoginSerializer, responses={200: TokenPairSerializer}, auth=[])
    def post(self, request):
        """Authenticate and issue access + refresh tokens."""
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tokens = async_to_sync(build_auth_service().login)(**serializer.validated_data)
        return Response(TokenPairSerializer(tokens).data)


class RefreshView(APIView):
    permission_classes: list[Any] = []

    @extend_schema(
        request=None,
        responses={200: TokenPairSerializer},
        parameters=[OpenApiParameter("Refresh", location=OpenApiParameter.HEADER, required=True)],
        auth=[],
    )
    def post(self, request):
        """Exchange the refresh token from the ``Refresh`` header for a new pair."""
        refresh_token = _get_refresh_token(request)
        if not refresh_token:
            raise AuthenticationFailed("Refresh token is missing")

        payload = TokenService.from_settings().decode_token(refresh_token, expected_type="refresh")
        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationFailed("Invalid token payload")

        tokens = async_to_sync(build_auth_service().refresh_tokens)(user_id, refresh_token)
        return Response(TokenPairSerializer(tokens).data)


class LogoutView(APIView):
    """End the session by clearing the stored refresh-token digest."""

    permission_classes = [IsAuthenticated]

    @extend_schema(request=None, responses={204: None})
    def post(self, request):
        async_to_sync(build_auth_service().logout)(request.user.id)
        # 204 responses must not include a body.
        return Response(status=status.HTTP_204_NO_CONTENT)


def _get_refresh_token(request) -> str | None:
    """Read the ``Refresh`` header, accepting an optional ``Bearer`` prefix."""
    header = request.headers.get("Refresh", "").strip()
    if header.startswith("Bearer "):
        header = header.split(" ", 1)[1].strip()
    return header or None
