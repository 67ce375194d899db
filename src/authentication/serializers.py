"""Serializers for authentication flows (register, login, token pairs)."""

from rest_framework import serializers

from core.serializers import StrictSerializer

PASSWORD_PATTERN = r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]+$"
PASSWORD_HINT = (
    "Password must contain at least one uppercase letter, one lowercase letter, "
    "one number, and one special character"
)


class RegisterSerializer(StrictSerializer):
    """Validate the registration payload; login uniqueness is checked by the service."""

    login = serializers.CharField(max_length=255)
    password = serializers.RegexField(
        PASSWORD_PATTERN,
        write_only=True,
        min_length=8,
        error_messages={
            "invalid": PASSWORD_HINT,
            "min_length": "Password must be at least 8 characters long",
        },
    )
    firstName = serializers.CharField(
        source="first_name",
        max_length=250,
        error_messages={"max_length": "First name is too long. Max 250 characters"},
    )
    lastName = serializers.CharField(
        source="last_name",
        max_length=250,
        error_messages={"max_length": "Last name is too long. Max 250 characters"},
    )


class LoginSerializer(StrictSerializer):
    login = serializers.CharField()
    password = serializers.CharField(write_only=True)


class TokenPairSerializer(serializers.Serializer):
    """Response payload for register/login/refresh."""

    accessToken = serializers.CharField(source="access_token", read_only=True)
    refreshToken = serializers.CharField(source="refresh_token", read_only=True)


__all__ = ["RegisterSerializer", "LoginSerializer", "TokenPairSerializer"]
