"""App configuration for authentication components."""

from django.apps import AppConfig


class AuthenticationConfig(AppConfig):
    """Authentication app holds users, credentials and the token lifecycle."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "authentication"
