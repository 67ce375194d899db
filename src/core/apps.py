"""App configuration for the core project utilities."""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Shared settings, URLs, middleware, cache and query helpers."""

    name = "core"
    verbose_name = "Core"
