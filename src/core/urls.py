"""Root URL configuration for the Articles API."""
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView

urlpatterns = [
    path("auth/", include("authentication.urls")),
    path("", include("articles.urls")),
    path("schema", SpectacularAPIView.as_view(), name="schema"),
]
