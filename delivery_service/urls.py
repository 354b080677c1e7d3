"""Root URL configuration for the reliable delivery service."""

from django.urls import include, path

urlpatterns = [
    path("api/v1/delivery/", include("core.urls")),
]
