"""
URL configuration for the Django application.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/client/{id}/           - Authenticated client
    /api/v1/customers/             - Customer list/create
    /api/v1/customers/{id}/        - Customer detail/delete
    /api/v1/channels/              - Channel list (by activity)/create
    /api/v1/channels/{id}/         - Channel detail
    /api/v1/channels/customer/{id}/ - Channels of a customer (by activity)
    /api/v1/messages/              - Send message
    /api/v1/messages/channel/{id}/ - Channel history (oldest first)
    /api/v1/messages/customer/{id}/ - Messages sent by a customer (newest first)

WebSocket routes are configured in config/asgi.py (see chat/routing.py).

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Tenant
    path("", include("clients.urls")),
    # Customers
    path("", include("customers.urls")),
    # Channels and messages
    path("", include("chat.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Messaging Admin"
admin.site.site_title = "Messaging Admin Portal"
admin.site.index_title = "Clients, customers and channels"
