"""
URL configuration for the customers app.

URL Structure:
    /customers/         GET, POST
    /customers/{id}/    GET, DELETE
    /customers/active/  GET

All URLs are prefixed with /api/v1/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from customers.views import CustomerViewSet

router = SimpleRouter()
router.register(r"customers", CustomerViewSet, basename="customer")

app_name = "customers"

urlpatterns = [
    path("", include(router.urls)),
]
