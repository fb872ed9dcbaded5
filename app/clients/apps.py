"""
Clients application configuration.

This app provides the tenant registry:
- Client records with registered domain and public key
- Hashed API tokens
- DRF authentication for every API request
"""

from django.apps import AppConfig


class ClientsConfig(AppConfig):
    """Configuration for the clients application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "clients"
    verbose_name = "Clients"

    def ready(self):
        from clients import schema  # noqa: F401
