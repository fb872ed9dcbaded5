"""Customers application configuration."""

from django.apps import AppConfig


class CustomersConfig(AppConfig):
    """Configuration for the customers application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "customers"
    verbose_name = "Customers"
