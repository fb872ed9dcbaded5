"""
Chat application configuration.

This app provides tenant-scoped messaging with:
- General and custom channels between customers
- Activity-ordered channel listings
- Append-only message history
- Realtime fan-out over Django Channels
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
