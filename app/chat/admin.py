"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Channel inspection (participant sets are read-only)
- Message moderation
"""

from django.contrib import admin

from chat.models import Channel, ChannelMembership, Message


class ChannelMembershipInline(admin.TabularInline):
    """Inline display of participants in channel admin."""

    model = ChannelMembership
    extra = 0
    readonly_fields = ["customer", "created_at"]
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Channel)
class ChannelAdmin(admin.ModelAdmin):
    """Admin interface for Channel model."""

    list_display = [
        "uuid",
        "channel_type",
        "name",
        "client",
        "created_at",
        "last_activity_at",
    ]
    list_filter = ["channel_type", "created_at"]
    search_fields = ["name", "uuid"]
    readonly_fields = [
        "uuid",
        "participant_key",
        "created_at",
        "updated_at",
        "last_activity_at",
    ]
    raw_id_fields = ["client"]
    inlines = [ChannelMembershipInline]
    ordering = ["-last_activity_at", "-id"]

    def get_queryset(self, request):
        return Channel.objects.select_related("client")


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = ["uuid", "channel", "sender", "message_type", "content_preview", "created_at"]
    list_filter = ["message_type", "created_at"]
    search_fields = ["content", "uuid"]
    readonly_fields = ["uuid", "created_at", "updated_at"]
    raw_id_fields = ["client", "channel", "sender"]
    ordering = ["-created_at"]

    @admin.display(description="Content")
    def content_preview(self, obj):
        """Show truncated content."""
        if len(obj.content) > 50:
            return obj.content[:50] + "..."
        return obj.content
