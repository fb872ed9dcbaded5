"""
Django admin configuration for client models.

Token hashes are read-only; new tokens are issued with the
create_client management command.
"""

from django.contrib import admin

from clients.models import Client, ClientToken


class ClientTokenInline(admin.TabularInline):
    """Inline display of tokens in client admin."""

    model = ClientToken
    extra = 0
    readonly_fields = ["name", "token_hash", "expires_at", "last_used_at", "created_at"]
    can_delete = True


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    """Admin interface for Client model."""

    list_display = ["uuid", "name", "domain", "public_key", "is_deleted", "created_at"]
    list_filter = ["is_deleted", "created_at"]
    search_fields = ["name", "domain", "public_key", "uuid"]
    readonly_fields = ["uuid", "public_key", "created_at", "updated_at", "deleted_at"]
    inlines = [ClientTokenInline]
    ordering = ["-created_at"]

    def get_queryset(self, request):
        return Client.all_objects.all()
