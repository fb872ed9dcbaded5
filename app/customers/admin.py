"""Django admin configuration for customers."""

from django.contrib import admin

from customers.models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    """Admin interface for Customer model, deleted rows included."""

    list_display = ["uuid", "name", "email", "client", "is_deleted", "created_at"]
    list_filter = ["is_deleted", "created_at"]
    search_fields = ["name", "email", "uuid"]
    readonly_fields = ["uuid", "created_at", "updated_at", "deleted_at"]
    raw_id_fields = ["client"]
    ordering = ["-created_at"]

    def get_queryset(self, request):
        return Customer.all_objects.select_related("client")
