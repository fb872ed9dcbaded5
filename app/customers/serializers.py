"""
Serializers for customer resources.

Serializers:
    CustomerSerializer: Customer resource output
    CustomerCreateSerializer: Input for POST /customers/
    ActiveCustomerSerializer: Customer resource with latest_message_at

Field rules (required, length, email format, uniqueness) are enforced by
CustomerService.create so the API and the service report the same
INVALID_CUSTOMER error; the input serializer only shapes the payload.
"""

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema_field
from rest_framework import serializers

from core.serializer_mixins import ResourceMixin
from customers.models import Customer


class CustomerSerializer(ResourceMixin, serializers.ModelSerializer):
    """Customer resource: {"object": "customer", "id", "name", "email", "metadata", ...}."""

    resource_object = "customer"

    class Meta:
        model = Customer
        fields = ["name", "email", "metadata"]
        read_only_fields = fields


class CustomerCreateSerializer(serializers.Serializer):
    """Input for creating a customer."""

    name = serializers.CharField(
        required=False,
        allow_blank=True,
        trim_whitespace=True,
        default="",
        help_text="Display name (max 255 characters)",
    )
    email = serializers.CharField(
        required=False,
        allow_blank=True,
        trim_whitespace=True,
        default="",
        help_text="Email address, unique within the client",
    )
    metadata = serializers.JSONField(
        required=False,
        default=dict,
        help_text="Arbitrary key-value object stored with the customer",
    )


class ActiveCustomerSerializer(CustomerSerializer):
    """Customer resource plus the time of their latest message activity."""

    latest_message_at = serializers.SerializerMethodField()

    class Meta(CustomerSerializer.Meta):
        fields = [*CustomerSerializer.Meta.fields, "latest_message_at"]
        read_only_fields = fields

    @extend_schema_field(OpenApiTypes.INT)
    def get_latest_message_at(self, obj: Customer) -> int:
        """Latest message time as a unix timestamp."""
        return int(obj.latest_message_at.timestamp())
