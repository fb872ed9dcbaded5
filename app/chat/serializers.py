"""
Serializers for chat resources.

Output:
    ChannelSerializer: {"object": "channel", "id", "type", "name",
        "participants", "last_activity", "created", "livemode"}
    MessageSerializer: {"object": "message", "id", "channel_id",
        "sender_id", "type", "content", "metadata", "created", "livemode"}

Input:
    ChannelCreateSerializer: POST /channels/
    MessageCreateSerializer: POST /messages/
    DirectMessageCreateSerializer: POST /messages/send-to-customer/

Input serializers only check payload shape (types, required keys).
Domain rules such as participant bounds, channel names and message types
are enforced by the services, which report the chat error codes.
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema_field
from rest_framework import serializers

from chat.models import Channel, Message
from core.serializer_mixins import ResourceMixin


class ChannelSerializer(ResourceMixin, serializers.ModelSerializer):
    """Channel resource."""

    resource_object = "channel"

    type = serializers.CharField(source="channel_type", read_only=True)
    participants = serializers.SerializerMethodField()
    last_activity = serializers.SerializerMethodField()

    class Meta:
        model = Channel
        fields = ["type", "name", "participants", "last_activity"]
        read_only_fields = fields

    @extend_schema_field(serializers.ListField(child=serializers.UUIDField()))
    def get_participants(self, obj: Channel) -> list[str]:
        """Customer ids in membership order."""
        return [str(membership.customer.uuid) for membership in obj.memberships.all()]

    @extend_schema_field(OpenApiTypes.INT)
    def get_last_activity(self, obj: Channel) -> int | None:
        """Activity marker as a unix timestamp."""
        if obj.last_activity_at is None:
            return None
        return int(obj.last_activity_at.timestamp())


class MessageSerializer(ResourceMixin, serializers.ModelSerializer):
    """Message resource."""

    resource_object = "message"

    channel_id = serializers.SerializerMethodField()
    sender_id = serializers.SerializerMethodField()
    type = serializers.CharField(source="message_type", read_only=True)

    class Meta:
        model = Message
        fields = ["channel_id", "sender_id", "type", "content", "metadata"]
        read_only_fields = fields

    @extend_schema_field(OpenApiTypes.UUID)
    def get_channel_id(self, obj: Message) -> str:
        return str(obj.channel.uuid)

    @extend_schema_field(OpenApiTypes.UUID)
    def get_sender_id(self, obj: Message) -> str:
        return str(obj.sender.uuid)


class ChannelCreateSerializer(serializers.Serializer):
    """
    Input for resolving a channel.

    type: "general" or "custom"
    participants: Customer ids (duplicates are ignored)
    name: Required for custom channels
    """

    type = serializers.CharField(help_text='Channel type: "general" or "custom"')
    participants = serializers.ListField(
        child=serializers.CharField(),
        allow_empty=True,
        help_text="Customer ids to include in the channel",
    )
    name = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        trim_whitespace=False,
        default=None,
        help_text="Channel name (custom channels only)",
    )


class MessageCreateSerializer(serializers.Serializer):
    """Input for appending a message."""

    channel_id = serializers.CharField(help_text="Channel to send the message in")
    sender_id = serializers.CharField(help_text="Customer sending the message")
    type = serializers.CharField(help_text="text, image, file or system")
    content = serializers.CharField(
        allow_blank=True,
        trim_whitespace=False,
        help_text="Message body",
    )
    metadata = serializers.JSONField(
        required=False,
        allow_null=True,
        default=None,
        help_text="Optional JSON object attached to the message",
    )


class DirectMessageCreateSerializer(serializers.Serializer):
    """Input for sending a message from one customer to another by email."""

    sender_email = serializers.EmailField(help_text="Email of the sending customer")
    recipient_email = serializers.EmailField(help_text="Email of the receiving customer")
    type = serializers.CharField(help_text="text, image, file or system")
    content = serializers.CharField(
        allow_blank=True,
        trim_whitespace=False,
        help_text="Message body",
    )
    metadata = serializers.JSONField(
        required=False,
        allow_null=True,
        default=None,
        help_text="Optional JSON object attached to the message",
    )
