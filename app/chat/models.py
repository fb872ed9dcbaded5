"""
Chat system models.

This module defines the data models for tenant-scoped channels:
- General channels: one per participant set per client
- Custom channels: one per name per client, backed by the general
  channel of their participant set

Models:
    Channel: Container for messages between a fixed set of customers
    ChannelMembership: Customer participation in a channel
    Message: Append-only message within a channel

Design Decisions:
    - Participant sets are immutable once a channel is created
    - participant_key is a digest of the sorted internal customer ids, so a
      general channel is found by set regardless of request order
    - Uniqueness (general per set, custom per name) is enforced by partial
      unique constraints; the service layer turns
      constraint races into domain outcomes
    - last_activity_at starts at created_at and only moves forward; channel
      listings order by (-last_activity_at, -id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import models
from django.db.models import Q
from django.utils import timezone

from core.helpers import hash_string
from core.model_mixins import PublicIdMixin
from core.models import BaseModel

if TYPE_CHECKING:
    from collections.abc import Iterable


GENERAL_CHANNEL_NAME = "general"


class ChannelType(models.TextChoices):
    """
    Type of channel.

    GENERAL: Default channel of a participant set, named "general"
    CUSTOM: Named channel; the name is unique within the client
    """

    GENERAL = "general", "General"
    CUSTOM = "custom", "Custom"


class MessageType(models.TextChoices):
    """Type of message content."""

    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    FILE = "file", "File"
    SYSTEM = "system", "System"


def participant_key_for(customer_ids: Iterable[int]) -> str:
    """
    Digest identifying a participant set.

    Order and duplicates in `customer_ids` do not change the key.
    """
    return hash_string(",".join(str(pk) for pk in sorted(set(customer_ids))))


class ChannelQuerySet(models.QuerySet):
    def for_client(self, client) -> ChannelQuerySet:
        return self.filter(client=client)

    def general_for_key(self, client, participant_key: str) -> ChannelQuerySet:
        return self.filter(
            client=client,
            channel_type=ChannelType.GENERAL,
            participant_key=participant_key,
        )

    def custom_named(self, client, name: str) -> ChannelQuerySet:
        return self.filter(
            client=client,
            channel_type=ChannelType.CUSTOM,
            name=name,
        )

    def with_customer(self, customer) -> ChannelQuerySet:
        return self.filter(memberships__customer=customer)


class Channel(PublicIdMixin, BaseModel):
    """
    A channel between a fixed set of customers of one client.

    Fields:
        client: Owning tenant
        channel_type: general or custom
        name: "general" for general channels, the requested name for custom
        participant_key: Digest of the participant set (see participant_key_for)
        last_activity_at: Activity marker used to order channel listings

    Relationships:
        memberships: ChannelMembership rows, one per participant
        customers: Participants through ChannelMembership
        messages: Messages appended to this channel
    """

    objects = models.Manager.from_queryset(ChannelQuerySet)()

    # Defaulted at construction, unlike auto_now_add, so save() can copy it
    created_at = models.DateTimeField(
        default=timezone.now,
        editable=False,
        db_index=True,
        help_text="Timestamp when this record was created",
    )

    client = models.ForeignKey(
        "clients.Client",
        on_delete=models.CASCADE,
        related_name="channels",
        help_text="Tenant this channel belongs to",
    )
    channel_type = models.CharField(
        max_length=10,
        choices=ChannelType.choices,
        help_text="Type of channel (general or custom)",
    )
    name = models.CharField(
        max_length=255,
        help_text='Channel name; always "general" for general channels',
    )
    participant_key = models.CharField(
        max_length=64,
        db_index=True,
        help_text="sha256 of the sorted participant ids",
    )
    last_activity_at = models.DateTimeField(
        help_text="Most recent activity; equals created_at until the first message",
    )
    customers = models.ManyToManyField(
        "customers.Customer",
        through="ChannelMembership",
        related_name="channels",
    )

    class Meta:
        ordering = ["-last_activity_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["client", "participant_key"],
                condition=Q(channel_type=ChannelType.GENERAL),
                name="unique_general_channel_per_participant_set",
            ),
            models.UniqueConstraint(
                fields=["client", "name"],
                condition=Q(channel_type=ChannelType.CUSTOM),
                name="unique_custom_channel_name_per_client",
            ),
            models.CheckConstraint(
                condition=~Q(channel_type=ChannelType.GENERAL) | Q(name=GENERAL_CHANNEL_NAME),
                name="general_channel_named_general",
            ),
        ]
        indexes = [
            models.Index(
                fields=["client", "-last_activity_at", "-id"],
                name="chat_channel_activity_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_channel_type_display()} channel {self.name!r} ({self.uuid})"

    def save(self, *args, **kwargs):
        if self.last_activity_at is None:
            # Activity starts at creation time
            self.last_activity_at = self.created_at
        super().save(*args, **kwargs)

    @property
    def is_general(self) -> bool:
        return self.channel_type == ChannelType.GENERAL


class ChannelMembership(BaseModel):
    """
    A customer's participation in a channel.

    Rows are written once, when the channel is created.
    """

    channel = models.ForeignKey(
        Channel,
        on_delete=models.CASCADE,
        related_name="memberships",
        help_text="Channel the customer participates in",
    )
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.CASCADE,
        related_name="memberships",
        help_text="Participating customer",
    )

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["channel", "customer"],
                name="unique_channel_membership",
            ),
        ]

    def __str__(self) -> str:
        return f"Customer {self.customer_id} in channel {self.channel_id}"


class Message(PublicIdMixin, BaseModel):
    """
    A message appended to a channel.

    Messages are never edited, deleted or reordered.

    Fields:
        client: Owning tenant (denormalized from the channel)
        channel: Channel the message was sent in
        sender: Customer who sent it
        message_type: text, image, file or system
        content: Non-empty message body
        metadata: Optional JSON attached by the sender
    """

    client = models.ForeignKey(
        "clients.Client",
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Tenant this message belongs to",
    )
    channel = models.ForeignKey(
        Channel,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Channel the message was sent in",
    )
    sender = models.ForeignKey(
        "customers.Customer",
        on_delete=models.CASCADE,
        related_name="sent_messages",
        help_text="Customer who sent the message",
    )
    message_type = models.CharField(
        max_length=10,
        choices=MessageType.choices,
        default=MessageType.TEXT,
        help_text="Type of message content",
    )
    content = models.TextField(
        help_text="Message body",
    )
    metadata = models.JSONField(
        null=True,
        blank=True,
        help_text="Optional JSON attached to the message",
    )

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["channel", "created_at", "id"],
                name="chat_message_channel_idx",
            ),
            models.Index(
                fields=["sender", "-created_at", "-id"],
                name="chat_message_sender_idx",
            ),
        ]

    def __str__(self) -> str:
        preview = self.content[:50] + "..." if len(self.content) > 50 else self.content
        return f"Message {self.uuid}: {preview}"
