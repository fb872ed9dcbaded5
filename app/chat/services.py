"""
Chat service layer for business logic.

This module provides services for channel and message operations:
- ChannelService: Channel resolution (general/custom) and lookups
- ActivityTracker: Activity markers and activity-ordered listings
- MessageService: Append and list messages

Design Decisions:
    - Services are stateless, using classmethods
    - Every operation takes the authenticated Client and scopes all lookups
      to it; another client's ids behave like unknown ids
    - Expected failures are returned as ServiceResult.failure with an
      error_code and structured details
    - Channel creation runs in a savepoint; an IntegrityError from a partial
      unique constraint means a concurrent request won and is turned into
      the matching outcome
    - Realtime events are published after commit and never affect the
      database outcome

Usage:
    from chat.services import ChannelService, MessageService

    result = ChannelService.resolve(
        client,
        channel_type="custom",
        participant_ids=[alice.uuid, bob.uuid],
        name="Project X",
    )
    if not result.success:
        return Response(result.to_response(), status=400)

    result = MessageService.append(
        client,
        channel_id=result.data.channel.uuid,
        sender_id=alice.uuid,
        message_type="text",
        content="Hello!",
    )
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import OuterRef, Q, Subquery

from chat.models import (
    GENERAL_CHANNEL_NAME,
    Channel,
    ChannelMembership,
    ChannelType,
    Message,
    MessageType,
    participant_key_for,
)
from chat.notifications import ChannelNotifier
from core.helpers import validate_uuid
from core.pagination import CursorPage, paginate
from core.services import BaseService, ServiceResult
from customers.models import Customer
from customers.services import CustomerService

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from typing import Any

    from clients.models import Client


CHANNEL_ACTIVITY_ORDERING = ("-last_activity_at", "-id")
CHANNEL_HISTORY_ORDERING = ("created_at", "id")
SENDER_HISTORY_ORDERING = ("-created_at", "-id")
ACTIVE_CUSTOMER_ORDERING = ("-latest_message_at", "-id")


@dataclass(frozen=True)
class ChannelResolution:
    """
    Outcome of ChannelService.resolve.

    Attributes:
        channel: The resolved channel
        created: Whether `channel` was created by this call
        general_channel: General channel of the participant set (the channel
            itself for general resolutions)
        general_created: Whether a general channel was created by this call
    """

    channel: Channel
    created: bool
    general_channel: Channel | None = None
    general_created: bool = False


# =============================================================================
# Channel Service
# =============================================================================


class ChannelService(BaseService):
    """
    Service for channel resolution.

    General channels:
        At most one per participant set per client. Asking for a second one
        (in any participant order) fails with DUPLICATE_GENERAL_CHANNEL.

    Custom channels:
        At most one per name per client. Asking for an existing name returns
        the existing channel unchanged, whatever participants were requested.
        Creating a custom channel also provisions the general channel of its
        participant set if none exists yet.
    """

    @classmethod
    def resolve(
        cls,
        client: Client,
        channel_type: str,
        participant_ids: Iterable,
        name: str | None = None,
    ) -> ServiceResult[ChannelResolution]:
        """
        Resolve (create or find) a channel.

        Args:
            client: Authenticated client
            channel_type: "general" or "custom"
            participant_ids: Customer public ids; duplicates are ignored
            name: Required for custom channels (max 255 after trimming)

        Returns:
            ServiceResult with a ChannelResolution, or a failure with one of:
            INVALID_CHANNEL_TYPE, INVALID_CHANNEL_NAME, INVALID_PARTICIPANTS
            (count out of bounds, or ids that do not resolve for this client),
            DUPLICATE_GENERAL_CHANNEL (details["channel"] is the existing one)
        """
        if channel_type not in ChannelType.values:
            return ServiceResult.failure(
                "Channel type must be general or custom",
                error_code="INVALID_CHANNEL_TYPE",
                details={"type": channel_type},
            )

        if channel_type == ChannelType.CUSTOM:
            name = name.strip() if isinstance(name, str) else ""
            if not name:
                return cls._invalid_name("Channel name is required for custom channels")
            if len(name) > 255:
                return cls._invalid_name("Channel name cannot exceed 255 characters")

        participants_result = cls.resolve_participants(client, participant_ids)
        if not participants_result.success:
            return participants_result

        participants = participants_result.data
        participant_key = participant_key_for(customer.pk for customer in participants)

        with cls.atomic():
            if channel_type == ChannelType.GENERAL:
                return cls._create_general(client, participants, participant_key)
            return cls._resolve_custom(client, participants, participant_key, name)

    @classmethod
    def get(cls, client: Client, channel_id) -> ServiceResult[Channel]:
        """
        Fetch a channel of `client` by public id.

        Unknown, malformed and foreign ids fail with CHANNEL_NOT_FOUND.
        """
        channel = None
        if validate_uuid(channel_id):
            channel = (
                Channel.objects.for_client(client)
                .filter(uuid=str(channel_id))
                .prefetch_related("memberships__customer")
                .first()
            )
        if channel is None:
            return ServiceResult.failure(
                "Channel not found",
                error_code="CHANNEL_NOT_FOUND",
                details={"channel": str(channel_id)},
            )
        return ServiceResult.success(channel)

    @classmethod
    def find_general(cls, client: Client, participant_ids: Iterable) -> ServiceResult[Channel | None]:
        """
        Return the general channel of a participant set (None if absent).

        Participants are validated exactly as in resolve().
        """
        result = cls.resolve_participants(client, participant_ids)
        if not result.success:
            return result

        participant_key = participant_key_for(customer.pk for customer in result.data)
        return ServiceResult.success(
            Channel.objects.general_for_key(client, participant_key).first()
        )

    @classmethod
    def get_or_create_general(
        cls,
        client: Client,
        participants: list[Customer],
    ) -> tuple[Channel, bool]:
        """
        Return the general channel of already-resolved `participants`.

        Creates it when missing. A concurrent creation is reused.

        Returns:
            (channel, created)
        """
        participant_key = participant_key_for(customer.pk for customer in participants)
        with cls.atomic():
            return cls._get_or_create_general(client, participants, participant_key)

    @classmethod
    def resolve_participants(
        cls,
        client: Client,
        participant_ids: Iterable,
    ) -> ServiceResult[list[Customer]]:
        """
        Normalize and resolve a participant list.

        Duplicates are dropped (first occurrence wins) before the count is
        checked against CHAT_MIN/MAX_CHANNEL_PARTICIPANTS. Unresolvable ids
        are listed in details["participants"] of an INVALID_PARTICIPANTS
        failure.
        """
        if isinstance(participant_ids, (str, bytes)) or participant_ids is None:
            return ServiceResult.failure(
                "Participants must be a list of customer ids",
                error_code="INVALID_PARTICIPANTS",
            )

        unique_ids = list(dict.fromkeys(cls._normalize_id(value) for value in participant_ids))

        minimum = settings.CHAT_MIN_CHANNEL_PARTICIPANTS
        maximum = settings.CHAT_MAX_CHANNEL_PARTICIPANTS
        if not minimum <= len(unique_ids) <= maximum:
            return ServiceResult.failure(
                f"A channel requires between {minimum} and {maximum} distinct participants",
                error_code="INVALID_PARTICIPANTS",
                details={"count": len(unique_ids), "min": minimum, "max": maximum},
            )

        result = CustomerService.resolve_customers(client, unique_ids)
        if not result.success:
            missing = result.details.get("missing", [])
            cls.get_logger().warning(
                f"Participant resolution failed for client {client.uuid}: {missing}"
            )
            return ServiceResult.failure(
                "One or more participants do not exist for this client",
                error_code="INVALID_PARTICIPANTS",
                details={"participants": missing},
            )
        return result

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _normalize_id(value) -> str:
        if validate_uuid(value):
            return str(uuid.UUID(str(value)))
        return str(value).strip()

    @staticmethod
    def _invalid_name(message: str) -> ServiceResult[ChannelResolution]:
        return ServiceResult.failure(message, error_code="INVALID_CHANNEL_NAME")

    @classmethod
    def _create_channel(
        cls,
        client: Client,
        channel_type: str,
        name: str,
        participant_key: str,
        participants: list[Customer],
    ) -> Channel:
        """Insert a channel and its memberships in a savepoint."""
        with cls.atomic():
            channel = Channel.objects.create(
                client=client,
                channel_type=channel_type,
                name=name,
                participant_key=participant_key,
            )
            ChannelMembership.objects.bulk_create(
                ChannelMembership(channel=channel, customer=customer)
                for customer in participants
            )

        cls.get_logger().info(
            f"Created {channel_type} channel {channel.uuid} for client {client.uuid} "
            f"with {len(participants)} participants"
        )
        return channel

    @classmethod
    def _create_general(
        cls,
        client: Client,
        participants: list[Customer],
        participant_key: str,
    ) -> ServiceResult[ChannelResolution]:
        existing = Channel.objects.general_for_key(client, participant_key).first()
        if existing is not None:
            return cls._duplicate_general(existing)

        try:
            channel = cls._create_channel(
                client, ChannelType.GENERAL, GENERAL_CHANNEL_NAME, participant_key, participants
            )
        except IntegrityError:
            winner = Channel.objects.general_for_key(client, participant_key).first()
            if winner is None:
                raise
            return cls._duplicate_general(winner)

        return ServiceResult.success(
            ChannelResolution(
                channel=channel,
                created=True,
                general_channel=channel,
                general_created=True,
            )
        )

    @classmethod
    def _get_or_create_general(
        cls,
        client: Client,
        participants: list[Customer],
        participant_key: str,
    ) -> tuple[Channel, bool]:
        existing = Channel.objects.general_for_key(client, participant_key).first()
        if existing is not None:
            return existing, False

        try:
            channel = cls._create_channel(
                client, ChannelType.GENERAL, GENERAL_CHANNEL_NAME, participant_key, participants
            )
        except IntegrityError:
            winner = Channel.objects.general_for_key(client, participant_key).first()
            if winner is None:
                raise
            cls.get_logger().info(
                f"Reusing general channel {winner.uuid} created concurrently for client {client.uuid}"
            )
            return winner, False
        return channel, True

    @classmethod
    def _resolve_custom(
        cls,
        client: Client,
        participants: list[Customer],
        participant_key: str,
        name: str,
    ) -> ServiceResult[ChannelResolution]:
        existing = Channel.objects.custom_named(client, name).first()
        if existing is not None:
            cls.get_logger().debug(
                f"Custom channel {name!r} already exists for client {client.uuid}"
            )
            return ServiceResult.success(cls._existing_custom(client, existing))

        general, general_created = cls._get_or_create_general(
            client, participants, participant_key
        )

        try:
            channel = cls._create_channel(
                client, ChannelType.CUSTOM, name, participant_key, participants
            )
        except IntegrityError:
            winner = Channel.objects.custom_named(client, name).first()
            if winner is None:
                raise
            cls.get_logger().info(
                f"Reusing custom channel {winner.uuid} created concurrently for client {client.uuid}"
            )
            channel = winner
            created = False
        else:
            created = True

        return ServiceResult.success(
            ChannelResolution(
                channel=channel,
                created=created,
                general_channel=general,
                general_created=general_created,
            )
        )

    @classmethod
    def _existing_custom(cls, client: Client, channel: Channel) -> ChannelResolution:
        general = Channel.objects.general_for_key(client, channel.participant_key).first()
        return ChannelResolution(channel=channel, created=False, general_channel=general)

    @staticmethod
    def _duplicate_general(existing: Channel) -> ServiceResult[ChannelResolution]:
        return ServiceResult.failure(
            "General channel already exists for these participants",
            error_code="DUPLICATE_GENERAL_CHANNEL",
            details={"channel": str(existing.uuid)},
        )


# =============================================================================
# Activity Tracker
# =============================================================================


class ActivityTracker(BaseService):
    """
    Maintains channel activity markers and activity-ordered listings.

    Listings order by (-last_activity_at, -id): the integer id breaks ties
    between channels with equal markers, so the order is total and stable.
    Customer listings order the same way on their latest message time.
    """

    @classmethod
    def touch(cls, channel: Channel, at: datetime) -> bool:
        """
        Move the channel's activity marker to `at` if that is later.

        The comparison happens in the UPDATE itself, so concurrent touches
        can only move the marker forward.

        Returns:
            True if the marker moved
        """
        updated = Channel.objects.filter(pk=channel.pk, last_activity_at__lt=at).update(
            last_activity_at=at
        )
        if updated:
            channel.last_activity_at = at
        return bool(updated)

    @classmethod
    def list_ordered(
        cls,
        client: Client,
        *,
        customer: Customer | None = None,
        limit: int,
        starting_after=None,
    ) -> ServiceResult[CursorPage[Channel]]:
        """
        List channels of `client`, most recently active first.

        Args:
            client: Authenticated client
            customer: Restrict to channels this customer participates in
            limit: Page size
            starting_after: Id of the last channel of the previous page

        Returns:
            ServiceResult with the page, or INVALID_CURSOR when
            starting_after is not a channel in this listing
        """
        queryset = Channel.objects.for_client(client)
        if customer is not None:
            queryset = queryset.with_customer(customer)
        queryset = queryset.prefetch_related("memberships__customer")

        return paginate(
            queryset,
            ordering=CHANNEL_ACTIVITY_ORDERING,
            limit=limit,
            starting_after=starting_after,
        )

    @classmethod
    def list_active_customers(
        cls,
        client: Client,
        *,
        sender_email: str | None = None,
        limit: int,
        starting_after=None,
    ) -> ServiceResult[CursorPage[Customer]]:
        """
        List customers by their latest message activity, newest first.

        Without `sender_email`, every customer of `client` who has sent at
        least one message is listed, keyed on their latest sent message.

        With `sender_email`, the listing becomes the sender's conversation
        partners: the other customers sharing a channel with the sender,
        keyed on the latest message either of them sent in their shared
        channels. Partners without such a message are left out.

        Each listed customer carries a `latest_message_at` annotation.

        Returns:
            ServiceResult with the page, or a failure: CUSTOMER_NOT_FOUND
            for an unknown sender email, INVALID_CURSOR for a cursor outside
            the listing
        """
        customers = Customer.objects.for_client(client)

        if sender_email is None:
            latest = Message.objects.filter(sender=OuterRef("pk"))
        else:
            sender_result = CustomerService.find_by_email(client, sender_email)
            if not sender_result.success:
                return sender_result

            sender = sender_result.data
            shared_channels = ChannelMembership.objects.filter(customer=sender).values(
                "channel_id"
            )
            latest = Message.objects.filter(
                Q(sender=sender) | Q(sender=OuterRef("pk")),
                channel_id__in=shared_channels,
                channel__memberships__customer=OuterRef("pk"),
            )
            customers = customers.exclude(pk=sender.pk)

        queryset = customers.annotate(
            latest_message_at=Subquery(
                latest.order_by("-created_at", "-id").values("created_at")[:1]
            )
        ).filter(latest_message_at__isnull=False)

        return paginate(
            queryset,
            ordering=ACTIVE_CUSTOMER_ORDERING,
            limit=limit,
            starting_after=starting_after,
        )


# =============================================================================
# Message Service
# =============================================================================


class MessageService(BaseService):
    """Append-only message store."""

    @classmethod
    def append(
        cls,
        client: Client,
        channel_id,
        sender_id,
        message_type: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> ServiceResult[Message]:
        """
        Append a message and bump the channel's activity marker.

        The insert and the activity bump commit together; the realtime
        message.sent event is published after commit.

        Returns:
            ServiceResult with the new Message, or a failure with one of:
            CHANNEL_NOT_FOUND, CUSTOMER_NOT_FOUND (sender),
            SENDER_NOT_IN_CHANNEL, INVALID_MESSAGE (per-field details)
        """
        channel_result = ChannelService.get(client, channel_id)
        if not channel_result.success:
            return channel_result
        channel = channel_result.data

        sender_result = CustomerService.get(client, sender_id)
        if not sender_result.success:
            return sender_result
        sender = sender_result.data

        if not ChannelMembership.objects.filter(channel=channel, customer=sender).exists():
            return ServiceResult.failure(
                "Sender is not a participant of this channel",
                error_code="SENDER_NOT_IN_CHANNEL",
                details={"channel": str(channel.uuid), "sender": str(sender.uuid)},
            )

        invalid = cls._validate(message_type, content, metadata)
        if invalid is not None:
            return invalid

        with cls.atomic():
            message = cls._insert(client, channel, sender, message_type, content, metadata)
        return ServiceResult.success(message)

    @classmethod
    def send_to_customer(
        cls,
        client: Client,
        sender_email: str,
        recipient_email: str,
        message_type: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> ServiceResult[Message]:
        """
        Send a direct message between two customers identified by email.

        The message goes to the general channel of the pair, which is
        created on first use.

        Returns:
            ServiceResult with the new Message, or a failure with one of:
            CUSTOMER_NOT_FOUND (details["missing"] lists the unknown emails),
            INVALID_PARTICIPANTS (sender and recipient are the same customer),
            INVALID_MESSAGE
        """
        sender_result = CustomerService.find_by_email(client, sender_email)
        recipient_result = CustomerService.find_by_email(client, recipient_email)
        missing = [
            missing_email
            for result in (sender_result, recipient_result)
            if not result.success
            for missing_email in result.details["missing"]
        ]
        if missing:
            return ServiceResult.failure(
                "One or both customers not found",
                error_code="CUSTOMER_NOT_FOUND",
                details={"missing": missing},
            )

        sender, recipient = sender_result.data, recipient_result.data
        if sender.pk == recipient.pk:
            return ServiceResult.failure(
                "Sender and recipient must be different customers",
                error_code="INVALID_PARTICIPANTS",
                details={"participants": [sender.email]},
            )

        invalid = cls._validate(message_type, content, metadata)
        if invalid is not None:
            return invalid

        with cls.atomic():
            channel, created = ChannelService.get_or_create_general(client, [sender, recipient])
            message = cls._insert(client, channel, sender, message_type, content, metadata)

        if created:
            cls.get_logger().info(
                f"Opened general channel {channel.uuid} for direct message {message.uuid}"
            )
        return ServiceResult.success(message)

    @classmethod
    def list_for_channel(
        cls,
        client: Client,
        channel_id,
        limit: int,
        starting_after=None,
    ) -> ServiceResult[CursorPage[Message]]:
        """Channel history, oldest first."""
        channel_result = ChannelService.get(client, channel_id)
        if not channel_result.success:
            return channel_result

        queryset = Message.objects.filter(channel=channel_result.data).select_related(
            "channel", "sender"
        )
        return paginate(
            queryset,
            ordering=CHANNEL_HISTORY_ORDERING,
            limit=limit,
            starting_after=starting_after,
        )

    @classmethod
    def list_for_customer(
        cls,
        client: Client,
        customer_id,
        limit: int,
        starting_after=None,
    ) -> ServiceResult[CursorPage[Message]]:
        """Messages sent by a customer across all channels, newest first."""
        customer_result = CustomerService.get(client, customer_id)
        if not customer_result.success:
            return customer_result

        queryset = Message.objects.filter(
            client=client, sender=customer_result.data
        ).select_related("channel", "sender")
        return paginate(
            queryset,
            ordering=SENDER_HISTORY_ORDERING,
            limit=limit,
            starting_after=starting_after,
        )

    @classmethod
    def list_between_customers(
        cls,
        client: Client,
        email1: str,
        email2: str,
        limit: int,
        starting_after=None,
    ) -> ServiceResult[CursorPage[Message]]:
        """
        Conversation between two customers, newest first.

        Covers messages either customer sent in any channel both of them
        participate in. Unknown emails fail with CUSTOMER_NOT_FOUND.
        """
        results = [CustomerService.find_by_email(client, email) for email in (email1, email2)]
        missing = [
            missing_email
            for result in results
            if not result.success
            for missing_email in result.details["missing"]
        ]
        if missing:
            return ServiceResult.failure(
                "One or both customers not found",
                error_code="CUSTOMER_NOT_FOUND",
                details={"missing": missing},
            )

        first, second = (result.data for result in results)
        shared_channels = ChannelMembership.objects.filter(customer=first).values("channel_id")
        queryset = (
            Message.objects.filter(
                client=client,
                sender__in=[first, second],
                channel_id__in=shared_channels,
                channel__memberships__customer=second,
            )
            .select_related("channel", "sender")
        )
        return paginate(
            queryset,
            ordering=SENDER_HISTORY_ORDERING,
            limit=limit,
            starting_after=starting_after,
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _validate(message_type, content, metadata) -> ServiceResult[Message] | None:
        errors: dict[str, list[str]] = {}
        if message_type not in MessageType.values:
            errors["type"] = [
                f"Message type must be one of: {', '.join(MessageType.values)}"
            ]
        if not isinstance(content, str) or not content.strip():
            errors["content"] = ["Message content cannot be empty"]
        if metadata is not None and not isinstance(metadata, dict):
            errors["metadata"] = ["Message metadata must be an object"]
        if errors:
            return ServiceResult.failure(
                "Invalid message",
                error_code="INVALID_MESSAGE",
                details=errors,
            )
        return None

    @classmethod
    def _insert(
        cls,
        client: Client,
        channel: Channel,
        sender: Customer,
        message_type: str,
        content: str,
        metadata: dict[str, Any] | None,
    ) -> Message:
        """Insert, bump activity and schedule the message.sent event. Runs inside atomic()."""
        message = Message.objects.create(
            client=client,
            channel=channel,
            sender=sender,
            message_type=message_type,
            content=content,
            metadata=metadata,
        )
        ActivityTracker.touch(channel, message.created_at)
        transaction.on_commit(partial(ChannelNotifier.message_sent, message))

        cls.get_logger().info(
            f"Appended message {message.uuid} to channel {channel.uuid} "
            f"from customer {sender.uuid}"
        )
        return message
