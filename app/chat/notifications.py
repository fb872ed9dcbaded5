"""
Realtime fan-out of channel events.

Events are published to the Channels layer group of the channel and
forwarded by ChannelConsumer to every connected socket.

Group name:
    channel.<channel uuid>

Event types:
    message.sent        {"message": <message resource>}
    typing.changed      {"customer_id": str, "is_typing": bool}
    participant.joined  {"customer_id": str | None}
    participant.left    {"customer_id": str | None}

Delivery is best effort. Publishing never raises: a failure is logged and
the caller carries on, so a broken channel layer cannot roll back or
block a message append.

Usage:
    from chat.notifications import ChannelNotifier

    transaction.on_commit(lambda: ChannelNotifier.message_sent(message))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

if TYPE_CHECKING:
    from typing import Any

    from chat.models import Message

logger = logging.getLogger(__name__)

MESSAGE_SENT = "message.sent"
TYPING_CHANGED = "typing.changed"
PARTICIPANT_JOINED = "participant.joined"
PARTICIPANT_LEFT = "participant.left"


def channel_group_name(channel_id) -> str:
    """Channels layer group for a channel's public id."""
    return f"channel.{channel_id}"


def build_event(event_type: str, **payload: Any) -> dict[str, Any]:
    """Layer message for `event_type`; the consumer forwards it as-is."""
    return {"type": event_type, **payload}


class ChannelNotifier:
    """Publishes channel events from synchronous code (services, views)."""

    @classmethod
    def publish(cls, channel_id, event_type: str, **payload: Any) -> bool:
        """
        Send one event to the channel's group.

        Returns:
            True if the layer accepted the event, False otherwise
        """
        group = channel_group_name(channel_id)
        try:
            layer = get_channel_layer()
            if layer is None:
                logger.warning(f"No channel layer configured; dropped {event_type} for {group}")
                return False
            async_to_sync(layer.group_send)(group, build_event(event_type, **payload))
        except Exception:
            logger.exception(f"Failed to publish {event_type} to {group}")
            return False

        logger.debug(f"Published {event_type} to {group}")
        return True

    @classmethod
    def message_sent(cls, message: Message) -> bool:
        from chat.serializers import MessageSerializer

        try:
            payload = dict(MessageSerializer(message).data)
        except Exception:
            logger.exception(f"Failed to serialize message {message.pk} for broadcast")
            return False

        return cls.publish(message.channel.uuid, MESSAGE_SENT, message=payload)

    @classmethod
    def typing_changed(cls, channel_id, customer_id, is_typing: bool) -> bool:
        return cls.publish(
            channel_id,
            TYPING_CHANGED,
            customer_id=str(customer_id) if customer_id else None,
            is_typing=bool(is_typing),
        )

    @classmethod
    def participant_joined(cls, channel_id, customer_id=None) -> bool:
        return cls.publish(
            channel_id,
            PARTICIPANT_JOINED,
            customer_id=str(customer_id) if customer_id else None,
        )

    @classmethod
    def participant_left(cls, channel_id, customer_id=None) -> bool:
        return cls.publish(
            channel_id,
            PARTICIPANT_LEFT,
            customer_id=str(customer_id) if customer_id else None,
        )
