"""
WebSocket consumers for the chat application.

Consumers:
    ChannelConsumer: Streams a channel's realtime events

Authentication:
    ClientTokenAuthMiddleware attaches the authenticated client to
    self.scope["client"] (None when authentication failed).

Channel Groups:
    Each channel has a group named "channel.<uuid>" (see chat.notifications).
    Sockets join the group on connect and receive every event published
    to it.

Close codes:
    4001: Not authenticated
    4004: Channel does not exist for the client
    4003: ?customer= given but not a participant of the channel

Message Types (from client):
    - typing: {"type": "typing", "is_typing": bool}; only accepted on sockets
      connected with ?customer=, observers get an error frame

Message Types (to client):
    - message.sent, typing.changed, participant.joined, participant.left
    - error: {"type": "error", "message": str}
"""

from __future__ import annotations

import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from chat.middleware import query_param
from chat.models import Channel, ChannelMembership
from chat.notifications import (
    PARTICIPANT_JOINED,
    PARTICIPANT_LEFT,
    TYPING_CHANGED,
    build_event,
    channel_group_name,
)
from core.helpers import validate_uuid

logger = logging.getLogger(__name__)


class ChannelConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for one channel.

    Attributes:
        channel_id: Public id of the connected channel
        customer_id: Public id of the connected customer, if given
        group_name: Channel layer group for the channel
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.channel_id = None
        self.customer_id: str | None = None
        self.group_name: str | None = None

    async def connect(self):
        """
        Validate the connection, join the group and announce the participant.

        Validates:
            1. Client is authenticated
            2. Channel exists for the client
            3. Customer (when given) participates in the channel
        """
        self.channel_id = self.scope["url_route"]["kwargs"]["channel_id"]
        client = self.scope.get("client")

        if client is None:
            logger.warning(
                f"Rejected unauthenticated connection to channel {self.channel_id} "
                f"({self.scope.get('auth_error')})"
            )
            await self.close(code=4001)
            return

        channel = await self._get_channel(client)
        if channel is None:
            logger.warning(
                f"Client {client.uuid} tried to connect to unknown channel {self.channel_id}"
            )
            await self.close(code=4004)
            return

        customer_id = query_param(self.scope, "customer")
        if customer_id:
            if not await self._is_participant(channel, customer_id):
                logger.warning(
                    f"Customer {customer_id} is not a participant in channel {self.channel_id}"
                )
                await self.close(code=4003)
                return
            self.customer_id = customer_id

        self.group_name = channel_group_name(self.channel_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

        await self.channel_layer.group_send(
            self.group_name,
            build_event(PARTICIPANT_JOINED, customer_id=self.customer_id),
        )
        logger.info(f"Socket connected to channel {self.channel_id} (customer {self.customer_id})")

    async def disconnect(self, close_code):
        """Leave the group and announce the departure, if the group was joined."""
        if not self.group_name:
            return

        await self.channel_layer.group_discard(self.group_name, self.channel_name)
        await self.channel_layer.group_send(
            self.group_name,
            build_event(PARTICIPANT_LEFT, customer_id=self.customer_id),
        )
        logger.info(
            f"Socket disconnected from channel {self.channel_id} "
            f"(customer {self.customer_id}, code {close_code})"
        )

    async def receive_json(self, content, **kwargs):
        """
        Handle incoming frames.

        Expected message format:
            {"type": "typing", "is_typing": true}
        """
        message_type = content.get("type") if isinstance(content, dict) else None

        if message_type == "typing" and self.customer_id is None:
            await self.send_json(
                {
                    "type": "error",
                    "message": "Typing requires a customer connection (?customer=<id>)",
                }
            )
        elif message_type == "typing":
            await self.channel_layer.group_send(
                self.group_name,
                build_event(
                    TYPING_CHANGED,
                    customer_id=self.customer_id,
                    is_typing=bool(content.get("is_typing", False)),
                ),
            )
        else:
            await self.send_json(
                {
                    "type": "error",
                    "message": f"Unknown message type: {message_type}",
                }
            )

    async def forward_event(self, event):
        """Send a group event to the socket unchanged."""
        await self.send_json(event)

    # Group event handlers ("message.sent" dispatches to message_sent, etc.)
    message_sent = forward_event
    typing_changed = forward_event
    participant_joined = forward_event
    participant_left = forward_event

    @database_sync_to_async
    def _get_channel(self, client) -> Channel | None:
        return Channel.objects.for_client(client).filter(uuid=self.channel_id).first()

    @database_sync_to_async
    def _is_participant(self, channel: Channel, customer_id: str) -> bool:
        if not validate_uuid(customer_id):
            return False
        return ChannelMembership.objects.filter(
            channel=channel,
            customer__uuid=customer_id,
            customer__is_deleted=False,
        ).exists()
