"""
Chat app for tenant-scoped messaging.

This app handles:
- Channel resolution (general per participant set, custom per name)
- Activity tracking and keyset-paginated listings
- Message append and history
- WebSocket realtime events

Related apps:
    - clients: Tenant registry and authentication
    - customers: Participants and senders

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for WebSocket handlers.
    See routing.py for WebSocket URL patterns.

Usage:
    from chat.services import ChannelService, MessageService

    result = ChannelService.resolve(
        client,
        channel_type="general",
        participant_ids=[alice.uuid, bob.uuid],
    )

    result = MessageService.append(
        client,
        channel_id=result.data.channel.uuid,
        sender_id=alice.uuid,
        message_type="text",
        content="Hello!",
    )
"""
