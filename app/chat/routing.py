"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/channels/<channel_id>/ - Subscribe to a channel's realtime events

Authentication:
    Credentials are passed as query parameters:
        ?public_key=<client public key>&token=<client token>&customer=<customer id>
    ClientTokenAuthMiddleware validates them (with the handshake Origin)
    and attaches the client to the consumer's scope.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path(
        "ws/channels/<uuid:channel_id>/",
        consumers.ChannelConsumer.as_asgi(),
    ),
]
