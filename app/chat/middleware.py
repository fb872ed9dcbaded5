"""
WebSocket authentication middleware.

Authenticates WebSocket connections with the same credentials and checks
as the REST API (see clients.services.ClientService.authenticate).

Related files:
    - routing.py: WebSocket URL patterns
    - consumers.py: WebSocket handlers
    - config/asgi.py: ASGI configuration

Credentials:
    Query string: ws://host/ws/channels/<id>/?public_key=pk_...&token=...
    Origin: taken from the handshake's Origin header

Scope keys set:
    client: Authenticated Client, or None
    auth_error: error code of the failed check, or None

Usage in config/asgi.py:
    from chat.middleware import ClientTokenAuthMiddleware

    application = ProtocolTypeRouter({
        "websocket": ClientTokenAuthMiddleware(
            URLRouter(websocket_urlpatterns)
        ),
    })
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware

from clients.services import ClientService

logger = logging.getLogger(__name__)


def query_param(scope, name: str) -> str | None:
    """First value of `name` in the scope's query string."""
    params = parse_qs(scope.get("query_string", b"").decode())
    values = params.get(name, [])
    return values[0] if values else None


def header_value(scope, name: bytes) -> str | None:
    """Value of a handshake header, decoded as latin-1."""
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin1")
    return None


class ClientTokenAuthMiddleware(BaseMiddleware):
    """
    Tenant authentication for WebSocket connections.

    Never rejects the connection itself; the consumer decides what to do
    with an unauthenticated scope (it closes with 4001).
    """

    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        scope["client"] = None
        scope["auth_error"] = None

        public_key = query_param(scope, "public_key")
        token = query_param(scope, "token")
        if public_key and token:
            result = await self._authenticate(
                public_key,
                token,
                header_value(scope, b"origin"),
            )
            if result.success:
                scope["client"], _token = result.data
            else:
                logger.warning(f"WebSocket authentication failed: {result.error}")
                scope["auth_error"] = result.error_code
        else:
            scope["auth_error"] = "MISSING_CREDENTIALS"

        return await super().__call__(scope, receive, send)

    @database_sync_to_async
    def _authenticate(self, public_key: str, token: str, origin: str | None):
        return ClientService.authenticate(
            public_key=public_key,
            token=token,
            origin=origin,
        )
