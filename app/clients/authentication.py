"""
DRF authentication for tenant API requests.

Every API request carries:
    Authorization: Bearer <token>
    X-Public-Key: <client public key>
    Origin: https://<registered domain or subdomain>

Usage in settings:
    REST_FRAMEWORK = {
        "DEFAULT_AUTHENTICATION_CLASSES": [
            "clients.authentication.ClientTokenAuthentication",
        ],
    }

    # In a view
    client = request.user.client
"""

from __future__ import annotations

import logging

from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

from clients.services import ClientService
from core.helpers import get_client_ip

logger = logging.getLogger(__name__)


class AuthenticatedClient:
    """
    request.user for tenant-authenticated requests.

    Wraps the Client so DRF permission and throttle classes see an
    authenticated principal.
    """

    is_authenticated = True
    is_anonymous = False

    def __init__(self, client):
        self.client = client

    @property
    def pk(self):
        return self.client.pk

    @property
    def id(self):
        return self.client.pk

    def __str__(self) -> str:
        return str(self.client)


class ClientTokenAuthentication(BaseAuthentication):
    """Bearer token + X-Public-Key + Origin authentication."""

    keyword = "Bearer"

    def authenticate(self, request):
        header = request.META.get("HTTP_AUTHORIZATION", "")
        token = header[len(self.keyword) + 1 :].strip() if header.startswith(f"{self.keyword} ") else ""
        if not token:
            logger.warning(
                f"Authentication failed - Missing or invalid Authorization header "
                f"({request.method} {request.path} from {get_client_ip(request)})"
            )
            raise AuthenticationFailed(
                {
                    "error": "Unauthorized - Missing or invalid Authorization header",
                    "error_code": "MISSING_AUTHORIZATION",
                }
            )

        public_key = request.META.get("HTTP_X_PUBLIC_KEY", "").strip()
        if not public_key:
            logger.warning(
                f"Authentication failed - Missing X-Public-Key header "
                f"({request.method} {request.path} from {get_client_ip(request)})"
            )
            raise AuthenticationFailed(
                {
                    "error": "Unauthorized - Missing X-Public-Key header",
                    "error_code": "MISSING_PUBLIC_KEY",
                }
            )

        result = ClientService.authenticate(
            public_key=public_key,
            token=token,
            origin=request.META.get("HTTP_ORIGIN"),
        )
        if not result.success:
            raise AuthenticationFailed(result.to_response())

        client, client_token = result.data
        return AuthenticatedClient(client), client_token

    def authenticate_header(self, request):
        return f'{self.keyword} realm="api"'
