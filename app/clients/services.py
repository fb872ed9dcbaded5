"""
Tenant registry and credential checks.

Services:
    ClientService: Create tenants, issue tokens, authenticate requests

Authentication order (first failure wins):
    1. Public key must identify an active client
    2. Token must belong to that client
    3. Token must not be expired
    4. Origin host must match the client's registered domain

Failures are returned as ServiceResult failures whose messages are
prefixed "Unauthorized - " and surfaced to API callers verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from django.conf import settings
from django.utils import timezone

from clients.models import Client, ClientToken
from core.helpers import generate_token, hash_string
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from datetime import datetime


def origin_host(value: str | None) -> str:
    """
    Reduce an Origin header (or a bare domain) to its lowercase host.

    "https://App.Example.com:8443/path" -> "app.example.com"
    "example.com" -> "example.com"
    """
    if not value:
        return ""
    value = value.strip().lower()
    if "://" not in value:
        value = f"//{value}"
    try:
        return urlsplit(value).hostname or ""
    except ValueError:
        return ""


def origin_allowed(origin: str | None, domain: str) -> bool:
    """Whether `origin` is the registered domain or one of its subdomains."""
    host = origin_host(origin)
    registered = origin_host(domain)
    if not host or not registered:
        return False
    return host == registered or host.endswith(f".{registered}")


@dataclass(frozen=True)
class IssuedToken:
    """A freshly issued token; `plaintext` is never stored."""

    token: ClientToken
    plaintext: str


class ClientService(BaseService):
    """Tenant lifecycle and request authentication."""

    @classmethod
    def create_client(cls, name: str, domain: str) -> ServiceResult[Client]:
        """
        Register a new tenant.

        Args:
            name: Tenant display name
            domain: Registered host; scheme, port and path are stripped

        Returns:
            ServiceResult with the Client, or an INVALID_CLIENT failure
            with per-field messages in details
        """
        name = (name or "").strip()
        host = origin_host(domain)

        errors = {}
        if not name:
            errors["name"] = ["Client name is required"]
        elif len(name) > 255:
            errors["name"] = ["Client name cannot exceed 255 characters"]
        if not host or " " in host or ("." not in host and host != "localhost"):
            errors["domain"] = ["Please provide a valid domain"]
        if errors:
            return ServiceResult.failure(
                "Invalid client data",
                error_code="INVALID_CLIENT",
                details=errors,
            )

        client = Client.objects.create(name=name, domain=host)
        cls.get_logger().info(f"Created client {client.uuid} for domain {host}")
        return ServiceResult.success(client)

    @classmethod
    def issue_token(
        cls,
        client: Client,
        name: str = "default",
        expires_at: datetime | None = None,
    ) -> IssuedToken:
        """
        Issue a new API token for `client`.

        When no expiry is given, CLIENT_TOKEN_TTL_DAYS applies (0 = never).
        """
        if expires_at is None and settings.CLIENT_TOKEN_TTL_DAYS:
            expires_at = timezone.now() + timedelta(days=settings.CLIENT_TOKEN_TTL_DAYS)

        plaintext = generate_token(32)
        token = ClientToken.objects.create(
            client=client,
            name=name,
            token_hash=hash_string(plaintext),
            expires_at=expires_at,
        )
        cls.get_logger().info(f"Issued token '{name}' for client {client.uuid}")
        return IssuedToken(token=token, plaintext=plaintext)

    @classmethod
    def authenticate(
        cls,
        public_key: str,
        token: str,
        origin: str | None,
    ) -> ServiceResult[tuple[Client, ClientToken]]:
        """
        Resolve the tenant for a request.

        Returns:
            ServiceResult with (client, token), or a failure carrying the
            message and code of the first failed check: INVALID_PUBLIC_KEY,
            INVALID_TOKEN, TOKEN_EXPIRED or INVALID_ORIGIN
        """
        logger = cls.get_logger()

        client = Client.objects.filter(public_key=public_key).first()
        if client is None:
            logger.warning("Authentication failed - Invalid public key")
            return ServiceResult.failure(
                "Unauthorized - Invalid public key",
                error_code="INVALID_PUBLIC_KEY",
            )

        record = ClientToken.objects.filter(
            client=client,
            token_hash=hash_string(token or ""),
        ).first()
        if record is None:
            logger.warning(f"Authentication failed - Invalid token for client {client.uuid}")
            return ServiceResult.failure(
                "Unauthorized - Invalid token for this client",
                error_code="INVALID_TOKEN",
            )

        now = timezone.now()
        if record.is_expired(now):
            logger.warning(
                f"Authentication failed - Token {record.pk} expired at {record.expires_at}"
            )
            return ServiceResult.failure(
                "Unauthorized - Token expired",
                error_code="TOKEN_EXPIRED",
            )

        if not origin_allowed(origin, client.domain):
            logger.warning(
                f"Authentication failed - Origin {origin!r} not allowed for client {client.uuid}"
            )
            return ServiceResult.failure(
                "Unauthorized - Invalid origin domain",
                error_code="INVALID_ORIGIN",
            )

        ClientToken.objects.filter(pk=record.pk).update(last_used_at=now)
        record.last_used_at = now
        return ServiceResult.success((client, record))
