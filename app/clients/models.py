"""
Tenant models.

A Client is a tenant application integrating the messaging API. Every
customer, channel and message belongs to exactly one client, and every
API request is authenticated as exactly one client.

Models:
    Client: Tenant registry entry (name, registered domain, public key)
    ClientToken: Hashed API token issued to a client

Design Decisions:
    - Tokens are stored as sha256 hashes; the plaintext is shown once
    - The public key is not a secret; it selects the tenant whose tokens
      are checked, and is sent as the X-Public-Key header
    - The registered domain is compared against the request Origin host,
      subdomains included
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.helpers import generate_token
from core.managers import SoftDeleteManager
from core.model_mixins import PublicIdMixin, SoftDeleteMixin
from core.models import BaseModel


def generate_public_key() -> str:
    """Public key handed to tenants for the X-Public-Key header."""
    return f"pk_{generate_token(16)}"


class Client(PublicIdMixin, SoftDeleteMixin, BaseModel):
    """
    Tenant isolation boundary.

    Fields:
        name: Human readable tenant name
        domain: Registered host used for origin validation
        public_key: Identifies the tenant on every API request
    """

    objects = SoftDeleteManager()
    all_objects = models.Manager()

    name = models.CharField(
        max_length=255,
        help_text="Human readable tenant name",
    )
    domain = models.CharField(
        max_length=255,
        help_text="Registered host (no scheme or port); subdomains are accepted",
    )
    public_key = models.CharField(
        max_length=64,
        unique=True,
        default=generate_public_key,
        help_text="Public identifier sent as the X-Public-Key header",
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.name} ({self.domain})"


class ClientToken(BaseModel):
    """
    API token issued to a client.

    Only the sha256 hash of the token is stored. A token authenticates
    only together with its own client's public key.
    """

    client = models.ForeignKey(
        Client,
        on_delete=models.CASCADE,
        related_name="tokens",
        help_text="Tenant this token authenticates",
    )
    name = models.CharField(
        max_length=100,
        default="default",
        help_text="Label to tell tokens apart",
    )
    token_hash = models.CharField(
        max_length=64,
        unique=True,
        help_text="sha256 hex digest of the plaintext token",
    )
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Expiry time; null means the token never expires",
    )
    last_used_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Last time this token authenticated a request",
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"ClientToken({self.name}) for {self.client_id}"

    def is_expired(self, now=None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or timezone.now())
