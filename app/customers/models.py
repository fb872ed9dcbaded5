"""
Customer model.

Design Decisions:
    - Email is lowercased on save, so the per-client unique constraint is
      case-insensitive without database-specific collations
    - Uniqueness only applies to active rows; a soft-deleted customer's
      email can be registered again
    - metadata is an opaque bag supplied by the client application
"""

from __future__ import annotations

from django.db import models

from core.managers import SoftDeleteManager, SoftDeleteQuerySet
from core.model_mixins import MetadataMixin, PublicIdMixin, SoftDeleteMixin
from core.models import BaseModel


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


class CustomerQuerySet(SoftDeleteQuerySet):
    def for_client(self, client) -> CustomerQuerySet:
        return self.filter(client=client)


class Customer(PublicIdMixin, MetadataMixin, SoftDeleteMixin, BaseModel):
    """
    A participant identity inside one client.

    Fields:
        client: Owning tenant
        name: Display name
        email: Lowercased email, unique per client among active customers
        metadata: Opaque key-value data
    """

    objects = SoftDeleteManager.from_queryset(CustomerQuerySet)()
    all_objects = models.Manager()

    client = models.ForeignKey(
        "clients.Client",
        on_delete=models.CASCADE,
        related_name="customers",
        help_text="Tenant this customer belongs to",
    )
    name = models.CharField(
        max_length=255,
        help_text="Display name",
    )
    email = models.EmailField(
        max_length=255,
        help_text="Lowercased email address, unique within the client",
    )

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["client", "email"],
                condition=models.Q(is_deleted=False),
                name="unique_active_customer_email_per_client",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"

    def save(self, *args, **kwargs):
        self.email = normalize_email(self.email)
        super().save(*args, **kwargs)
