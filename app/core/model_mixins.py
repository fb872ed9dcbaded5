"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    PublicIdMixin: Non-guessable uuid exposed through the API
    SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)
    MetadataMixin: Opaque JSON key-value bag

Usage:
    from core.models import BaseModel
    from core.model_mixins import MetadataMixin, PublicIdMixin, SoftDeleteMixin

    class Customer(PublicIdMixin, MetadataMixin, SoftDeleteMixin, BaseModel):
        objects = SoftDeleteManager()
        all_objects = models.Manager()

        name = models.CharField(max_length=255)

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
    - SoftDeleteMixin requires SoftDeleteManager (see core.managers)
"""

from __future__ import annotations

import uuid

from django.db import models
from django.utils import timezone


class PublicIdMixin(models.Model):
    """
    Public identifier kept alongside the internal integer primary key.

    The integer key is an insertion sequence used for deterministic
    tie-breaks in keyset pagination. The uuid is the only identifier
    that leaves the service (API ids, cursors, websocket paths).

    Fields:
        uuid: Unique, non-editable UUID4
    """

    uuid = models.UUIDField(
        default=uuid.uuid4,
        unique=True,
        editable=False,
        help_text="Public identifier exposed through the API",
    )

    class Meta:
        abstract = True


class SoftDeleteMixin(models.Model):
    """
    Soft delete support for models.

    Instead of permanently deleting records, marks them as deleted.
    Historical references (memberships, messages) stay intact.

    Fields:
        is_deleted: Boolean flag indicating soft delete status
        deleted_at: Timestamp when the record was soft deleted

    Usage:
        customer.soft_delete()
        Customer.objects.all()       # excludes deleted
        Customer.all_objects.all()   # includes deleted
    """

    is_deleted = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether this record has been soft deleted",
    )
    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Timestamp when this record was soft deleted",
    )

    class Meta:
        abstract = True

    def soft_delete(self) -> None:
        """
        Mark this record as deleted.

        Idempotent: a second call keeps the original deleted_at.
        """
        if self.is_deleted:
            return
        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.save(update_fields=["is_deleted", "deleted_at", "updated_at"])


class MetadataMixin(models.Model):
    """
    Flexible JSON metadata storage.

    The bag is opaque to the domain: it is stored and returned verbatim.

    Fields:
        metadata: JSONField for arbitrary key-value data
    """

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Flexible key-value metadata storage",
    )

    class Meta:
        abstract = True

