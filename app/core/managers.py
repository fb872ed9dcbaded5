"""
Custom QuerySet and Manager classes for soft-deleted models.

Manager vs QuerySet:
    - QuerySet: Defines chainable methods (filter, exclude, etc.)
    - Manager: Attaches QuerySet to model, defines table-level operations

Usage:
    from core.managers import SoftDeleteManager, SoftDeleteQuerySet

    class CustomerQuerySet(SoftDeleteQuerySet):
        def for_client(self, client):
            return self.filter(client=client)

    class Customer(SoftDeleteMixin, BaseModel):
        objects = SoftDeleteManager.from_queryset(CustomerQuerySet)()
        all_objects = models.Manager()

    Customer.objects.for_client(client)      # active customers only
    Customer.all_objects.all()               # everything
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class SoftDeleteQuerySet(models.QuerySet):
    """
    QuerySet that provides soft delete operations.

    Methods:
        delete(): Soft delete (marks is_deleted=True)

    Note:
        The default filtering of deleted records happens in SoftDeleteManager,
        not in this QuerySet; all_objects stays a plain unfiltered Manager.
    """

    def delete(self) -> tuple[int, dict[str, int]]:
        """
        Soft delete all objects in queryset.

        Returns:
            Tuple of (count, {model_name: count}) matching Django's delete()
        """
        count = self.filter(is_deleted=False).update(
            is_deleted=True,
            deleted_at=timezone.now(),
        )
        return count, {self.model._meta.label: count}

    delete.queryset_only = True


class SoftDeleteManager(models.Manager):
    """
    Manager that filters out soft-deleted records by default.

    Use as the default manager on models with SoftDeleteMixin.
    Always pair with a standard Manager for accessing deleted records.
    Subclass querysets attach through from_queryset().
    """

    _queryset_class = SoftDeleteQuerySet

    def get_queryset(self) -> SoftDeleteQuerySet:
        """Return queryset excluding soft-deleted records."""
        return self._queryset_class(self.model, using=self._db).filter(is_deleted=False)
