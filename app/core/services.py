"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, missing
      tenant-scoped records, conflicts)
    - Exceptions: Use for unexpected failures (database errors, bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class CustomerService(BaseService):
        @classmethod
        def create(cls, client, name, email) -> ServiceResult[Customer]:
            if Customer.objects.for_client(client).filter(email=email).exists():
                return ServiceResult.failure(
                    "Email already exists for this client",
                    error_code="CUSTOMER_EMAIL_TAKEN",
                    details={"email": email},
                )

            with cls.atomic():
                customer = Customer.objects.create(client=client, name=name, email=email)

            cls.get_logger().info(f"Created customer {customer.uuid}")
            return ServiceResult.success(customer)

    # In view
    result = CustomerService.create(client, name, email)
    if not result.success:
        return Response(result.to_response(), status=status.HTTP_409_CONFLICT)
    return Response(CustomerSerializer(result.data).data, status=201)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions.
    Use this for expected failures (validation errors, unknown ids,
    conflicts with existing records).

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        details: Structured context (offending ids, field errors, the
            conflicting record)

    Usage:
        # Success case
        return ServiceResult.success(channel)

        # Failure case
        return ServiceResult.failure(
            "General channel already exists for these participants",
            error_code="DUPLICATE_GENERAL_CHANNEL",
            details={"channel": str(existing.uuid)},
        )

        # Check result
        result = ChannelService.get(client, channel_id)
        if result.success:
            channel = result.data
        else:
            print(f"Error: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            details: Structured error context

        Returns:
            ServiceResult with success=False and error details

        Example:
            return ServiceResult.failure(
                "Invalid message",
                error_code="INVALID_MESSAGE",
                details={"content": ["Message content cannot be empty"]},
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            details=details,
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert a failed result to the API error body.

        Returns:
            Dict with error, error_code and (when present) details keys

        Example:
            {
                "error": "Channel not found",
                "error_code": "CHANNEL_NOT_FOUND",
                "details": {"channel": "0b7c..."}
            }
        """
        response: dict[str, Any] = {
            "error": self.error,
            "error_code": self.error_code,
        }
        if self.details:
            response["details"] = self.details
        return response


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Services should be stateless
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.

        Example:
            class MessageService(BaseService):
                @classmethod
                def append(cls, ...):
                    cls.get_logger().info(f"Appended message {message.uuid}")
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls, savepoint: bool = True) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        All database operations within this context manager are
        wrapped in a transaction. If any operation fails, all
        changes are rolled back.

        Nested use creates a savepoint, so an IntegrityError raised by an
        inner block can be caught without poisoning the outer transaction.

        Example:
            with cls.atomic():
                channel = Channel.objects.create(...)
                ChannelMembership.objects.bulk_create(...)
                # If memberships fail, the channel is rolled back too
        """
        with transaction.atomic(savepoint=savepoint):
            yield
