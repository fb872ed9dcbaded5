"""
Service layer for the customer directory.

Services:
    CustomerService: Create, look up, resolve, list and delete customers

Every lookup is scoped to the calling client. A customer id belonging to
another client behaves exactly like an unknown id.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import IntegrityError

from core.helpers import validate_uuid
from core.pagination import CursorPage, paginate
from core.services import BaseService, ServiceResult
from customers.models import Customer, normalize_email

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any

    from clients.models import Client


CUSTOMER_LIST_ORDERING = ("-created_at", "-id")


def _canonical_id(value) -> str | None:
    """Canonical string form of a uuid-like id, or None if malformed."""
    if not validate_uuid(value):
        return None
    return str(uuid.UUID(str(value)))


class CustomerService(BaseService):
    """
    Service for customer directory operations.

    Methods:
        create: Register a customer under a client
        get: Fetch one customer by public id
        find_by_email: Fetch one customer by (normalized) email
        resolve_customers: Resolve many ids at once, all-or-nothing
        list: Newest-first keyset listing
        delete: Soft delete

    Expected failures are returned as ServiceResult failures with one of
    INVALID_CUSTOMER, CUSTOMER_EMAIL_TAKEN, CUSTOMER_NOT_FOUND or
    INVALID_CURSOR.
    """

    @classmethod
    def create(
        cls,
        client: Client,
        name: str,
        email: str,
        metadata: dict[str, Any] | None = None,
    ) -> ServiceResult[Customer]:
        """
        Create a customer.

        Args:
            client: Owning client
            name: Display name (required, max 255)
            email: Email address (required, valid, max 255); stored lowercased
            metadata: Optional JSON object

        Returns:
            ServiceResult with the new Customer, or a failure:
            INVALID_CUSTOMER with per-field messages in details, or
            CUSTOMER_EMAIL_TAKEN when an active customer of this client
            already has the email
        """
        name = (name or "").strip()
        email = normalize_email(email)

        errors: dict[str, list[str]] = {}
        if not name:
            errors["name"] = ["Customer name is required"]
        elif len(name) > 255:
            errors["name"] = ["Customer name cannot exceed 255 characters"]

        if not email:
            errors["email"] = ["Customer email is required"]
        elif len(email) > 255:
            errors["email"] = ["Customer email cannot exceed 255 characters"]
        else:
            try:
                validate_email(email)
            except DjangoValidationError:
                errors["email"] = ["Customer email must be a valid email address"]

        if metadata is None:
            metadata = {}
        elif not isinstance(metadata, dict):
            errors["metadata"] = ["Customer metadata must be an object"]

        if errors:
            cls.get_logger().warning(
                f"Customer validation failed for client {client.uuid}: {sorted(errors)}"
            )
            return ServiceResult.failure(
                "Invalid customer data",
                error_code="INVALID_CUSTOMER",
                details=errors,
            )

        if Customer.objects.for_client(client).filter(email=email).exists():
            return cls._email_taken(email)

        try:
            with cls.atomic():
                customer = Customer.objects.create(
                    client=client,
                    name=name,
                    email=email,
                    metadata=metadata,
                )
        except IntegrityError:
            # Concurrent create with the same email won the constraint
            return cls._email_taken(email)

        cls.get_logger().info(f"Created customer {customer.uuid} for client {client.uuid}")
        return ServiceResult.success(customer)

    @classmethod
    def get(cls, client: Client, customer_id) -> ServiceResult[Customer]:
        """
        Fetch an active customer of `client` by public id.

        Unknown, malformed, deleted and foreign ids all fail with
        CUSTOMER_NOT_FOUND and details={"missing": [customer_id]}.
        """
        canonical = _canonical_id(customer_id)
        customer = None
        if canonical:
            customer = Customer.objects.for_client(client).filter(uuid=canonical).first()
        if customer is None:
            return ServiceResult.failure(
                "Customer not found",
                error_code="CUSTOMER_NOT_FOUND",
                details={"missing": [str(customer_id)]},
            )
        return ServiceResult.success(customer)

    @classmethod
    def find_by_email(cls, client: Client, email: str) -> ServiceResult[Customer]:
        """Fetch an active customer of `client` by email (case-insensitive)."""
        normalized = normalize_email(email)
        customer = None
        if normalized:
            customer = Customer.objects.for_client(client).filter(email=normalized).first()
        if customer is None:
            return ServiceResult.failure(
                "Customer not found",
                error_code="CUSTOMER_NOT_FOUND",
                details={"missing": [normalized]},
            )
        return ServiceResult.success(customer)

    @classmethod
    def resolve_customers(
        cls,
        client: Client,
        identifiers: Iterable,
    ) -> ServiceResult[list[Customer]]:
        """
        Resolve customer ids for `client`, all or nothing.

        Args:
            client: Calling client
            identifiers: Public customer ids

        Returns:
            ServiceResult with the customers in the same order as
            `identifiers`, or a CUSTOMER_NOT_FOUND failure whose
            details["missing"] names every id that is malformed, unknown,
            deleted or owned by another client
        """
        identifiers = [str(identifier) for identifier in identifiers]
        canonical = {identifier: _canonical_id(identifier) for identifier in identifiers}

        found = {
            str(customer.uuid): customer
            for customer in Customer.objects.for_client(client).filter(
                uuid__in=[value for value in canonical.values() if value]
            )
        }

        missing = [
            identifier
            for identifier in identifiers
            if canonical[identifier] not in found
        ]
        if missing:
            return ServiceResult.failure(
                "One or more customers could not be found",
                error_code="CUSTOMER_NOT_FOUND",
                details={"missing": missing},
            )

        return ServiceResult.success([found[canonical[identifier]] for identifier in identifiers])

    @classmethod
    def list(
        cls,
        client: Client,
        limit: int,
        starting_after=None,
    ) -> ServiceResult[CursorPage[Customer]]:
        """List active customers of `client`, newest first."""
        return paginate(
            Customer.objects.for_client(client),
            ordering=CUSTOMER_LIST_ORDERING,
            limit=limit,
            starting_after=starting_after,
        )

    @classmethod
    def delete(cls, client: Client, customer_id) -> ServiceResult[Customer]:
        """
        Soft delete a customer.

        Memberships and messages are kept; the customer can no longer be
        resolved as a participant or sender.
        """
        result = cls.get(client, customer_id)
        if not result.success:
            return result

        customer = result.data
        customer.soft_delete()
        cls.get_logger().info(f"Deleted customer {customer.uuid} for client {client.uuid}")
        return ServiceResult.success(customer)

    @staticmethod
    def _email_taken(email: str) -> ServiceResult[Customer]:
        return ServiceResult.failure(
            "Email already exists for this client",
            error_code="CUSTOMER_EMAIL_TAKEN",
            details={"email": email},
        )
