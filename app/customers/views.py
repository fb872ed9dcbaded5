"""
ViewSet for customer resources.

URL Structure:
    /api/v1/customers/          GET, POST
    /api/v1/customers/{id}/     GET, DELETE
    /api/v1/customers/active/   GET

All operations go through CustomerService (or ActivityTracker for the
activity-ordered listing); the tenant always comes from
request.user.client, never from the payload.
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from chat.services import ActivityTracker
from core.pagination import StartingAfterPagination
from customers.models import Customer
from customers.serializers import (
    ActiveCustomerSerializer,
    CustomerCreateSerializer,
    CustomerSerializer,
)
from customers.services import CustomerService

ERROR_STATUS = {
    "CUSTOMER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "CUSTOMER_EMAIL_TAKEN": status.HTTP_409_CONFLICT,
}


def failure_response(result) -> Response:
    """Render a failed ServiceResult with the status of its error code."""
    return Response(
        result.to_response(),
        status=ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


@extend_schema_view(
    list=extend_schema(
        operation_id="list_customers",
        summary="List customers",
        description="Customers of the authenticated client, newest first.",
        tags=["Customers"],
    ),
    create=extend_schema(
        operation_id="create_customer",
        summary="Create customer",
        request=CustomerCreateSerializer,
        responses={201: CustomerSerializer},
        tags=["Customers"],
    ),
    retrieve=extend_schema(
        operation_id="get_customer",
        summary="Get customer",
        tags=["Customers"],
    ),
    destroy=extend_schema(
        operation_id="delete_customer",
        summary="Delete customer",
        responses={204: OpenApiResponse(description="Customer deleted")},
        tags=["Customers"],
    ),
)
class CustomerViewSet(viewsets.GenericViewSet):
    """
    ViewSet for customer operations.

    list:
        Keyset-paginated, newest first.

    create:
        Register a customer. Email is lowercased and unique per client.

    retrieve:
        Get a customer by id. Other clients' customers are not found.

    destroy:
        Soft delete. Existing channels and messages keep referencing it.

    active:
        Customers ordered by their latest message, optionally narrowed to
        the conversation partners of one sender.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = StartingAfterPagination
    serializer_class = CustomerSerializer
    lookup_value_regex = "[^/]+"

    def get_queryset(self):
        if not self.request.user.is_authenticated:
            return Customer.objects.none()
        return Customer.objects.for_client(self.request.user.client)

    def list(self, request):
        limit, starting_after = self.paginator.get_params(request)
        result = CustomerService.list(
            request.user.client,
            limit=limit,
            starting_after=starting_after,
        )
        if not result.success:
            return failure_response(result)

        data = CustomerSerializer(result.data.items, many=True).data
        return self.paginator.get_paginated_response(data, result.data)

    def create(self, request):
        serializer = CustomerCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    "error": "Validation failed",
                    "error_code": "VALIDATION_ERROR",
                    "details": serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        result = CustomerService.create(
            client=request.user.client,
            **serializer.validated_data,
        )
        if not result.success:
            return failure_response(result)
        return Response(CustomerSerializer(result.data).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        result = CustomerService.get(request.user.client, pk)
        if not result.success:
            return failure_response(result)
        return Response(CustomerSerializer(result.data).data)

    def destroy(self, request, pk=None):
        result = CustomerService.delete(request.user.client, pk)
        if not result.success:
            return failure_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="list_active_customers",
        summary="List active customers",
        description=(
            "Customers who have sent messages, most recent activity first. With "
            "sender_email, lists the sender's conversation partners ordered by the "
            "latest message in their shared channels."
        ),
        parameters=[
            OpenApiParameter(
                "sender_email",
                OpenApiTypes.EMAIL,
                required=False,
                description="Restrict to customers sharing a channel with this sender",
            ),
        ],
        responses={200: ActiveCustomerSerializer(many=True)},
        tags=["Customers"],
    )
    @action(detail=False, methods=["get"])
    def active(self, request):
        limit, starting_after = self.paginator.get_params(request)
        result = ActivityTracker.list_active_customers(
            request.user.client,
            sender_email=request.query_params.get("sender_email") or None,
            limit=limit,
            starting_after=starting_after,
        )
        if not result.success:
            return failure_response(result)

        data = ActiveCustomerSerializer(result.data.items, many=True).data
        return self.paginator.get_paginated_response(data, result.data)
