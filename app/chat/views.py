"""
ViewSets for chat API.

This module provides REST API endpoints for the chat system:
- ChannelViewSet: Channel resolution, lookup and activity-ordered listings
- MessageViewSet: Message append, direct messages and history listings

URL Structure:
    /api/v1/channels/                           GET, POST
    /api/v1/channels/{id}/                      GET
    /api/v1/channels/customer/{customer_id}/    GET
    /api/v1/messages/                           POST
    /api/v1/messages/send-to-customer/          POST
    /api/v1/messages/channel/{channel_id}/      GET
    /api/v1/messages/customer/{customer_id}/    GET
    /api/v1/messages/between/{email1}/{email2}/ GET

Design Decisions:
    - The tenant is always request.user.client (see ClientTokenAuthentication)
    - Views parse input, call a service and serialize the result; failed
      results are rendered as {"error", "error_code", "details"} with the
      status from ERROR_STATUS (400 for codes not listed)
    - Listings use StartingAfterPagination for parameters and envelope while
      the services own scope and ordering
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from chat.models import Channel, Message
from chat.serializers import (
    ChannelCreateSerializer,
    ChannelSerializer,
    DirectMessageCreateSerializer,
    MessageCreateSerializer,
    MessageSerializer,
)
from chat.services import ActivityTracker, ChannelService, MessageService
from core.pagination import StartingAfterPagination
from customers.services import CustomerService

ERROR_STATUS = {
    "CHANNEL_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "CUSTOMER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "DUPLICATE_GENERAL_CHANNEL": status.HTTP_409_CONFLICT,
}


def failure_response(result) -> Response:
    """Render a failed ServiceResult with the status of its error code."""
    return Response(
        result.to_response(),
        status=ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


def validation_failed(serializer) -> Response:
    """Render serializer errors in the API error shape."""
    return Response(
        {
            "error": "Validation failed",
            "error_code": "VALIDATION_ERROR",
            "details": serializer.errors,
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


@extend_schema_view(
    list=extend_schema(
        operation_id="list_channels",
        summary="List channels",
        description="Channels of the authenticated client, most recently active first.",
        tags=["Channels"],
    ),
    create=extend_schema(
        operation_id="create_channel",
        summary="Create channel",
        description=(
            "General: creates the channel for the participant set, or fails with 409 "
            "if it exists. Custom: returns the existing channel with that name (200) "
            "or creates it (201), provisioning the general channel of its participants."
        ),
        request=ChannelCreateSerializer,
        responses={
            201: ChannelSerializer,
            200: OpenApiResponse(ChannelSerializer, description="Existing custom channel"),
        },
        tags=["Channels"],
    ),
    retrieve=extend_schema(
        operation_id="get_channel",
        summary="Get channel",
        tags=["Channels"],
    ),
)
class ChannelViewSet(viewsets.GenericViewSet):
    """
    ViewSet for channel operations.

    list:
        Channels ordered by last activity, keyset-paginated.

    create:
        Resolve a general or custom channel.

    retrieve:
        Get a channel by id.

    for_customer:
        Channels a customer participates in, ordered by last activity.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = StartingAfterPagination
    serializer_class = ChannelSerializer

    def get_queryset(self):
        if not self.request.user.is_authenticated:
            return Channel.objects.none()
        return Channel.objects.for_client(self.request.user.client)

    def list(self, request):
        limit, starting_after = self.paginator.get_params(request)
        result = ActivityTracker.list_ordered(
            request.user.client,
            limit=limit,
            starting_after=starting_after,
        )
        if not result.success:
            return failure_response(result)

        data = ChannelSerializer(result.data.items, many=True).data
        return self.paginator.get_paginated_response(data, result.data)

    def create(self, request):
        serializer = ChannelCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_failed(serializer)
        data = serializer.validated_data

        result = ChannelService.resolve(
            request.user.client,
            channel_type=data["type"],
            participant_ids=data["participants"],
            name=data.get("name"),
        )
        if not result.success:
            return failure_response(result)

        resolution = result.data
        return Response(
            ChannelSerializer(resolution.channel).data,
            status=status.HTTP_201_CREATED if resolution.created else status.HTTP_200_OK,
        )

    def retrieve(self, request, pk=None):
        result = ChannelService.get(request.user.client, pk)
        if not result.success:
            return failure_response(result)
        return Response(ChannelSerializer(result.data).data)

    @extend_schema(
        operation_id="list_customer_channels",
        summary="List channels for customer",
        responses={200: ChannelSerializer(many=True)},
        tags=["Channels"],
    )
    @action(detail=False, methods=["get"], url_path=r"customer/(?P<customer_id>[^/]+)")
    def for_customer(self, request, customer_id=None):
        customer_result = CustomerService.get(request.user.client, customer_id)
        if not customer_result.success:
            return failure_response(customer_result)

        limit, starting_after = self.paginator.get_params(request)
        result = ActivityTracker.list_ordered(
            request.user.client,
            customer=customer_result.data,
            limit=limit,
            starting_after=starting_after,
        )
        if not result.success:
            return failure_response(result)

        data = ChannelSerializer(result.data.items, many=True).data
        return self.paginator.get_paginated_response(data, result.data)


@extend_schema_view(
    create=extend_schema(
        operation_id="create_message",
        summary="Send message",
        request=MessageCreateSerializer,
        responses={201: MessageSerializer},
        tags=["Messages"],
    ),
)
class MessageViewSet(viewsets.GenericViewSet):
    """
    ViewSet for message operations.

    create:
        Append a message to a channel the sender participates in.

    send_to_customer:
        Direct message between two customers identified by email, sent in
        their general channel (created on first use).

    for_channel:
        Channel history, oldest first.

    for_customer:
        Messages sent by a customer, newest first.

    between:
        Conversation between two customers, newest first.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = StartingAfterPagination
    serializer_class = MessageSerializer

    def get_queryset(self):
        if not self.request.user.is_authenticated:
            return Message.objects.none()
        return Message.objects.filter(client=self.request.user.client)

    def create(self, request):
        serializer = MessageCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_failed(serializer)
        data = serializer.validated_data

        result = MessageService.append(
            request.user.client,
            channel_id=data["channel_id"],
            sender_id=data["sender_id"],
            message_type=data["type"],
            content=data["content"],
            metadata=data.get("metadata"),
        )
        if not result.success:
            return failure_response(result)
        return Response(MessageSerializer(result.data).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="list_channel_messages",
        summary="List channel messages",
        responses={200: MessageSerializer(many=True)},
        tags=["Messages"],
    )
    @action(detail=False, methods=["get"], url_path=r"channel/(?P<channel_id>[^/]+)")
    def for_channel(self, request, channel_id=None):
        limit, starting_after = self.paginator.get_params(request)
        result = MessageService.list_for_channel(
            request.user.client,
            channel_id,
            limit=limit,
            starting_after=starting_after,
        )
        if not result.success:
            return failure_response(result)

        data = MessageSerializer(result.data.items, many=True).data
        return self.paginator.get_paginated_response(data, result.data)

    @extend_schema(
        operation_id="list_customer_messages",
        summary="List customer messages",
        responses={200: MessageSerializer(many=True)},
        tags=["Messages"],
    )
    @action(detail=False, methods=["get"], url_path=r"customer/(?P<customer_id>[^/]+)")
    def for_customer(self, request, customer_id=None):
        limit, starting_after = self.paginator.get_params(request)
        result = MessageService.list_for_customer(
            request.user.client,
            customer_id,
            limit=limit,
            starting_after=starting_after,
        )
        if not result.success:
            return failure_response(result)

        data = MessageSerializer(result.data.items, many=True).data
        return self.paginator.get_paginated_response(data, result.data)

    @extend_schema(
        operation_id="send_message_to_customer",
        summary="Send message to customer",
        description=(
            "Sends a message from one customer to another, both identified by email. "
            "The message lands in the pair's general channel, which is created if needed."
        ),
        request=DirectMessageCreateSerializer,
        responses={201: MessageSerializer},
        tags=["Messages"],
    )
    @action(detail=False, methods=["post"], url_path="send-to-customer")
    def send_to_customer(self, request):
        serializer = DirectMessageCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_failed(serializer)
        data = serializer.validated_data

        result = MessageService.send_to_customer(
            request.user.client,
            sender_email=data["sender_email"],
            recipient_email=data["recipient_email"],
            message_type=data["type"],
            content=data["content"],
            metadata=data.get("metadata"),
        )
        if not result.success:
            return failure_response(result)
        return Response(MessageSerializer(result.data).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="list_messages_between_customers",
        summary="List messages between customers",
        responses={200: MessageSerializer(many=True)},
        tags=["Messages"],
    )
    @action(
        detail=False,
        methods=["get"],
        url_path=r"between/(?P<email1>[^/]+)/(?P<email2>[^/]+)",
    )
    def between(self, request, email1=None, email2=None):
        limit, starting_after = self.paginator.get_params(request)
        result = MessageService.list_between_customers(
            request.user.client,
            email1,
            email2,
            limit=limit,
            starting_after=starting_after,
        )
        if not result.success:
            return failure_response(result)

        data = MessageSerializer(result.data.items, many=True).data
        return self.paginator.get_paginated_response(data, result.data)
