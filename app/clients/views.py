"""
Views for client resources.

URL Structure:
    /api/v1/client/{uuid}/   GET   Authenticated client's own record
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from clients.serializers import ClientSerializer


class ClientDetailView(APIView):
    """
    Return the authenticated client.

    Asking for any other client's id is answered exactly like an unknown
    id, so tenants cannot discover each other.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_client",
        summary="Get client",
        responses={200: ClientSerializer},
        tags=["Clients"],
    )
    def get(self, request, client_id):
        client = request.user.client
        if client.uuid != client_id:
            return Response(
                {
                    "error": "Client not found",
                    "error_code": "CLIENT_NOT_FOUND",
                    "details": {"client": str(client_id)},
                },
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(ClientSerializer(client).data)
