"""Serializers for client resources."""

from rest_framework import serializers

from clients.models import Client
from core.serializer_mixins import ResourceMixin


class ClientSerializer(ResourceMixin, serializers.ModelSerializer):
    """Client resource: {"object": "client", "id", "name", "domain", "public_key", ...}."""

    resource_object = "client"

    class Meta:
        model = Client
        fields = ["name", "domain", "public_key"]
        read_only_fields = fields
