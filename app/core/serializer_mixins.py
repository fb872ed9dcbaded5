"""
Serializer mixins providing reusable functionality for DRF serializers.

Available Mixins:
    ResourceMixin: Render a model as a Stripe-style API resource

Usage:
    from core.serializer_mixins import ResourceMixin

    class CustomerSerializer(ResourceMixin, serializers.ModelSerializer):
        resource_object = "customer"

        class Meta:
            model = Customer
            fields = ["name", "email", "metadata"]

    # -> {"object": "customer", "id": "<uuid>", "name": ..., "email": ...,
    #     "metadata": {...}, "created": 1700000000, "livemode": false}

Note:
    - Works with models combining core.model_mixins.PublicIdMixin and
      core.models.BaseModel
    - For model mixins, see core.model_mixins
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class ResourceMixin:
    """
    Wrap serializer output in the resource envelope.

    Adds, around the declared fields:
        object: resource type name (resource_object)
        id: public uuid of the instance
        created: creation time as a unix timestamp
        livemode: always False
    """

    resource_object: str = ""

    def to_representation(self, instance: Any) -> dict[str, Any]:
        data = super().to_representation(instance)  # type: ignore[misc]
        resource: dict[str, Any] = {
            "object": self.resource_object,
            "id": str(instance.uuid),
        }
        resource.update(data)
        resource["created"] = (
            int(instance.created_at.timestamp()) if instance.created_at else None
        )
        resource["livemode"] = False
        return resource
