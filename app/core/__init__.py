"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks shared by the domain apps
(clients, customers, chat). No domain-specific logic lives here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - PublicIdMixin: Public uuid next to the internal integer key
    - SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)
    - MetadataMixin: Opaque JSON metadata storage

Managers (import from core.managers):
    - SoftDeleteManager / SoftDeleteQuerySet

Services (import from core.services):
    - BaseService: Logger and transaction helpers
    - ServiceResult: Standard result wrapper for success/failure handling

Pagination (import from core.pagination):
    - CursorPage, paginate, paginate_after, StartingAfterPagination

Serializer Mixins (import from core.serializer_mixins):
    - ResourceMixin: Stripe-style resource envelope

Helpers (import from core.helpers):
    - generate_token, hash_string, validate_uuid, get_client_ip

Note:
    Django models, mixins, managers and DRF-dependent modules are NOT imported
    here to avoid AppRegistryNotReady errors. Import them from their modules.
"""

from .services import BaseService, ServiceResult

from .helpers import (
    generate_token,
    get_client_ip,
    hash_string,
    validate_uuid,
)

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Helpers
    "generate_token",
    "hash_string",
    "validate_uuid",
    "get_client_ip",
]
