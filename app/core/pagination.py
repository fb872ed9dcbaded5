"""
Keyset pagination shared by every list endpoint.

List endpoints take `limit` and `starting_after` (the public id of the last
item the caller saw) and answer with a Stripe-style list object:

    {
        "object": "list",
        "data": [...],
        "has_more": true,
        "total_count": 42
    }

Design Decisions:
    - Ordering is always a composite key ending in the integer primary key,
      so it is total even when timestamps collide
    - The cursor row's own key values are fetched and the next page is
      everything strictly after them on the full composite key; filtering
      on the timestamp alone skips or repeats rows that share it
    - total_count covers the whole scope and ignores the cursor
    - has_more is derived by fetching one extra row

Usage:
    from core.pagination import paginate, paginate_after

    result = paginate(queryset, ordering=("-created_at", "-id"), limit=10, starting_after=cursor)
    if not result.success:
        ...  # INVALID_CURSOR

    page = paginate_after(
        Channel.objects.for_client(client),
        ordering=("-last_activity_at", "-id"),
        limit=10,
        anchor=cursor_channel,
    )
    page.items, page.has_more, page.total_count
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.conf import settings
from django.db.models import Q
from rest_framework import exceptions
from rest_framework.pagination import BasePagination
from rest_framework.response import Response

from core.helpers import validate_uuid
from core.services import ServiceResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from django.db.models import Model, QuerySet

T = TypeVar("T")


class InvalidCursorError(ValueError):
    """
    Raised when starting_after does not name an item in the listing's scope.

    Services catch it and return an INVALID_CURSOR failure.
    """


@dataclass(frozen=True)
class CursorPage(Generic[T]):
    """One page of a keyset-paginated listing."""

    items: list[T] = field(default_factory=list)
    has_more: bool = False
    total_count: int = 0


def strictly_after(ordering: Sequence[str], anchor: Model) -> Q:
    """
    Build the filter selecting rows strictly after `anchor` in `ordering`.

    For ordering ("-a", "-b") this yields:
        Q(a__lt=anchor.a) | Q(a=anchor.a, b__lt=anchor.b)
    """
    condition = Q()
    equal: dict[str, object] = {}
    for term in ordering:
        name = term.lstrip("-")
        lookup = "lt" if term.startswith("-") else "gt"
        value = getattr(anchor, name)
        condition |= Q(**equal, **{f"{name}__{lookup}": value})
        equal[name] = value
    return condition


def get_anchor(queryset: QuerySet, starting_after, lookup: str = "uuid") -> Model | None:
    """
    Fetch the cursor row named by `starting_after` from `queryset`.

    Raises:
        InvalidCursorError: the id is malformed or not in the queryset
    """
    if not starting_after:
        return None
    anchor = None
    if validate_uuid(starting_after):
        anchor = queryset.filter(**{lookup: starting_after}).first()
    if anchor is None:
        raise InvalidCursorError(str(starting_after))
    return anchor


def paginate_after(
    queryset: QuerySet,
    *,
    ordering: Sequence[str],
    limit: int,
    anchor: Model | None = None,
) -> CursorPage:
    """
    Return one page of `queryset` in `ordering`, starting after `anchor`.

    Args:
        queryset: Scoped queryset (tenant, customer, channel filters applied)
        ordering: Composite ordering; must end in a unique column
        limit: Maximum number of items on the page
        anchor: Row the caller saw last, or None for the first page
    """
    total_count = queryset.count()
    ordered = queryset.order_by(*ordering)
    if anchor is not None:
        ordered = ordered.filter(strictly_after(ordering, anchor))

    rows = list(ordered[: limit + 1])
    return CursorPage(
        items=rows[:limit],
        has_more=len(rows) > limit,
        total_count=total_count,
    )


def paginate(
    queryset: QuerySet,
    *,
    ordering: Sequence[str],
    limit: int,
    starting_after=None,
) -> ServiceResult[CursorPage]:
    """
    Resolve the `starting_after` cursor and return one page.

    Returns:
        ServiceResult with the CursorPage, or an INVALID_CURSOR failure when
        the cursor is malformed or outside `queryset`
    """
    try:
        anchor = get_anchor(queryset, starting_after)
    except InvalidCursorError:
        return ServiceResult.failure(
            "starting_after does not match an item in this list",
            error_code="INVALID_CURSOR",
            details={"starting_after": str(starting_after)},
        )
    return ServiceResult.success(
        paginate_after(queryset, ordering=ordering, limit=limit, anchor=anchor)
    )


class StartingAfterPagination(BasePagination):
    """
    Parses `limit`/`starting_after` and renders the list envelope.

    Views fetch the page through their service (which owns the scope and
    the ordering) and hand it back here for rendering:

        paginator = self.paginator
        limit, starting_after = paginator.get_params(request)
        result = ActivityTracker.list_ordered(client, limit=limit, starting_after=starting_after)
        data = ChannelSerializer(result.data.items, many=True).data
        return paginator.get_paginated_response(data, result.data)

    A malformed limit is rejected here with a 400 INVALID_LIMIT body.
    """

    limit_query_param = "limit"
    cursor_query_param = "starting_after"

    def get_params(self, request) -> tuple[int, str | None]:
        """Return (limit, starting_after) from the query string."""
        raw_limit = request.query_params.get(self.limit_query_param)
        limit = settings.API_DEFAULT_PAGE_LIMIT
        if raw_limit not in (None, ""):
            try:
                limit = int(raw_limit)
            except (TypeError, ValueError):
                raise exceptions.ValidationError(
                    {
                        "error": "limit must be an integer",
                        "error_code": "INVALID_LIMIT",
                        "details": {"limit": raw_limit},
                    }
                )
            if limit < 1:
                raise exceptions.ValidationError(
                    {
                        "error": "limit must be at least 1",
                        "error_code": "INVALID_LIMIT",
                        "details": {"limit": raw_limit},
                    }
                )
        limit = min(limit, settings.API_MAX_PAGE_LIMIT)

        starting_after = request.query_params.get(self.cursor_query_param) or None
        return limit, starting_after

    def get_paginated_response(self, data, page: CursorPage) -> Response:
        return Response(
            {
                "object": "list",
                "data": data,
                "has_more": page.has_more,
                "total_count": page.total_count,
            }
        )

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "required": ["object", "data", "has_more", "total_count"],
            "properties": {
                "object": {"type": "string", "example": "list"},
                "data": schema,
                "has_more": {"type": "boolean"},
                "total_count": {"type": "integer"},
            },
        }

    def get_schema_operation_parameters(self, view):
        return [
            {
                "name": self.limit_query_param,
                "required": False,
                "in": "query",
                "description": "Number of items to return (default 10, max 100).",
                "schema": {"type": "integer"},
            },
            {
                "name": self.cursor_query_param,
                "required": False,
                "in": "query",
                "description": "Id of the last item from the previous page.",
                "schema": {"type": "string", "format": "uuid"},
            },
        ]
