"""Composable query and conditional-header options for drive requests.

Some endpoints do not honor every option; read the Graph documentation of a
request before applying options to it.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

from onedrive_api.graph.models import ConflictBehavior, DriveField, DriveItemField, Tag

if TYPE_CHECKING:
    from onedrive_api.graph.api import RawRequest

HEADER_IF_MATCH = "If-Match"
HEADER_IF_NONE_MATCH = "If-None-Match"

QUERY_SELECT = "$select"
QUERY_EXPAND = "$expand"
QUERY_ORDER_BY = "$orderby"
QUERY_TOP = "$top"
QUERY_COUNT = "$count"

Field = TypeVar("Field", DriveField, DriveItemField)


class Order(Enum):
    """Sort direction for ``order_by``."""

    ASCENDING = "asc"
    DESCENDING = "desc"


class _AccessOption:
    """ETag preconditions shared by every option kind."""

    def __init__(self) -> None:
        self.if_match: str | None = None
        self.if_none_match: str | None = None

    def apply_to(self, request: RawRequest) -> None:
        if self.if_match is not None:
            request.headers[HEADER_IF_MATCH] = self.if_match
        if self.if_none_match is not None:
            request.headers[HEADER_IF_NONE_MATCH] = self.if_none_match


class ObjectOption(Generic[Field]):
    """Options for requests returning a single resource.

    Setters return the option itself so calls can be chained. ``select`` and
    ``expand`` accumulate across calls.
    """

    def __init__(self) -> None:
        self._access = _AccessOption()
        self._select: list[str] = []
        self._expand: list[str] = []

    def if_match(self, tag: Tag) -> ObjectOption[Field]:
        """Only respond if the current eTag matches, else 412 Precondition Failed."""
        self._access.if_match = tag.value
        return self

    def if_none_match(self, tag: Tag) -> ObjectOption[Field]:
        """Respond with 304 Not Modified if the current eTag matches."""
        self._access.if_none_match = tag.value
        return self

    def select(self, fields: list[Field]) -> ObjectOption[Field]:
        """Restrict the response to ``fields`` (``$select``); duplicates are dropped."""
        self._select.extend(f.api_field_name() for f in fields)
        return self

    def expand(self, field: Field, select_children: list[str] | None = None) -> ObjectOption[Field]:
        """Expand a relationship, optionally selecting fields of the expanded items.

        Args:
            field: Relationship to expand (e.g. ``DriveItemField.CHILDREN``).
            select_children: Wire names of fields to select on expanded items.
        """
        expr = field.api_field_name()
        if select_children is not None:
            expr = f"{expr}({QUERY_SELECT}={','.join(select_children)})"
        self._expand.append(expr)
        return self

    def query_params(self) -> list[tuple[str, str]]:
        """The OData query parameters these options add, in a stable order."""
        params: list[tuple[str, str]] = []
        if self._select:
            params.append((QUERY_SELECT, ",".join(dict.fromkeys(self._select))))
        if self._expand:
            params.append((QUERY_EXPAND, ",".join(self._expand)))
        return params

    def apply_to(self, request: RawRequest) -> None:
        """Write the conditional headers and query parameters into ``request``."""
        self._access.apply_to(request)
        request.add_query(self.query_params())


class CollectionOption(ObjectOption[Field]):
    """Options for requests returning a collection of resources.

    ``order_by``, ``page_size`` and ``get_count`` keep only the last value set.
    """

    def __init__(self) -> None:
        super().__init__()
        self._order_by: str | None = None
        self._page_size: int | None = None
        self._get_count = False

    def if_match(self, tag: Tag) -> CollectionOption[Field]:
        super().if_match(tag)
        return self

    def if_none_match(self, tag: Tag) -> CollectionOption[Field]:
        super().if_none_match(tag)
        return self

    def select(self, fields: list[Field]) -> CollectionOption[Field]:
        super().select(fields)
        return self

    def expand(
        self, field: Field, select_children: list[str] | None = None
    ) -> CollectionOption[Field]:
        super().expand(field, select_children)
        return self

    def order_by(self, field: Field, order: Order) -> CollectionOption[Field]:
        """Sort the collection by one field (``$orderby``).

        Args:
            field: Field to sort on.
            order: Sort direction.

        Returns:
            This option, for chaining.
        """
        self._order_by = f"{field.api_field_name()} {order.value}"
        return self

    def page_size(self, size: int) -> CollectionOption[Field]:
        """Hint the maximum number of items per page (``$top``)."""
        self._page_size = size
        return self

    def get_count(self, get_count: bool) -> CollectionOption[Field]:
        """Ask for the total item count (``$count``). Not allowed on delta requests."""
        self._get_count = get_count
        return self

    def has_get_count(self) -> bool:
        """Whether ``$count`` was requested."""
        return self._get_count

    def query_params(self) -> list[tuple[str, str]]:
        params = super().query_params()
        if self._order_by is not None:
            params.append((QUERY_ORDER_BY, self._order_by))
        if self._page_size is not None:
            params.append((QUERY_TOP, str(self._page_size)))
        if self._get_count:
            params.append((QUERY_COUNT, "true"))
        return params


class DriveItemPutOption:
    """Options for requests creating or replacing items.

    ``If-None-Match`` is not honored by the service on these requests and is
    therefore not offered.
    """

    def __init__(self) -> None:
        self._access = _AccessOption()
        self._conflict_behavior: ConflictBehavior | None = None

    def if_match(self, tag: Tag) -> DriveItemPutOption:
        self._access.if_match = tag.value
        return self

    def conflict_behavior(self, conflict_behavior: ConflictBehavior) -> DriveItemPutOption:
        """Choose how a name collision is resolved.

        When unset, each request applies its own default.
        """
        self._conflict_behavior = conflict_behavior
        return self

    def get_conflict_behavior(self) -> ConflictBehavior | None:
        """The conflict behavior set, or None if the request default applies."""
        return self._conflict_behavior

    def apply_to(self, request: RawRequest) -> None:
        # Conflict behavior travels in the JSON body, not in the request line.
        self._access.apply_to(request)
