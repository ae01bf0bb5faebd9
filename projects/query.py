# tracker/projects/query.py
"""
Query builder for project, update and media listings.

Every query-string directive (search, tags, barangays, status, sort, the
*Range filters, page/limit) is parsed into its own ``RetrievalSpec``
fragment. Fragments are immutable and merged commutatively, so the order
in which directives are applied never changes the final spec.

Range syntax, applied to progress, views and budget:
    "<N"   ->  field < N
    ">N"   ->  field > N
    "N-M"  ->  N <= field <= M   ("10-5" is accepted and matches nothing)
"""
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import reduce
from typing import Callable, Optional, Tuple

from django.conf import settings
from django.db.models import Count, QuerySet
from rest_framework.exceptions import ValidationError

from .models import Project


DEFAULT_PROJECT_ORDERING = ("-created_at",)
DEFAULT_UPDATE_ORDERING = ("created_at",)
DEFAULT_MEDIA_ORDERING = ("-created_at",)

PROJECT_PREFETCH = ("tags", "barangays", "media")

MAX_PAGE_SIZE = 100

# Public sort names (camelCase or snake_case) -> model fields
PROJECT_SORT_FIELDS = {
    "id": "id",
    "title": "title",
    "status": "status",
    "progress": "progress",
    "views": "views",
    "budget": "budget",
    "createdAt": "created_at",
    "created_at": "created_at",
    "updatedAt": "updated_at",
    "updated_at": "updated_at",
    "startDate": "start_date",
    "start_date": "start_date",
    "dueDate": "due_date",
    "due_date": "due_date",
    "completionDate": "completion_date",
    "completion_date": "completion_date",
}

UPDATE_SORT_FIELDS = {
    "id": "id",
    "progress": "progress",
    "createdAt": "created_at",
    "created_at": "created_at",
    "updatedAt": "updated_at",
    "updated_at": "updated_at",
}

MEDIA_SORT_FIELDS = {
    "id": "id",
    "size": "size",
    "createdAt": "created_at",
    "created_at": "created_at",
}

_BETWEEN_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*-\s*(\d+(?:\.\d+)?)$")


@dataclass(frozen=True)
class RetrievalSpec:
    """
    Immutable description of one retrieval.

    ``filters`` is a tuple of ``(lookup, value)`` pairs kept sorted by
    lookup, which makes two specs built from the same directives equal
    no matter how they were assembled.
    """
    filters: Tuple[Tuple[str, object], ...] = ()
    distinct: bool = False
    ordering: Tuple[str, ...] = ()
    offset: Optional[int] = None
    limit: Optional[int] = None
    prefetch: Tuple[str, ...] = ()
    count_comments: bool = False

    def merge(self, other: "RetrievalSpec") -> "RetrievalSpec":
        lookups = dict(self.filters)
        for lookup, value in other.filters:
            if lookup in lookups and lookups[lookup] != value:
                raise ValueError(f"Conflicting values for filter '{lookup}'")
            lookups[lookup] = value

        return RetrievalSpec(
            filters=tuple(sorted(lookups.items(), key=lambda item: item[0])),
            distinct=self.distinct or other.distinct,
            ordering=_pick("ordering", self.ordering, other.ordering),
            offset=_pick("offset", self.offset, other.offset),
            limit=_pick("limit", self.limit, other.limit),
            prefetch=tuple(sorted(set(self.prefetch) | set(other.prefetch))),
            count_comments=self.count_comments or other.count_comments,
        )

    def filtered(self, queryset: QuerySet) -> QuerySet:
        queryset = queryset.filter(**dict(self.filters))
        if self.distinct:
            queryset = queryset.distinct()
        return queryset

    def apply(self, queryset: QuerySet) -> QuerySet:
        """Filtered, annotated, ordered and sliced queryset."""
        queryset = self.filtered(queryset)
        if self.prefetch:
            queryset = queryset.prefetch_related(*self.prefetch)
        if self.count_comments:
            queryset = queryset.annotate(comment_count=Count("comments", distinct=True))
        if self.ordering:
            queryset = queryset.order_by(*self.ordering)
        if self.limit is not None:
            start = self.offset or 0
            queryset = queryset[start:start + self.limit]
        return queryset

    def count(self, queryset: QuerySet) -> int:
        """Total rows matching the filters, ignoring pagination."""
        return self.filtered(queryset).count()


def _pick(name, left, right):
    empty = ((), None)
    if left in empty:
        return right
    if right in empty or left == right:
        return left
    raise ValueError(f"Conflicting values for '{name}'")


def _param(params, key) -> Optional[str]:
    value = params.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


# ─────────────────────────────────────────────────────────────
# Directive parsers: each returns one fragment
# ─────────────────────────────────────────────────────────────

def search_fragment(search: Optional[str]) -> RetrievalSpec:
    if not search:
        return RetrievalSpec()
    return RetrievalSpec(filters=(("title__icontains", search),))


def parse_id_list(raw: str, param: str) -> Tuple[int, ...]:
    """'1, 2,3' -> (1, 2, 3). Anything that is not an integer is a 400."""
    ids = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            ids.append(int(chunk))
        except ValueError:
            raise ValidationError({param: f"Invalid id '{chunk}'."})
    if not ids:
        raise ValidationError({param: "Expected a comma-separated list of ids."})
    return tuple(sorted(set(ids)))


def membership_fragment(relation: str, raw: Optional[str]) -> RetrievalSpec:
    if not raw:
        return RetrievalSpec()
    ids = parse_id_list(raw, relation)
    return RetrievalSpec(filters=((f"{relation}__id__in", ids),), distinct=True)


def status_fragment(status: Optional[str]) -> RetrievalSpec:
    if not status:
        return RetrievalSpec()
    if status not in dict(Project.STATUS_CHOICES):
        raise ValidationError({"status": f"Invalid status '{status}'."})
    return RetrievalSpec(filters=(("status", status),))


def _to_int(raw: str) -> int:
    return int(raw)


def _to_decimal(raw: str) -> Decimal:
    value = Decimal(raw)
    if not value.is_finite():
        raise InvalidOperation(raw)
    return value


def range_fragment(field: str, raw: Optional[str], cast: Callable, param: str) -> RetrievalSpec:
    if not raw:
        return RetrievalSpec()

    raw = raw.replace(" ", "")
    try:
        if raw.startswith("<"):
            return RetrievalSpec(filters=((f"{field}__lt", cast(raw[1:])),))
        if raw.startswith(">"):
            return RetrievalSpec(filters=((f"{field}__gt", cast(raw[1:])),))

        match = _BETWEEN_RE.match(raw)
        if not match:
            raise ValueError(raw)
        low, high = cast(match.group(1)), cast(match.group(2))
    except (ValueError, InvalidOperation):
        raise ValidationError({param: f"Malformed range '{raw}'. Use '<N', '>N' or 'N-M'."})

    # low > high is kept as-is: BETWEEN with an inverted range selects nothing
    return RetrievalSpec(filters=((f"{field}__range", (low, high)),))


def sort_fragment(raw: Optional[str], allowed: dict) -> RetrievalSpec:
    if not raw:
        return RetrievalSpec()

    ordering = []
    for field in raw.split(","):
        field = field.strip()
        if not field:
            continue
        descending = field.startswith("-")
        name = field.lstrip("-+")
        column = allowed.get(name)
        if column is None:
            raise ValidationError({"sort": f"Cannot sort by '{name}'."})
        ordering.append(f"-{column}" if descending else column)

    return RetrievalSpec(ordering=tuple(ordering))


def _positive_int(raw: Optional[str], default: int, param: str) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError({param: f"'{raw}' is not a whole number."})
    if value < 1:
        raise ValidationError({param: "Must be 1 or greater."})
    return value


def pagination_fragment(page: Optional[str], limit: Optional[str]) -> RetrievalSpec:
    page_number = _positive_int(page, 1, "page")
    page_size = _positive_int(limit, settings.PROJECTS_PAGE_SIZE, "limit")
    if page_size > MAX_PAGE_SIZE:
        raise ValidationError({"limit": f"Must be at most {MAX_PAGE_SIZE}."})
    return RetrievalSpec(offset=(page_number - 1) * page_size, limit=page_size)


def combine(fragments, default_ordering=()) -> RetrievalSpec:
    spec = reduce(RetrievalSpec.merge, fragments, RetrievalSpec())
    if not spec.ordering and default_ordering:
        spec = spec.merge(RetrievalSpec(ordering=tuple(default_ordering)))
    return spec


# ─────────────────────────────────────────────────────────────
# Builders
# ─────────────────────────────────────────────────────────────

def build_project_query(params) -> RetrievalSpec:
    """
    Parse listing query params into a project RetrievalSpec.

    Tags, barangays and media are always prefetched and each row is
    annotated with ``comment_count``. Without ``sort`` the newest
    projects come first.
    """
    fragments = [
        RetrievalSpec(prefetch=PROJECT_PREFETCH, count_comments=True),
        search_fragment(_param(params, "search")),
        membership_fragment("tags", _param(params, "tags")),
        membership_fragment("barangays", _param(params, "barangays")),
        status_fragment(_param(params, "status")),
        sort_fragment(_param(params, "sort"), PROJECT_SORT_FIELDS),
        range_fragment("progress", _param(params, "progressRange"), _to_int, "progressRange"),
        range_fragment("views", _param(params, "viewsRange"), _to_int, "viewsRange"),
        range_fragment("budget", _param(params, "budgetRange"), _to_decimal, "budgetRange"),
        pagination_fragment(_param(params, "page"), _param(params, "limit")),
    ]
    return combine(fragments, DEFAULT_PROJECT_ORDERING)


def build_update_query(params) -> RetrievalSpec:
    fragments = [
        RetrievalSpec(prefetch=("media",)),
        sort_fragment(_param(params, "sort"), UPDATE_SORT_FIELDS),
        pagination_fragment(_param(params, "page"), _param(params, "limit")),
    ]
    return combine(fragments, DEFAULT_UPDATE_ORDERING)


def build_media_query(params) -> RetrievalSpec:
    fragments = [
        sort_fragment(_param(params, "sort"), MEDIA_SORT_FIELDS),
        pagination_fragment(_param(params, "page"), _param(params, "limit")),
    ]
    return combine(fragments, DEFAULT_MEDIA_ORDERING)
