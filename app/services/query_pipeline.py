"""
UserDesk - Listing Query Pipeline

Builds the query plan shared by the admin user listing and the activity log
listing: filter, optional case-insensitive sort key, sort, then a single
paginate step that yields both the page and the total count.

The builder is store-agnostic. It returns an ordered list of typed stage
descriptors which a store interpreter (see query_stores.py) executes:

    MatchStage     -> scope AND filters AND (search OR-group)
    ProjectStage   -> lower-cased copy of the sort field (string fields only)
    SortStage      -> derived or raw field, ties broken by natural order
    PaginateStage  -> skip/limit slice plus count of the filtered set

Usage:
    request = QueryRequest.from_params(page="2", limit="10", sort_field="email")
    result = execute(request, USER_QUERY_FIELDS, SqlAlchemyStore(db, User))
    result.items, result.total_count
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

logger = logging.getLogger("userdesk.query")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_SORT_FIELD = "createdAt"
SORT_KEY_ALIAS = "sort_key"
# page and limit are clamped here so skip = (page - 1) * limit always fits a 64-bit OFFSET
MAX_PAGING_VALUE = 2**31 - 1


class QueryExecutionError(Exception):
    """The underlying store failed while running a pipeline. No partial result exists."""
    pass


def coerce_positive_int(value: Any, default: int) -> int:
    """
    Parse a query parameter as a positive integer.

    Anything that does not parse, or parses to zero or less, yields the default.
    Leading digits are accepted, so "3abc" -> 3 and "2.5" -> 2. Values above
    MAX_PAGING_VALUE are clamped to it.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return min(value, MAX_PAGING_VALUE) if value > 0 else default
    text = str(value).strip()
    digits = ""
    for ch in text:
        if not ch.isdecimal():
            break
        digits += ch
    if not digits:
        return default
    if len(digits.lstrip("0")) > len(str(MAX_PAGING_VALUE)):
        return MAX_PAGING_VALUE
    number = int(digits)
    return min(number, MAX_PAGING_VALUE) if number > 0 else default


# -----------------------------------------------------------------------------
# Request / Result
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class QueryRequest:
    """Normalized listing parameters. Build it with from_params() for raw input."""
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_field: str = DEFAULT_SORT_FIELD
    sort_order: str = "asc"
    search_term: str = ""
    filters: Mapping[str, Any] = field(default_factory=dict)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def descending(self) -> bool:
        return self.sort_order == "desc"

    @classmethod
    def from_params(
        cls,
        page: Any = None,
        limit: Any = None,
        sort_field: Optional[str] = None,
        sort_order: Optional[str] = None,
        search_term: Optional[str] = None,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> "QueryRequest":
        """Apply the lenient parsing rules to raw query-string values."""
        cleaned_filters = {}
        for name, value in (filters or {}).items():
            if value is None:
                continue
            text = str(value).strip()
            if text:
                cleaned_filters[name] = text

        return cls(
            page=coerce_positive_int(page, DEFAULT_PAGE),
            limit=coerce_positive_int(limit, DEFAULT_LIMIT),
            sort_field=(sort_field or "").strip() or DEFAULT_SORT_FIELD,
            sort_order="desc" if sort_order == "desc" else "asc",
            search_term=(search_term or "").strip(),
            filters=cleaned_filters,
        )


@dataclass
class QueryResult:
    """One page of records plus the size of the whole filtered set."""
    items: List[Any]
    total_count: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return (self.total_count + self.limit - 1) // self.limit


@dataclass(frozen=True)
class FieldRegistry:
    """
    Static per-entity field configuration.

    fields maps public (API) names to store attribute names. Only mapped
    names can be sorted, searched or filtered on, so request input never
    reaches arbitrary store attributes.
    """
    fields: Mapping[str, str]
    string_fields: frozenset = frozenset()
    searchable_fields: Tuple[str, ...] = ()
    filter_fields: frozenset = frozenset()

    def resolve(self, name: str) -> Optional[str]:
        return self.fields.get(name)

    def require(self, name: str) -> str:
        attr = self.fields.get(name)
        if attr is None:
            raise KeyError(f"Unknown field '{name}'")
        return attr


# -----------------------------------------------------------------------------
# Stage descriptors
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring match."""
    field: str
    term: str


@dataclass(frozen=True)
class MatchStage:
    """All `equals` must hold; when `any_of` is non-empty at least one must hold."""
    equals: Tuple[Equals, ...] = ()
    any_of: Tuple[Contains, ...] = ()


@dataclass(frozen=True)
class ProjectStage:
    """Adds a lower-cased copy of `source` under `alias`. The record itself is untouched."""
    source: str
    alias: str = SORT_KEY_ALIAS


@dataclass(frozen=True)
class SortStage:
    """
    Order by `key` (a projected alias when derived, a raw attribute otherwise).

    key=None means no usable sort field: records stay in natural order.
    Natural order is always the final tie-breaker.
    """
    key: Optional[str]
    descending: bool = False
    derived: bool = False


@dataclass(frozen=True)
class PaginateStage:
    """Facet step: page slice (skip/limit) and total count from the same filtered set."""
    skip: int
    limit: int


Stage = Union[MatchStage, ProjectStage, SortStage, PaginateStage]


class QueryStore(Protocol):
    def run(self, stages: Sequence[Stage]) -> Tuple[List[Any], int]:
        ...


# -----------------------------------------------------------------------------
# Builder
# -----------------------------------------------------------------------------

def build_match(
    request: QueryRequest,
    registry: FieldRegistry,
    scope: Optional[Mapping[str, Any]] = None,
) -> MatchStage:
    """Combine the caller scope, equality filters and the search OR-group."""
    equals = []
    for name, value in (scope or {}).items():
        equals.append(Equals(registry.require(name), value))

    for name, value in request.filters.items():
        if name not in registry.filter_fields:
            logger.debug("Ignoring filter on non-filterable field %s", name)
            continue
        equals.append(Equals(registry.require(name), value))

    any_of = ()
    if request.search_term:
        any_of = tuple(
            Contains(registry.require(name), request.search_term)
            for name in registry.searchable_fields
        )

    return MatchStage(equals=tuple(equals), any_of=any_of)


def build_pipeline(
    request: QueryRequest,
    registry: FieldRegistry,
    scope: Optional[Mapping[str, Any]] = None,
) -> List[Stage]:
    """
    Assemble the ordered stage list for a listing request.

    Args:
        request: Normalized listing parameters
        registry: Field configuration of the listed entity
        scope: Caller-fixed equality constraints (public field names), never user input

    Returns:
        [MatchStage, ProjectStage?, SortStage, PaginateStage]
    """
    stages: List[Stage] = [build_match(request, registry, scope)]

    sort_attr = registry.resolve(request.sort_field)
    if sort_attr is not None and request.sort_field in registry.string_fields:
        stages.append(ProjectStage(source=sort_attr))
        stages.append(SortStage(key=SORT_KEY_ALIAS, descending=request.descending, derived=True))
    else:
        if sort_attr is None:
            logger.debug("Unrecognized sort field %r, keeping natural order", request.sort_field)
        stages.append(SortStage(key=sort_attr, descending=request.descending))

    stages.append(PaginateStage(skip=request.skip, limit=request.limit))
    return stages


def execute(
    request: QueryRequest,
    registry: FieldRegistry,
    store: QueryStore,
    scope: Optional[Mapping[str, Any]] = None,
) -> QueryResult:
    """
    Build and run a listing pipeline.

    Raises:
        QueryExecutionError: If the store fails. Never returns a partial page.
    """
    stages = build_pipeline(request, registry, scope)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Running pipeline %s", describe(stages))

    items, total_count = store.run(stages)
    logger.debug(
        "Listing page=%d limit=%d sort=%s/%s returned %d of %d",
        request.page, request.limit, request.sort_field, request.sort_order,
        len(items), total_count,
    )
    return QueryResult(
        items=items,
        total_count=total_count,
        page=request.page,
        limit=request.limit,
    )


def describe(stages: Sequence[Stage]) -> List[Dict[str, Any]]:
    """Plain-dict rendering of a pipeline, used in debug logging and tests."""
    rendered = []
    for stage in stages:
        if isinstance(stage, MatchStage):
            rendered.append({
                "match": {
                    "equals": {c.field: c.value for c in stage.equals},
                    "any_of": [c.field for c in stage.any_of],
                }
            })
        elif isinstance(stage, ProjectStage):
            rendered.append({"project": {stage.alias: f"lower({stage.source})"}})
        elif isinstance(stage, SortStage):
            rendered.append({"sort": {stage.key: -1 if stage.descending else 1}})
        elif isinstance(stage, PaginateStage):
            rendered.append({"paginate": {"skip": stage.skip, "limit": stage.limit}})
    return rendered
