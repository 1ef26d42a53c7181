"""
Listing, filtering, sorting and cursor pagination over the collections.

``ListOptions`` is the full set of options a list endpoint understands.
``ResourceQuery`` holds what each collection allows: the sortable fields,
the default order, the filter field and any wire-name aliases.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from database import ORDERS, PRODUCTS, USERS, find_by_id, to_dict
from helpers import build_pagination, prefix_range

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50


class QueryOptionError(ValueError):
    pass


@dataclass(frozen=True)
class ResourceQuery:
    collection: str
    sort_fields: Tuple[str, ...]
    default_sort: str
    default_direction: str
    filter_field: Optional[str] = None
    search_field: Optional[str] = None
    aliases: Dict[str, str] = field(default_factory=dict)
    hidden_fields: Tuple[str, ...] = ()


PRODUCT_QUERY = ResourceQuery(PRODUCTS, ("name", "price", "createdAt"), "name", "asc",
                              filter_field="category", search_field="name")
ORDER_QUERY = ResourceQuery(ORDERS, ("createdAt", "updatedAt", "total", "status"), "createdAt", "desc",
                            filter_field="status", aliases={"total": "pricing.total"})
USER_QUERY = ResourceQuery(USERS, ("createdAt", "updatedAt", "name", "email"), "createdAt", "desc",
                           filter_field="isActive", hidden_fields=("hashedPassword",))


@dataclass
class ListOptions:
    sort_field: str
    sort_direction: str
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    filter_value: Any = None
    cursor: Optional[str] = None
    search: Optional[str] = None


def parse_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def clamp_page(page: Any) -> int:
    return max(1, parse_int(page, 1))


def clamp_page_size(page_size: Any) -> int:
    return min(MAX_PAGE_SIZE, max(1, parse_int(page_size, DEFAULT_PAGE_SIZE)))


def resolve_options(resource: ResourceQuery, sort_by: Optional[str] = None, order: Optional[str] = None,
                    page: Any = 1, page_size: Any = DEFAULT_PAGE_SIZE, filter_value: Any = None,
                    cursor: Optional[str] = None, search: Optional[str] = None,
                    strict: bool = False) -> ListOptions:
    """Build ``ListOptions`` from raw query-string values.

    Unknown sort fields fall back to the resource default. With ``strict``
    they raise ``QueryOptionError`` instead, as do unknown directions.
    """
    sort_field = resource.default_sort
    if sort_by:
        if sort_by in resource.sort_fields:
            sort_field = sort_by
        elif strict:
            raise QueryOptionError(
                f"Invalid sortBy. Valid fields: {', '.join(resource.sort_fields)}")

    direction = resource.default_direction
    if order:
        if order in ("asc", "desc"):
            direction = order
        elif strict:
            raise QueryOptionError("Invalid order. Valid values: asc, desc")

    return ListOptions(
        sort_field=sort_field,
        sort_direction=direction,
        page=clamp_page(page),
        page_size=clamp_page_size(page_size),
        filter_value=filter_value,
        cursor=cursor or None,
        search=search or None,
    )


def _field_value(doc: Dict[str, Any], path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def list_documents(db: Database, resource: ResourceQuery, options: ListOptions) -> Dict[str, Any]:
    """Return one page as ``{items, pagination}``.

    ``pagination.total`` is the number of items on this page and
    ``hasMore`` only means the page came back full.
    """
    sort_path = resource.aliases.get(options.sort_field, options.sort_field)
    direction = ASCENDING if options.sort_direction == "asc" else DESCENDING

    clauses: List[Dict[str, Any]] = []
    if resource.filter_field and options.filter_value is not None:
        clauses.append({resource.filter_field: options.filter_value})
    if resource.search_field and options.search:
        clauses.append({resource.search_field: prefix_range(options.search)})

    cursor_doc = find_by_id(db, resource.collection, options.cursor) if options.cursor else None
    if cursor_doc is not None:
        op = "$gt" if direction == ASCENDING else "$lt"
        last_value = _field_value(cursor_doc, sort_path)
        clauses.append({"$or": [
            {sort_path: {op: last_value}},
            {sort_path: last_value, "_id": {op: cursor_doc["_id"]}},
        ]})

    query: Dict[str, Any] = {"$and": clauses} if len(clauses) > 1 else (clauses[0] if clauses else {})
    found = db[resource.collection].find(query).sort([(sort_path, direction), ("_id", direction)])
    if cursor_doc is None and options.page > 1:
        found = found.skip((options.page - 1) * options.page_size)
    found = found.limit(options.page_size)

    items = []
    for doc in found:
        item = to_dict(doc)
        for hidden in resource.hidden_fields:
            item.pop(hidden, None)
        items.append(item)

    pagination = build_pagination(options.page, options.page_size, len(items))
    pagination["nextCursor"] = items[-1]["id"] if pagination["hasMore"] else None
    return {"items": items, "pagination": pagination}
