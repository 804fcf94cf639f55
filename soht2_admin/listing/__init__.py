from .filters import (
    FieldKind,
    FieldSpec,
    FilterItem,
    FilterSet,
    QueryParams,
    encode_query,
    from_wire_params,
    normalize,
    to_wire_params,
)
from .loader import ListLoader, ListSnapshot, LoadStatus
from .navigation import (
    NavigationState,
    Pagination,
    SetFilters,
    SetPage,
    SetPageSize,
    SetSort,
    SortDirection,
    Sorting,
    reduce,
)
from .views import CONNECTIONS_VIEW, HISTORY_VIEW, USERS_VIEW, VIEWS, ViewSpec

__all__ = [
    "CONNECTIONS_VIEW",
    "FieldKind",
    "FieldSpec",
    "FilterItem",
    "FilterSet",
    "HISTORY_VIEW",
    "ListLoader",
    "ListSnapshot",
    "LoadStatus",
    "NavigationState",
    "Pagination",
    "QueryParams",
    "SetFilters",
    "SetPage",
    "SetPageSize",
    "SetSort",
    "SortDirection",
    "Sorting",
    "USERS_VIEW",
    "VIEWS",
    "ViewSpec",
    "encode_query",
    "from_wire_params",
    "normalize",
    "reduce",
    "to_wire_params",
]
