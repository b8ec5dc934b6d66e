from .api_response import PageResult
from .exceptions import (
    InvalidPaginationParameter,
    PaginationError,
    QueryModifierError,
    UnknownSubject,
)
from .filter import DataclassFilterMixin, Filter, chain
from .ordering import OrderSpec, order_by, parse_sort
from .pagination import Pagination, Paginator, fetch_page, fetch_page_sync
from .rewriter import RewrittenQuery, rewrite
from .window import PaginationRequest, PaginationWindow, resolve

__all__ = [
    "DataclassFilterMixin",
    "Filter",
    "InvalidPaginationParameter",
    "OrderSpec",
    "PageResult",
    "Pagination",
    "PaginationError",
    "PaginationRequest",
    "PaginationWindow",
    "Paginator",
    "QueryModifierError",
    "RewrittenQuery",
    "UnknownSubject",
    "chain",
    "fetch_page",
    "fetch_page_sync",
    "order_by",
    "parse_sort",
    "resolve",
    "rewrite",
]
