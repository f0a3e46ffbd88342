from .filters import matches_criterion, matches_filter_set, matches_search
from .pagination import PageSlice, clamp_page, paginate, total_pages
from .sorting import collation_key, compare_text, sort_stable

__all__ = [
    "PageSlice",
    "clamp_page",
    "collation_key",
    "compare_text",
    "matches_criterion",
    "matches_filter_set",
    "matches_search",
    "paginate",
    "sort_stable",
    "total_pages",
]
