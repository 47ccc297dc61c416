# Shared Utilities Package
# Helpers used by more than one service or router

from employee_directory.services.utils.query_helpers import (
    escape_like,
    parse_filter_ids,
    total_pages,
)

__all__ = [
    "escape_like",
    "parse_filter_ids",
    "total_pages",
]
