import math
import re
from typing import Iterable, List, Tuple

from employee_directory.core.exceptions import ValidationError

# filters[departmentIds][]=1, filters[departmentIds][0]=1, filters[departmentIds]=1,2
_FILTER_KEY = re.compile(r"^filters\[(?P<name>[A-Za-z]+)\](?:\[\d*\])?$")


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input matches literally (escape char: backslash)."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def parse_filter_ids(items: Iterable[Tuple[str, str]], name: str) -> List[int]:
    """
    Collect the ids of one `filters[<name>]` query parameter.

    Accepts the bracketed array forms browsers and axios produce as well as
    comma-separated values. Order is kept and duplicates dropped.

    Raises:
        ValidationError: if any value is not a positive integer
    """
    ids: List[int] = []
    for key, raw in items:
        match = _FILTER_KEY.match(key)
        if not match or match.group("name") != name:
            continue
        for part in raw.split(","):
            part = part.strip()
            if not part:
                continue
            if not (part.isascii() and part.isdigit()) or int(part) <= 0:
                raise ValidationError(f"{name} must contain positive integers")
            value = int(part)
            if value not in ids:
                ids.append(value)
    return ids


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
