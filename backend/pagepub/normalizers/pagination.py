# pagepub/normalizers/pagination.py
from typing import Any, Callable, Dict, List

from werkzeug.exceptions import BadRequest

MAX_LIMIT = 100


def parse_offset_pagination(args, *, default_limit: int = 20) -> tuple[int, int]:
    """
    Read `limit` and `offset` from query args.

    Raises:
    - BadRequest for non-integers, negative offsets or a limit outside 1..100
    """
    try:
        limit = int(args.get("limit", default_limit))
        offset = int(args.get("offset", 0))
    except (TypeError, ValueError) as exc:
        raise BadRequest("limit and offset must be integers") from exc

    if limit < 1 or limit > MAX_LIMIT:
        raise BadRequest(f"limit must be between 1 and {MAX_LIMIT}")
    if offset < 0:
        raise BadRequest("offset must not be negative")

    return limit, offset


def normalize_offset_page(
    key: str,
    items: List[Any],
    normalize_fn: Callable[[Any], Dict[str, Any]],
    *,
    total: int,
    limit: int,
    offset: int,
) -> Dict[str, Any]:
    return {
        key: [normalize_fn(item) for item in items],
        "total_count": total,
        "limit": limit,
        "offset": offset,
    }
