"""Response helpers shared by the routers."""

import json

from complaint_desk.schemas.complaint import PageMeta
from complaint_desk.utils.pagination import PaginationParams, page_count


def page_meta(total: int, pagination: PaginationParams) -> PageMeta:
    return PageMeta(
        total=total,
        page=pagination.page,
        pages=page_count(total, pagination.limit),
        limit=pagination.limit,
    )


def parse_key_list(values: list[str] | None) -> list[str]:
    """
    Flatten repeated form fields into storage keys.

    A single field holding a JSON array is accepted too.
    """
    keys: list[str] = []
    for value in values or []:
        value = (value or "").strip()
        if not value:
            continue
        if value.startswith("["):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, list):
                keys.extend(str(item) for item in parsed if item)
                continue
        keys.append(value)
    return keys
