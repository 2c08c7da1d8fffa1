"""Keyset pagination over SQLAlchemy selects."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import InvalidRequestError
from atreo.schemas.pagination import PaginationMeta, decode_cursor


async def paginate(
    db: AsyncSession,
    query: Select,
    sort_column: Any,
    id_column: Any,
    page_size: int = 20,
    after: str | None = None,
    *,
    descending: bool = False,
) -> tuple[list[Any], PaginationMeta]:
    """Apply a cursor window to ``query`` and fetch one page.

    Args:
        db: Async SQLAlchemy session.
        query: Base select with all filters applied.
        sort_column: Column the list is ordered by.
        id_column: Primary key column used as the tie-breaker.
        page_size: Maximum number of rows to return.
        after: Opaque cursor from the previous page, if any.
        descending: Order newest (or largest) first.

    Returns:
        Tuple of (rows, pagination metadata).

    Raises:
        InvalidRequestError: If ``after`` is not a valid cursor.
    """
    if after:
        try:
            cursor_value, cursor_id = decode_cursor(after)
        except ValueError as exc:
            raise InvalidRequestError(str(exc)) from exc
        if descending:
            query = query.where(
                (sort_column < cursor_value)
                | ((sort_column == cursor_value) & (id_column < cursor_id))
            )
        else:
            query = query.where(
                (sort_column > cursor_value)
                | ((sort_column == cursor_value) & (id_column > cursor_id))
            )

    if descending:
        query = query.order_by(sort_column.desc(), id_column.desc())
    else:
        query = query.order_by(sort_column.asc(), id_column.asc())
    query = query.limit(page_size + 1)

    result = await db.execute(query)
    rows = list(result.scalars().all())

    has_next = len(rows) > page_size
    if has_next:
        rows = rows[:page_size]

    return rows, PaginationMeta(has_next=has_next, has_prev=after is not None)
