"""Paged reads of whole tables."""

import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from .errors import ErrorKind, classify_error

logger = logging.getLogger(__name__)

# PostgREST caps a single response at 1000 rows by default
DEFAULT_PAGE_SIZE = 1000


def fetch_all_rows(
    client: Client,
    table: str,
    columns: str = "*",
    page_size: int = DEFAULT_PAGE_SIZE,
    order_by: Optional[str] = "id"
) -> List[Dict[str, Any]]:
    """
    Read every row of a table, one page at a time

    Pages are requested with .range() until a short page comes back. When the
    table has no order_by column the read is retried unordered.

    Raises:
        The underlying request error for anything but a missing order column
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive")

    rows: List[Dict[str, Any]] = []
    start = 0
    while True:
        query = client.table(table).select(columns)
        if order_by:
            query = query.order(order_by)
        try:
            response = query.range(start, start + page_size - 1).execute()
        except Exception as e:
            if order_by and start == 0 and classify_error(e) == ErrorKind.MISSING_COLUMN:
                logger.info(f"{table} has no '{order_by}' column, reading unordered")
                return fetch_all_rows(client, table, columns, page_size, order_by=None)
            raise

        page = response.data or []
        rows.extend(page)
        if len(page) < page_size:
            break
        start += page_size

    logger.debug(f"Fetched {len(rows)} rows from {table}")
    return rows
