"""
Dashboard analytics queries.

Both queries prefer an optional server-side function and fall back to plain
table queries when the function is not deployed.
"""

import logging
from typing import List, Optional

from .data_client import DataServiceClient
from .errors import InventoryQueryError, InventoryValidationError
from .helpers import CancelToken
from .models import CategoryCount, Product
from .strategies import adapt_products
from .table_config import DEFAULT_REORDER_THRESHOLD, Columns, Table

logger = logging.getLogger(__name__)

_RECOVERABLE = (InventoryQueryError, InventoryValidationError)


def get_category_stats(
    client: DataServiceClient, cancel_token: Optional[CancelToken] = None
) -> List[CategoryCount]:
    """
    Active product count per active category.

    Uses ``get_products_count_by_category`` when available, otherwise one
    exact count query per category.
    """
    try:
        rows = client.rpc(Table.RPC_COUNT_BY_CATEGORY, cancel_token=cancel_token)
        return [CategoryCount.model_validate(row) for row in rows]
    except _RECOVERABLE as e:
        logger.warning(f"Category stats function not available, using fallback: {e}")
    except ValueError as e:
        # pydantic ValidationError on an unexpected RPC shape
        logger.warning(f"Category stats function returned unexpected rows, using fallback: {e}")

    categories = client.select(
        Table.CATEGORIES, "id, name", filters={"is_active": True}, cancel_token=cancel_token
    )

    stats: List[CategoryCount] = []
    for category in categories:
        try:
            count = client.count(
                Table.PRODUCTS,
                filters={"category_id": category["id"], "is_active": True},
                cancel_token=cancel_token,
            )
        except _RECOVERABLE as e:
            logger.warning(f"Count failed for category {category.get('id')}: {e}")
            count = 0
        stats.append(CategoryCount(
            category_id=category["id"],
            category_name=category.get("name"),
            product_count=count,
        ))
    return stats


def get_low_stock_products(
    client: DataServiceClient,
    threshold: int = DEFAULT_REORDER_THRESHOLD,
    cancel_token: Optional[CancelToken] = None,
) -> List[Product]:
    """Active products with ``quantity <= threshold``, lowest first."""
    try:
        rows = client.rpc(
            Table.RPC_LOW_STOCK, {"stock_threshold": threshold}, cancel_token=cancel_token
        )
        return adapt_products(rows)
    except _RECOVERABLE as e:
        logger.warning(f"Low stock function not available, using fallback: {e}")

    try:
        rows = client.select(
            Table.PRODUCTS,
            Columns.LOW_STOCK,
            filters={"is_active": True, "quantity": ("lte", threshold)},
            order="quantity.asc",
            cancel_token=cancel_token,
        )
        return adapt_products(rows)
    except _RECOVERABLE as e:
        logger.error(f"Low stock fallback query failed: {e}")
        return []
