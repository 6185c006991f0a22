"""
Aggregate statistics derived from a product list.
"""

import logging
from typing import Sequence

from .models import Product, Stats, StockStatus

logger = logging.getLogger(__name__)


class StatsCalculator:
    """Recomputes ``Stats`` on every load; nothing is persisted."""

    def compute(self, products: Sequence[Product]) -> Stats:
        # total_categories counts distinct category ids referenced by products,
        # not rows of the categories table
        category_ids = {str(p.category_id) for p in products if p.category_id not in (None, "")}

        stats = Stats(
            total_products=len(products),
            total_categories=len(category_ids),
            low_stock_products=sum(1 for p in products if p.stock_status == StockStatus.LOW),
            out_of_stock_products=sum(1 for p in products if p.stock_status == StockStatus.OUT),
        )
        logger.debug(f"Stats calculated: {stats.model_dump()}")
        return stats
