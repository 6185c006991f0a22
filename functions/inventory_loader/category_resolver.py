"""
Category name resolution.

Joins products to category display names:
``category_name = product.category_name or map[product.category_id] or "Unknown"``.
A name the query already denormalized onto the row always wins.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .models import Category, Product, RowId
from .table_config import UNKNOWN_CATEGORY

logger = logging.getLogger(__name__)


@dataclass
class ResolutionReport:
    """Diagnostic counts only; never used for control flow."""
    products: List[Product] = field(default_factory=list)
    resolved: int = 0
    unresolved: int = 0


def _key(value: RowId) -> str:
    # ids arrive as int from one view and str from another
    return str(value)


class CategoryResolver:
    """Resolves ``category_name`` for a product list in O(products + categories)."""

    def resolve_with_report(
        self, products: Sequence[Product], categories: Sequence[Category]
    ) -> ResolutionReport:
        category_map: Dict[str, str] = {_key(c.id): c.name for c in categories}
        report = ResolutionReport()

        for product in products:
            name = product.category_name
            if not name and product.category_id is not None:
                name = category_map.get(_key(product.category_id))
            if not name:
                name = UNKNOWN_CATEGORY
                report.unresolved += 1
            else:
                report.resolved += 1
            report.products.append(product.model_copy(update={"category_name": name}))

        logger.debug(
            f"Category name resolution completed: resolved={report.resolved}, "
            f"unresolved={report.unresolved}, categories={len(category_map)}"
        )
        return report

    def resolve(self, products: Sequence[Product], categories: Sequence[Category]) -> List[Product]:
        return self.resolve_with_report(products, categories).products
