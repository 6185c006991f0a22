"""
Loading Strategy Chain
======================

Ordered set of strategies, from most optimal to most degraded:

1. **Progressive** (default) - categories, then products, then resolve names.
   Category data is small and stays available even if products fail.
2. **Parallel** - categories and products fetched concurrently, then joined.
3. **Minimal** - reduced-field, active-only, row-limited queries that accept
   partial success. Reached from either primary mode on any query, schema or
   validation error.
4. **Offline** - last cached payload, else the default snapshot. Chosen by the
   coordinator when the network is down; issues no queries.
5. **Default** - 6 default categories and no products, for callers that
   render something after a terminal error.

Connectivity errors and cancellations are never swallowed here: they belong
to the coordinator.

Adapters
--------
Every raw row passes through ``adapt_categories`` / ``adapt_products`` before
it leaves this module, so the rest of the system sees one canonical shape.
"""

import time
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

from pydantic import ValidationError

from .category_resolver import CategoryResolver
from .data_client import DataServiceClient
from .errors import (
    InventoryQueryError,
    InventoryValidationError,
    StrategyExhaustedError,
)
from .helpers import CancelToken, elapsed_ms
from .models import (
    Category,
    InventorySnapshot,
    LoadOptions,
    Product,
    SnapshotMeta,
    Stats,
)
from .stats import StatsCalculator
from .table_config import (
    DEFAULT_CATEGORIES,
    MINIMAL_ROW_LIMIT,
    Columns,
    StrategyName,
    Table,
)

logger = logging.getLogger(__name__)

# Errors that move the chain on to the next strategy
RECOVERABLE_ERRORS = (InventoryQueryError, InventoryValidationError)

RowModel = TypeVar("RowModel", Category, Product)


# ============== Row Adapters ==============

def _adapt_rows(model: Type[RowModel], rows: Iterable[Dict[str, Any]], label: str) -> List[RowModel]:
    """
    Validate rows one at a time, skipping the unusable ones.

    Raises:
        InventoryValidationError: rows were returned but none of them is usable
    """
    rows = list(rows)
    adapted: List[RowModel] = []
    last_error: Optional[ValidationError] = None

    for row in rows:
        try:
            adapted.append(model.model_validate(row))
        except ValidationError as e:
            last_error = e
            row_id = row.get("id") if isinstance(row, dict) else None
            logger.warning(f"Skipping unusable {label} row id={row_id}: {e.errors()[0]['msg']}")

    if rows and not adapted:
        raise InventoryValidationError(
            f"None of the {len(rows)} {label} rows is usable: {last_error.errors()[0]}"
        ) from last_error
    if len(adapted) < len(rows):
        logger.warning(f"Skipped {len(rows) - len(adapted)} of {len(rows)} {label} rows")
    return adapted


def adapt_categories(rows: Iterable[Dict[str, Any]]) -> List[Category]:
    """Map raw category rows onto ``Category``."""
    return _adapt_rows(Category, rows, "category")


def adapt_products(rows: Iterable[Dict[str, Any]]) -> List[Product]:
    """Map raw product rows onto ``Product`` (derived fields are computed)."""
    return _adapt_rows(Product, rows, "product")


def default_categories() -> List[Category]:
    return adapt_categories(DEFAULT_CATEGORIES)


def default_snapshot(strategy: StrategyName = StrategyName.DEFAULT) -> InventorySnapshot:
    """Canonical empty inventory: 6 default categories, no products."""
    categories = default_categories()
    return InventorySnapshot(
        categories=categories,
        products=[],
        stats=Stats(total_categories=len(categories)),
        meta=SnapshotMeta(strategy_used=strategy, fallback=True),
    )


def offline_snapshot(cached: Optional[InventorySnapshot]) -> InventorySnapshot:
    """Last cached payload (any age) or the default snapshot tagged offline."""
    if cached is not None:
        logger.info("Using cached data for offline access")
        return cached
    logger.warning("Offline with no cached inventory, returning default snapshot")
    return default_snapshot(StrategyName.OFFLINE)


@dataclass
class _Timings:
    values: Dict[str, float] = field(default_factory=dict)

    def record(self, phase: str, started: float) -> None:
        self.values[phase] = elapsed_ms(started)


# ============== Strategy Chain ==============

class StrategyChain:
    """
    Runs the primary strategy selected by ``options.progressive`` and falls
    back to the minimal strategy on recoverable errors.

    Usage:
        >>> chain = StrategyChain(client)
        >>> snapshot = chain.run(LoadOptions(progressive=False))
    """

    def __init__(
        self,
        client: DataServiceClient,
        resolver: Optional[CategoryResolver] = None,
        stats_calculator: Optional[StatsCalculator] = None,
        minimal_row_limit: int = MINIMAL_ROW_LIMIT,
    ):
        self.client = client
        self.resolver = resolver or CategoryResolver()
        self.stats_calculator = stats_calculator or StatsCalculator()
        self.minimal_row_limit = minimal_row_limit

    def run(self, options: LoadOptions, cancel_token: Optional[CancelToken] = None) -> InventorySnapshot:
        token = cancel_token or CancelToken()
        try:
            if options.progressive:
                return self.load_progressive(options, token)
            return self.load_parallel(options, token)
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Primary loading failed ({type(e).__name__}: {e}), attempting minimal strategy")
            return self.load_minimal(token)

    # ============== Primary Strategies ==============

    def load_progressive(self, options: LoadOptions, cancel_token: CancelToken) -> InventorySnapshot:
        timings = _Timings()

        logger.debug("Progressive step 1: loading categories")
        started = time.perf_counter()
        categories = self.load_categories(cancel_token)
        timings.record("categories", started)

        logger.debug("Progressive step 2: loading products")
        started = time.perf_counter()
        products, source = self.load_products(options.include_inactive, cancel_token)
        timings.record("products", started)

        logger.info(
            f"Progressive load: {len(categories)} categories in {timings.values['categories']}ms, "
            f"{len(products)} products in {timings.values['products']}ms"
        )
        return self._build_snapshot(StrategyName.PROGRESSIVE, categories, products, timings, source)

    def load_parallel(self, options: LoadOptions, cancel_token: CancelToken) -> InventorySnapshot:
        timings = _Timings()
        started = time.perf_counter()

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="inventory-parallel") as pool:
            categories_future = pool.submit(self.load_categories, cancel_token)
            products_future = pool.submit(self.load_products, options.include_inactive, cancel_token)
            categories = categories_future.result()
            products, source = products_future.result()

        timings.record("total", started)
        logger.info(
            f"Parallel load: {len(categories)} categories, {len(products)} products "
            f"in {timings.values['total']}ms"
        )
        return self._build_snapshot(StrategyName.PARALLEL, categories, products, timings, source)

    # ============== Resource Loaders ==============

    def load_categories(self, cancel_token: Optional[CancelToken] = None) -> List[Category]:
        """Active categories ordered by sort order; defaults on error or no rows."""
        try:
            rows = self.client.select(
                Table.CATEGORIES,
                Columns.CATEGORIES,
                filters={"is_active": True},
                order="sort_order.asc",
                cancel_token=cancel_token,
            )
            categories = adapt_categories(rows)
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Categories query error, using default categories: {e}")
            return default_categories()

        if not categories:
            logger.warning("Categories query returned no rows, using defaults")
            return default_categories()
        return categories

    def load_products(
        self, include_inactive: bool = False, cancel_token: Optional[CancelToken] = None
    ) -> Tuple[List[Product], str]:
        """
        Products from the pre-joined view when available, else the products table.

        Returns:
            (products, source) where source is ``"optimized"`` or ``"products"``
        """
        try:
            rows = self.client.select(
                Table.PRODUCTS_OPTIMIZED, Columns.PRODUCTS_OPTIMIZED, cancel_token=cancel_token
            )
            products = adapt_products(rows)
            if not include_inactive:
                products = [p for p in products if p.active]
            logger.debug(f"Used products_optimized view ({len(products)} rows)")
            return products, StrategyName.OPTIMIZED.value
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Optimized view not available, using products table: {e}")

        filters = None if include_inactive else {"is_active": True}
        rows = self.client.select(
            Table.PRODUCTS,
            Columns.PRODUCTS,
            filters=filters,
            order="name.asc",
            cancel_token=cancel_token,
        )
        return adapt_products(rows), Table.PRODUCTS.value

    # ============== Minimal Strategy ==============

    def load_minimal(self, cancel_token: Optional[CancelToken] = None) -> InventorySnapshot:
        """
        Reduced-field, active-only, row-limited load accepting partial success.

        Raises:
            StrategyExhaustedError: when both products and categories fail
        """
        timings = _Timings()
        products_error: Optional[Exception] = None
        categories_error: Optional[Exception] = None

        started = time.perf_counter()
        try:
            products = adapt_products(self.client.select(
                Table.PRODUCTS,
                Columns.PRODUCTS_MINIMAL,
                filters={"is_active": True},
                limit=self.minimal_row_limit,
                cancel_token=cancel_token,
            ))
        except RECOVERABLE_ERRORS as e:
            products_error = e
            products = []
        timings.record("products", started)

        started = time.perf_counter()
        try:
            categories = adapt_categories(self.client.select(
                Table.CATEGORIES,
                Columns.CATEGORIES_MINIMAL,
                filters={"is_active": True},
                limit=self.minimal_row_limit,
                cancel_token=cancel_token,
            ))
        except RECOVERABLE_ERRORS as e:
            categories_error = e
            categories = []
        timings.record("categories", started)

        logger.info(
            f"Minimal query results: products ok={products_error is None} ({len(products)}), "
            f"categories ok={categories_error is None} ({len(categories)})"
        )

        if products_error is not None and categories_error is not None:
            raise StrategyExhaustedError(
                f"Both products and categories failed to load "
                f"(products: {products_error}; categories: {categories_error})"
            )

        if not categories:
            categories = default_categories()

        return self._build_snapshot(
            StrategyName.MINIMAL, categories, products, timings, Table.PRODUCTS.value, fallback=True
        )

    # ============== Assembly ==============

    def _build_snapshot(
        self,
        strategy: StrategyName,
        categories: List[Category],
        products: List[Product],
        timings: _Timings,
        products_source: str,
        fallback: bool = False,
    ) -> InventorySnapshot:
        started = time.perf_counter()
        resolved = self.resolver.resolve(products, categories)
        timings.record("resolve", started)

        return InventorySnapshot(
            categories=categories,
            products=resolved,
            stats=self.stats_calculator.compute(resolved),
            meta=SnapshotMeta(
                strategy_used=strategy,
                timings=timings.values,
                products_source=products_source,
                fallback=fallback,
            ),
        )
