"""
Centralized Table Configuration
===============================

This module defines the table names, column selections and fallback data
used when querying the structured-data service.
It serves as the **single source of truth** for the remote schema.

Purpose
-------
- Eliminate hardcoded table/column strings throughout the loader
- Keep the reduced-field (minimal) selections next to the full ones
- Provide the canonical default category set used by every fallback

Usage
-----
    >>> from inventory_loader.table_config import Table, Columns, DEFAULT_CATEGORIES
    >>>
    >>> client.select(Table.CATEGORIES, Columns.CATEGORIES, filters={"is_active": True})

Module Contents
---------------
Table : Enum
    Tables, views and RPC functions on the data service
Columns : class
    Column selections per query flavour
StrategyName : Enum
    Names recorded in ``SnapshotMeta.strategy_used``
DEFAULT_CATEGORIES : list
    Canonical 6-entry category set
"""

from typing import Any, Dict, List
from enum import Enum


class Table(str, Enum):
    """Remote resources queried by the loader."""
    CATEGORIES = "categories"
    PRODUCTS = "products"
    PRODUCTS_OPTIMIZED = "products_optimized"

    # RPC functions (optional on the server)
    RPC_COUNT_BY_CATEGORY = "get_products_count_by_category"
    RPC_LOW_STOCK = "get_low_stock_products"


class Columns:
    """Column selections (PostgREST ``select=`` values)."""

    CATEGORIES = "id, name, description, is_active, sort_order"
    CATEGORIES_MINIMAL = "id, name, is_active"

    PRODUCTS_OPTIMIZED = "*"
    # Only the basic columns that exist in every products table variant
    PRODUCTS = "id, name, category_id, quantity, is_active"
    PRODUCTS_MINIMAL = "id, name, category_id, quantity, is_active"

    LOW_STOCK = "id, name, quantity, reorder_point, category_id"
    PROBE = "id"


class StrategyName(str, Enum):
    """Loading strategies, from most optimal to most degraded."""
    OPTIMIZED = "optimized"
    PROGRESSIVE = "progressive"
    PARALLEL = "parallel"
    MINIMAL = "minimal"
    OFFLINE = "offline"
    DEFAULT = "default"


CACHE_KEY = "inventory"

UNKNOWN_CATEGORY = "Unknown"

DEFAULT_REORDER_THRESHOLD = 10

EXPIRY_WINDOW_DAYS = 30

MINIMAL_ROW_LIMIT = 100


DEFAULT_CATEGORIES: List[Dict[str, Any]] = [
    {"id": "cat_1", "name": "Chemical Fertilizer", "is_active": True, "sort_order": 1},
    {"id": "cat_2", "name": "Organic Fertilizer", "is_active": True, "sort_order": 2},
    {"id": "cat_3", "name": "Bio Fertilizer", "is_active": True, "sort_order": 3},
    {"id": "cat_4", "name": "Seeds", "is_active": True, "sort_order": 4},
    {"id": "cat_5", "name": "Pesticides", "is_active": True, "sort_order": 5},
    {"id": "cat_6", "name": "Tools & Equipment", "is_active": True, "sort_order": 6},
]


# PostgREST / Postgres error codes that mean "this shape does not exist here"
SCHEMA_ERROR_CODES = frozenset({
    "42P01",     # undefined_table
    "42703",     # undefined_column
    "42883",     # undefined_function
    "PGRST200",  # relationship not found
    "PGRST202",  # function not found in schema cache
    "PGRST204",  # column not found in schema cache
    "PGRST205",  # table not found in schema cache
})
