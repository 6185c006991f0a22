"""
Inventory Loader Library
========================

Client-side orchestrator that turns an unreliable, schema-variable remote
query surface into a consistent, cached snapshot of categories + products.

Modules
-------
coordinator
    LoadCoordinator: single-flight, TTL cache, timeout racing, bounded retry
strategies
    StrategyChain: progressive / parallel / minimal / offline / default loading
cache_store
    Thread-safe TTL cache
category_resolver
    Joins products to category display names
stats
    Aggregate counts derived from a product list
retry_policy
    Attempt budget and progressive delay
data_client
    HTTP client for the structured-data service
network
    Online/offline signal
analytics
    Category counts and low-stock queries
models
    Pydantic models (Category, Product, InventorySnapshot, ...)
table_config
    Table names, column selections, default categories
settings
    Environment-driven configuration

Quick Start
-----------
>>> from inventory_loader import build_coordinator, LoaderSettings
>>>
>>> coordinator = build_coordinator(LoaderSettings.from_env())
>>> snapshot = coordinator.fetch_inventory(profile=None, options={"progressive": True})
>>> snapshot.meta.strategy_used
<StrategyName.PROGRESSIVE: 'progressive'>

Diagnostics
-----------
>>> coordinator.get_debug_stats().is_cached
True
>>> coordinator.test_connection().success
True
"""

# Configuration
from .table_config import (
    Table,
    Columns,
    StrategyName,
    CACHE_KEY,
    DEFAULT_CATEGORIES,
    UNKNOWN_CATEGORY,
)
from .settings import LoaderSettings, configure_logging

# Data models
from .models import (
    StockStatus,
    LoadOutcome,
    LoadState,
    Category,
    Product,
    Stats,
    SnapshotMeta,
    InventorySnapshot,
    CacheEntry,
    LoadOptions,
    LoadAttempt,
    ConnectionTestResult,
    DebugStats,
    CategoryCount,
    derive_stock_status,
)

# Errors
from .errors import (
    InventoryError,
    InventoryConnectivityError,
    InventoryQueryError,
    InventorySchemaError,
    InventoryTimeoutError,
    InventoryValidationError,
    LoadCancelledError,
    StrategyExhaustedError,
    InventoryLoadError,
)

# Helpers
from .helpers import CancelToken, generate_trace_id

# Components
from .cache_store import CacheStore
from .category_resolver import CategoryResolver, ResolutionReport
from .stats import StatsCalculator
from .retry_policy import RetryPolicy
from .data_client import DataServiceClient
from .network import NetworkMonitor
from .strategies import StrategyChain, default_snapshot, offline_snapshot
from .coordinator import (
    LoadCoordinator,
    build_coordinator,
    get_inventory_coordinator,
    reset_inventory_coordinator,
)

__version__ = "1.0.0"

__all__ = [
    # Configuration
    "Table",
    "Columns",
    "StrategyName",
    "CACHE_KEY",
    "DEFAULT_CATEGORIES",
    "UNKNOWN_CATEGORY",
    "LoaderSettings",
    "configure_logging",
    # Models
    "StockStatus",
    "LoadOutcome",
    "LoadState",
    "Category",
    "Product",
    "Stats",
    "SnapshotMeta",
    "InventorySnapshot",
    "CacheEntry",
    "LoadOptions",
    "LoadAttempt",
    "ConnectionTestResult",
    "DebugStats",
    "CategoryCount",
    "derive_stock_status",
    # Errors
    "InventoryError",
    "InventoryConnectivityError",
    "InventoryQueryError",
    "InventorySchemaError",
    "InventoryTimeoutError",
    "InventoryValidationError",
    "LoadCancelledError",
    "StrategyExhaustedError",
    "InventoryLoadError",
    # Helpers
    "CancelToken",
    "generate_trace_id",
    # Components
    "CacheStore",
    "CategoryResolver",
    "ResolutionReport",
    "StatsCalculator",
    "RetryPolicy",
    "DataServiceClient",
    "NetworkMonitor",
    "StrategyChain",
    "default_snapshot",
    "offline_snapshot",
    "LoadCoordinator",
    "build_coordinator",
    "get_inventory_coordinator",
    "reset_inventory_coordinator",
]
