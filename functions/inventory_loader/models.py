"""
Inventory Data Models
=====================

This module defines all Pydantic models used by the inventory loader.

Design Principles
-----------------
- **Pydantic v2** for validation and serialization
- **One canonical shape** per entity: every strategy maps its raw rows onto
  ``Category`` / ``Product`` before they leave the data layer
- **Derived values are computed**, never stored: ``stock_status`` and
  ``expiring_soon`` are functions of the row
- **Snapshots are frozen**: a cached snapshot is shared by every caller

Model Categories
----------------
Enumerations
    StockStatus, LoadOutcome, LoadState
Entity Models
    Category, Product
Snapshot Models
    Stats, SnapshotMeta, InventorySnapshot, CacheEntry
Call Models
    LoadOptions, LoadAttempt, ConnectionTestResult, DebugStats, CategoryCount

Usage Examples
--------------
Mapping a raw row:
    >>> product = Product.model_validate({"id": 1, "category_id": "cat_1", "quantity": 0})
    >>> product.stock_status
    <StockStatus.OUT: 'out'>

Options from a front-end payload:
    >>> LoadOptions.model_validate({"useCache": False, "timeoutMs": 5000})
"""

from datetime import date, datetime, timedelta
from typing import Optional, List, Dict, Any, Union
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, AliasChoices, computed_field, field_validator

from .table_config import (
    DEFAULT_REORDER_THRESHOLD,
    EXPIRY_WINDOW_DAYS,
    StrategyName,
)

RowId = Union[int, str]


class StockStatus(str, Enum):
    """Stock level relative to the reorder threshold."""
    NORMAL = "normal"
    LOW = "low"
    OUT = "out"


class LoadOutcome(str, Enum):
    """Outcome of one load attempt."""
    PENDING = "pending"
    SUCCESS = "success"
    TIMEOUT = "timeout"
    ERROR = "error"
    OFFLINE = "offline"


class LoadState(str, Enum):
    """States of a single fetch call."""
    IDLE = "Idle"
    CACHE_CHECK = "CacheCheck"
    CACHE_HIT = "CacheHit"
    LOADING = "Loading"
    RETRY = "Retry"
    CACHED = "Cached"
    FAIL = "Fail"
    DONE = "Done"


def derive_stock_status(quantity: int, reorder_point: Optional[int] = None) -> StockStatus:
    """
    Classify a quantity against its reorder threshold.

    ``reorder_point`` wins when it is set and positive; otherwise the default
    threshold (10) applies.
    """
    threshold = reorder_point if reorder_point else DEFAULT_REORDER_THRESHOLD
    if quantity == 0:
        return StockStatus.OUT
    if quantity <= threshold:
        return StockStatus.LOW
    return StockStatus.NORMAL


# ============== Entity Models ==============

class Category(BaseModel):
    """Category row (``categories`` table)."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: RowId
    name: str
    description: Optional[str] = None
    active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "active"))
    sort_order: int = Field(default=0, validation_alias=AliasChoices("sort_order", "sortOrder"))


class Product(BaseModel):
    """
    Product row in canonical shape.

    Unknown columns returned by the service (sku, prices, brand, ...) are kept
    as extra fields so nothing the backend sent is dropped.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    id: RowId
    name: str = ""
    category_id: Optional[RowId] = Field(
        default=None, validation_alias=AliasChoices("category_id", "categoryId")
    )
    quantity: int = Field(default=0, ge=0)
    active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "active"))
    reorder_point: Optional[int] = None
    expiry_date: Optional[date] = None
    category_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("category_name", "categoryName")
    )

    # Values already computed server-side (optimized view) take precedence
    reported_stock_status: Optional[StockStatus] = Field(
        default=None, validation_alias="stock_status", exclude=True
    )
    reported_expiring_soon: Optional[bool] = Field(
        default=None, validation_alias="expiring_soon", exclude=True
    )

    @field_validator("quantity", mode="before")
    @classmethod
    def _null_quantity_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("name", mode="before")
    @classmethod
    def _null_name_is_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @computed_field
    @property
    def stock_status(self) -> StockStatus:
        if self.reported_stock_status is not None:
            return self.reported_stock_status
        return derive_stock_status(self.quantity, self.reorder_point)

    @computed_field
    @property
    def expiring_soon(self) -> bool:
        if self.reported_expiring_soon:
            return True
        if self.expiry_date is None:
            return False
        return self.expiry_date <= date.today() + timedelta(days=EXPIRY_WINDOW_DAYS)


# ============== Snapshot Models ==============

class Stats(BaseModel):
    """Aggregate counts, recomputed on every load."""
    model_config = ConfigDict(frozen=True)

    total_products: int = 0
    total_categories: int = 0
    low_stock_products: int = 0
    out_of_stock_products: int = 0


class SnapshotMeta(BaseModel):
    """How a snapshot was produced."""
    model_config = ConfigDict(frozen=True)

    strategy_used: StrategyName
    timings: Dict[str, float] = Field(default_factory=dict)  # phase -> ms
    products_source: Optional[str] = None
    fallback: bool = False
    loaded_at: datetime = Field(default_factory=datetime.now)


class InventorySnapshot(BaseModel):
    """Categories + products (with resolved category names) + stats."""
    model_config = ConfigDict(frozen=True)

    categories: List[Category] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)
    stats: Stats = Field(default_factory=Stats)
    meta: SnapshotMeta


class CacheEntry(BaseModel):
    """A stored payload and the monotonic time it was stored at."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str
    payload: Any
    timestamp: float


# ============== Call Models ==============

class LoadOptions(BaseModel):
    """
    Options for ``LoadCoordinator.fetch_inventory``.

    Accepts snake_case names or the camelCase names front-end callers send.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    use_cache: bool = Field(default=True, alias="useCache")
    timeout_ms: float = Field(default=20000, gt=0, alias="timeoutMs")
    progressive: bool = True
    include_inactive: bool = Field(default=False, alias="includeInactive")
    is_retry: bool = Field(default=False, alias="isRetry")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


class LoadAttempt(BaseModel):
    """One attempt inside a fetch call tree (kept for diagnostics)."""
    attempt_number: int
    strategy: StrategyName
    started_at: datetime = Field(default_factory=datetime.now)
    outcome: LoadOutcome = LoadOutcome.PENDING
    error: Optional[str] = None
    duration_ms: Optional[float] = None


class ConnectionTestResult(BaseModel):
    """Result of a single probe query."""
    success: bool
    response_time_ms: Optional[float] = None
    error: Optional[str] = None


class DebugStats(BaseModel):
    """Snapshot of coordinator state for diagnostics."""
    is_cached: bool
    cache_age_ms: Optional[float] = None
    is_loading: bool
    attempts: int
    max_attempts: int
    network_status: str
    cache_size: int = 0
    state: LoadState = LoadState.IDLE
    debug_mode: bool = False
    service_url: Optional[str] = None
    recent_attempts: List[LoadAttempt] = Field(default_factory=list)


class CategoryCount(BaseModel):
    """Active product count for one category."""
    category_id: RowId
    category_name: Optional[str] = None
    product_count: int = 0
