"""
Inventory Load Coordinator
==========================

Public entry point of the inventory loader.

Features:
- **Single-flight**: concurrent callers for the same key share one load and
  observe the same result or error
- **TTL cache**: a valid cached snapshot is returned without network access
- **Timeout racing**: each attempt runs in a worker thread and is abandoned
  (cooperatively cancelled) when it exceeds ``timeout_ms``
- **Bounded retry**: an explicit loop with progressive delays (2s, 4s, ...)
- **Offline routing**: connectivity failures return the offline snapshot
  without consuming the retry budget and mark the network monitor offline
  until its next health check

Thread Safety
-------------
The cache entry, loading flag, in-flight handle and attempt counter are shared
by all callers of one coordinator. Every read-modify-write of them happens
under ``self._lock``; waiting, sleeping and network I/O happen outside it.

Usage:
    >>> coordinator = build_coordinator(LoaderSettings.from_env())
    >>> snapshot = coordinator.fetch_inventory(profile, {"useCache": True})
    >>> snapshot.stats.total_products
"""

import time
import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Dict, List, Optional, Union

from . import analytics
from .cache_store import CacheStore
from .data_client import DataServiceClient
from .errors import (
    InventoryError,
    InventoryLoadError,
    InventoryTimeoutError,
)
from .helpers import CancelToken, describe_profile, elapsed_ms, generate_trace_id
from .models import (
    CategoryCount,
    ConnectionTestResult,
    DebugStats,
    InventorySnapshot,
    LoadAttempt,
    LoadOptions,
    LoadOutcome,
    LoadState,
    Product,
)
from .network import NetworkMonitor
from .retry_policy import RetryPolicy
from .settings import LoaderSettings, configure_logging
from .strategies import StrategyChain, offline_snapshot
from .table_config import CACHE_KEY, DEFAULT_REORDER_THRESHOLD, StrategyName

logger = logging.getLogger(__name__)

OptionsInput = Union[LoadOptions, Dict[str, Any], None]


class LoadCoordinator:
    """
    Coordinates cache, strategy chain, timeout and retry for one inventory key.

    One instance is owned by the application's composition root and passed to
    consumers; independent instances never share state.
    """

    def __init__(
        self,
        client: DataServiceClient,
        network: Optional[NetworkMonitor] = None,
        cache: Optional[CacheStore] = None,
        chain: Optional[StrategyChain] = None,
        retry_policy: Optional[RetryPolicy] = None,
        default_options: Optional[LoadOptions] = None,
        cache_key: str = CACHE_KEY,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        debug_mode: bool = False,
        history_size: int = 20,
        max_workers: int = 4,
    ):
        self.client = client
        self.network = network or NetworkMonitor()
        self.cache = cache or CacheStore(clock=clock)
        self.chain = chain or StrategyChain(client)
        self.retry_policy = retry_policy or RetryPolicy()
        self.default_options = default_options or LoadOptions()
        self.cache_key = cache_key
        self.debug_mode = debug_mode
        self._sleep = sleep

        self._lock = threading.Lock()
        self._inflight: Optional[Future] = None
        self._attempts = 0
        self._state = LoadState.IDLE
        self._history: deque = deque(maxlen=history_size)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="inventory-load"
        )

    # ============== Public API ==============

    def fetch_inventory(
        self,
        profile: Optional[Dict[str, Any]] = None,
        options: OptionsInput = None,
        **overrides: Any,
    ) -> InventorySnapshot:
        """
        Return the inventory snapshot.

        Args:
            profile: Optional user profile; logged, not used for routing
            options: ``LoadOptions`` or a dict (snake_case or camelCase keys)
            **overrides: Individual option overrides

        Returns:
            InventorySnapshot (cached, freshly loaded, or offline)

        Raises:
            InventoryLoadError: strategy chain and retry budget exhausted
        """
        opts = self._coerce_options(options, overrides)
        trace_id = generate_trace_id()
        logger.info(
            f"[{trace_id}] fetch_inventory called: profile={describe_profile(profile)}, "
            f"options={opts.model_dump()}"
        )

        self.network.refresh()

        offline = False
        leader = False
        with self._lock:
            pending = self._inflight
            if pending is None:
                self._state = LoadState.CACHE_CHECK

                if not self.network.is_online():
                    self._state = LoadState.DONE
                    offline = True
                else:
                    cached = self.cache.get_valid(self.cache_key) if opts.use_cache else None
                    if cached is not None:
                        self._state = LoadState.CACHE_HIT
                        logger.info(f"[{trace_id}] Returning cached inventory data")
                        return cached

                    pending = Future()
                    self._inflight = pending
                    self._state = LoadState.LOADING
                    leader = True

        if offline:
            logger.warning(f"[{trace_id}] Offline, using offline fallback")
            return offline_snapshot(self.cache.get(self.cache_key))

        if not leader:
            logger.info(f"[{trace_id}] Loading already in progress, waiting for it")
            return pending.result()

        started = time.perf_counter()
        try:
            snapshot = self._load_with_retries(opts, trace_id)
        except BaseException as e:
            pending.set_exception(e)
            raise
        else:
            pending.set_result(snapshot)
            logger.info(
                f"[{trace_id}] Inventory loading completed in {elapsed_ms(started)}ms: "
                f"{snapshot.stats.total_products} products, {len(snapshot.categories)} categories, "
                f"strategy={snapshot.meta.strategy_used.value}"
            )
            return snapshot
        finally:
            with self._lock:
                self._inflight = None
                self._state = LoadState.DONE

    def clear_cache(self) -> None:
        """Evict the cached snapshot and reset the attempt counter."""
        self.cache.clear()
        with self._lock:
            self._attempts = 0
            self._history.clear()
        logger.info("Inventory cache cleared and attempt counter reset")

    def is_cache_valid(self) -> bool:
        return self.cache.is_valid(self.cache_key)

    @property
    def is_loading(self) -> bool:
        with self._lock:
            return self._inflight is not None

    @property
    def attempts(self) -> int:
        with self._lock:
            return self._attempts

    @property
    def state(self) -> LoadState:
        with self._lock:
            return self._state

    def get_debug_stats(self) -> DebugStats:
        with self._lock:
            attempts = self._attempts
            is_loading = self._inflight is not None
            state = self._state
            history = list(self._history)

        return DebugStats(
            is_cached=self.is_cache_valid(),
            cache_age_ms=self.cache.age_ms(self.cache_key),
            is_loading=is_loading,
            attempts=attempts,
            max_attempts=self.retry_policy.max_attempts,
            network_status=self.network.status,
            cache_size=self.cache.size,
            state=state,
            debug_mode=self.debug_mode,
            service_url=getattr(self.client, "base_url", None),
            recent_attempts=history,
        )

    def test_connection(self) -> ConnectionTestResult:
        """Issue one cheap probe query, independent of the fetch path."""
        started = time.perf_counter()
        try:
            self.client.probe()
        except InventoryError as e:
            result = ConnectionTestResult(
                success=False, response_time_ms=elapsed_ms(started), error=str(e)
            )
            logger.warning(f"Connection test failed: {e}")
            return result

        result = ConnectionTestResult(success=True, response_time_ms=elapsed_ms(started))
        logger.info(f"Connection test succeeded in {result.response_time_ms}ms")
        return result

    def get_category_stats(self) -> List[CategoryCount]:
        return analytics.get_category_stats(self.client)

    def get_low_stock_products(self, threshold: int = DEFAULT_REORDER_THRESHOLD) -> List[Product]:
        return analytics.get_low_stock_products(self.client, threshold)

    def close(self) -> None:
        """Stop the attempt worker pool; abandoned attempts are not awaited."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "LoadCoordinator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ============== Load Loop ==============

    def _load_with_retries(self, options: LoadOptions, trace_id: str) -> InventorySnapshot:
        strategy = StrategyName.PROGRESSIVE if options.progressive else StrategyName.PARALLEL

        while True:
            with self._lock:
                self._attempts += 1
                attempt = self._attempts
                self._state = LoadState.LOADING
                record = LoadAttempt(attempt_number=attempt, strategy=strategy)
                self._history.append(record)

            logger.info(
                f"[{trace_id}] Load attempt {attempt}/{self.retry_policy.max_attempts} "
                f"(strategy={strategy.value}, retry={options.is_retry})"
            )
            started = time.perf_counter()

            try:
                snapshot = self._run_attempt(options)
            except Exception as e:
                if not self.retry_policy.consumes_budget(e):
                    with self._lock:
                        self._attempts -= 1
                    record.outcome = LoadOutcome.OFFLINE
                    record.error = str(e)
                    record.duration_ms = elapsed_ms(started)
                    self.network.mark_unreachable()
                    logger.warning(f"[{trace_id}] Data service unreachable, using offline fallback: {e}")
                    return offline_snapshot(self.cache.get(self.cache_key))

                record.outcome = (
                    LoadOutcome.TIMEOUT if isinstance(e, InventoryTimeoutError) else LoadOutcome.ERROR
                )
                record.error = str(e)
                record.duration_ms = elapsed_ms(started)
                logger.error(
                    f"[{trace_id}] Inventory loading failed after {record.duration_ms}ms "
                    f"(attempt {attempt}): {e}"
                )

                if not self.retry_policy.should_retry(attempt):
                    with self._lock:
                        self._state = LoadState.FAIL
                    raise InventoryLoadError(attempt, e) from e

                delay = self.retry_policy.delay(attempt)
                with self._lock:
                    self._state = LoadState.RETRY
                logger.info(
                    f"[{trace_id}] Retrying inventory load "
                    f"({attempt}/{self.retry_policy.max_attempts}) in {delay}s"
                )
                self._sleep(delay)
                options = options.model_copy(update={"is_retry": True})
                continue

            record.outcome = LoadOutcome.SUCCESS
            record.duration_ms = elapsed_ms(started)
            self.cache.set(self.cache_key, snapshot)
            with self._lock:
                self._state = LoadState.CACHED
            return snapshot

    def _run_attempt(self, options: LoadOptions) -> InventorySnapshot:
        """Race the strategy chain against ``options.timeout_ms``."""
        token = CancelToken()
        future = self._executor.submit(self.chain.run, options, token)
        try:
            return future.result(timeout=options.timeout_seconds)
        except FutureTimeoutError:
            if future.done():
                # finished right at the deadline, or raised a TimeoutError itself
                return future.result()
            token.cancel(f"timeout after {options.timeout_ms:.0f}ms")
            future.cancel()
            raise InventoryTimeoutError(options.timeout_ms)

    def _coerce_options(self, options: OptionsInput, overrides: Dict[str, Any]) -> LoadOptions:
        """Layer explicitly given options over the coordinator defaults."""
        merged: Dict[str, Any] = self.default_options.model_dump()
        for layer in (options, overrides):
            if layer is None or (isinstance(layer, dict) and not layer):
                continue
            parsed = layer if isinstance(layer, LoadOptions) else LoadOptions.model_validate(dict(layer))
            merged.update(parsed.model_dump(include=parsed.model_fields_set))
        return LoadOptions.model_validate(merged)


# ============== Composition Root ==============

def build_coordinator(settings: Optional[LoaderSettings] = None, **kwargs: Any) -> LoadCoordinator:
    """
    Wire a coordinator from settings.

    Keyword arguments override the collaborators built here (client, network,
    clock, sleep, ...).
    """
    settings = settings or LoaderSettings.from_env()
    configure_logging(settings)

    clock = kwargs.pop("clock", time.monotonic)
    client = kwargs.pop("client", None) or DataServiceClient.from_settings(settings)
    network = kwargs.pop("network", None) or NetworkMonitor(
        health_url=settings.health_url,
        check_interval=settings.network_check_seconds,
        clock=clock,
    )

    return LoadCoordinator(
        client=client,
        network=network,
        cache=kwargs.pop("cache", None) or CacheStore(ttl_seconds=settings.cache_ttl_seconds, clock=clock),
        chain=kwargs.pop("chain", None) or StrategyChain(
            client, minimal_row_limit=settings.minimal_row_limit
        ),
        retry_policy=RetryPolicy(
            max_attempts=settings.max_attempts,
            delay_step_seconds=settings.retry_delay_seconds,
        ),
        default_options=LoadOptions(timeout_ms=settings.timeout_ms),
        clock=clock,
        debug_mode=settings.debug,
        **kwargs,
    )


# ============== Thread-safe Singleton ==============

_coordinator: Optional[LoadCoordinator] = None
_coordinator_lock = threading.Lock()


def get_inventory_coordinator(reset: bool = False) -> LoadCoordinator:
    """
    Get or create the function app's coordinator.
    Thread-safe implementation.

    Args:
        reset: If True, creates a new coordinator instance
    """
    global _coordinator

    with _coordinator_lock:
        if reset or _coordinator is None:
            if _coordinator is not None:
                _coordinator.close()
            _coordinator = build_coordinator()
        return _coordinator


def reset_inventory_coordinator() -> None:
    """Drop the function app's coordinator."""
    global _coordinator
    with _coordinator_lock:
        if _coordinator is not None:
            _coordinator.close()
        _coordinator = None
