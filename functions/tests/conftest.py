"""
Pytest Configuration and Fixtures for Inventory Loader Tests

This file provides:
- Fake data-service client that records every query it receives
- Fake monotonic clock and recording sleep for deterministic TTL/retry tests
- Row factories for categories and products
- Coordinator fixture wired entirely from fakes
"""

import pytest
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from inventory_loader.coordinator import LoadCoordinator
from inventory_loader.cache_store import CacheStore
from inventory_loader.errors import InventoryQueryError, InventorySchemaError
from inventory_loader.helpers import CancelToken
from inventory_loader.network import NetworkMonitor
from inventory_loader.retry_policy import RetryPolicy
from inventory_loader.strategies import StrategyChain


# ============== Custom Pytest Markers ==============

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual modules")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow running tests")


# ============== Fake Clock / Sleep ==============

class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Replaces ``time.sleep``; records requested delays without waiting."""

    def __init__(self):
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


# ============== Fake Data Client ==============

@dataclass
class Query:
    method: str
    table: str
    columns: Optional[str] = None
    filters: Optional[Dict[str, Any]] = None
    order: Optional[str] = None
    limit: Optional[int] = None


Response = Union[List[Dict[str, Any]], BaseException, Callable[[Query], List[Dict[str, Any]]]]


def _name(table: Any) -> str:
    return getattr(table, "value", table)


class FakeDataClient:
    """
    In-memory stand-in for ``DataServiceClient``.

    Responses are configured per table name as rows, an exception instance,
    or a callable receiving the ``Query``. Tables without a configured
    response behave like a missing relation (schema error).
    """

    base_url = "https://data.test.local"

    def __init__(self):
        self.responses: Dict[str, Response] = {}
        self.calls: List[Query] = []
        self.gate: Optional[threading.Event] = None
        self.first_call = threading.Event()
        self._lock = threading.Lock()

    # ---- configuration ----

    def set_rows(self, table: Any, rows: List[Dict[str, Any]]) -> None:
        self.responses[_name(table)] = rows

    def set_error(self, table: Any, error: BaseException) -> None:
        self.responses[_name(table)] = error

    def set_handler(self, table: Any, handler: Callable[[Query], List[Dict[str, Any]]]) -> None:
        self.responses[_name(table)] = handler

    def block(self) -> threading.Event:
        """Make every query wait until the returned event is set."""
        self.gate = threading.Event()
        return self.gate

    # ---- inspection ----

    def tables_called(self) -> List[str]:
        with self._lock:
            return [q.table for q in self.calls]

    def reset_calls(self) -> None:
        with self._lock:
            self.calls.clear()

    # ---- client surface ----

    def _respond(self, query: Query, cancel_token: Optional[CancelToken]) -> List[Dict[str, Any]]:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        with self._lock:
            self.calls.append(query)
        self.first_call.set()
        if self.gate is not None:
            self.gate.wait(timeout=2.0)

        response = self.responses.get(query.table)
        if response is None:
            raise InventorySchemaError(
                f"relation \"{query.table}\" does not exist", status_code=404, code="42P01", table=query.table
            )
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(query)
        return [dict(row) for row in response]

    def select(self, table, columns="*", filters=None, order=None, limit=None, cancel_token=None):
        query = Query("select", _name(table), columns, filters, order, limit)
        return self._respond(query, cancel_token)

    def rpc(self, function, params=None, cancel_token=None):
        query = Query("rpc", _name(function), filters=params)
        return self._respond(query, cancel_token)

    def count(self, table, filters=None, cancel_token=None):
        query = Query("count", f"{_name(table)}:count", filters=filters)
        rows = self._respond(query, cancel_token)
        return rows[0]["count"] if rows else 0

    def probe(self):
        self.select("categories", "id", limit=1)


# ============== Row Factories ==============

class RowFactory:
    """Factory for raw rows as the data service returns them."""

    @staticmethod
    def category(id: str, name: str, sort_order: int = 1, **kwargs) -> Dict[str, Any]:
        row = {"id": id, "name": name, "description": None, "is_active": True, "sort_order": sort_order}
        row.update(kwargs)
        return row

    @staticmethod
    def product(id: Any, category_id: Optional[str], quantity: int, **kwargs) -> Dict[str, Any]:
        row = {
            "id": id,
            "name": kwargs.pop("name", f"Product {id}"),
            "category_id": category_id,
            "quantity": quantity,
            "is_active": True,
        }
        row.update(kwargs)
        return row

    def categories(self) -> List[Dict[str, Any]]:
        return [
            self.category("cat_1", "Chemical Fertilizer", 1),
            self.category("cat_4", "Seeds", 2),
        ]

    def products(self) -> List[Dict[str, Any]]:
        return [
            self.product(1, "cat_1", 0),
            self.product(2, "cat_4", 3),
            self.product(3, "cat_4", 50),
        ]


def query_error(table: str = "products", status_code: int = 500) -> InventoryQueryError:
    return InventoryQueryError("internal error", status_code=status_code, table=table)


# ============== Mock HTTP Request ==============

class MockHttpRequest:
    """Mock Azure Functions HttpRequest (query-string driven)."""

    def __init__(self, method: str = "GET", params: Dict[str, str] = None, headers: Dict[str, str] = None):
        self.method = method
        self.params = params or {}
        self.headers = headers or {}
        self._body = b""

    def get_body(self) -> bytes:
        return self._body


# ============== Fixtures ==============

@pytest.fixture
def factory():
    return RowFactory()


@pytest.fixture
def fake_client(factory):
    """Fake client serving healthy categories and the optimized products view."""
    client = FakeDataClient()
    client.set_rows("categories", factory.categories())
    client.set_rows("products_optimized", factory.products())
    client.set_rows("products", factory.products())
    return client


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return RecordingSleep()


@pytest.fixture
def network():
    return NetworkMonitor(online=True)


@pytest.fixture
def make_coordinator(fake_client, clock, sleeps, network):
    """Factory building coordinators from the shared fakes."""
    created: List[LoadCoordinator] = []

    def _create(client=None, **kwargs) -> LoadCoordinator:
        client = client or fake_client
        coordinator = LoadCoordinator(
            client=client,
            network=kwargs.pop("network", network),
            cache=kwargs.pop("cache", CacheStore(ttl_seconds=300, clock=clock)),
            chain=kwargs.pop("chain", StrategyChain(client)),
            retry_policy=kwargs.pop("retry_policy", RetryPolicy()),
            clock=clock,
            sleep=sleeps,
            **kwargs,
        )
        created.append(coordinator)
        return coordinator

    yield _create

    for coordinator in created:
        coordinator.close()


@pytest.fixture
def coordinator(make_coordinator):
    return make_coordinator()


@pytest.fixture
def mock_http_request():
    """Factory for creating mock HTTP requests."""
    def _create(method: str = "GET", params: Dict[str, str] = None, headers: Dict[str, str] = None):
        return MockHttpRequest(method, params, headers)
    return _create
