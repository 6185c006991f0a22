"""
Structured-Data Service Client
==============================

Thin HTTP client for a PostgREST-style hosted data service
(``{service_url}/rest/v1/{table}``).

Features:
- **Error classification at the boundary**: every failure leaves this module as
  one of the loader's typed errors (connectivity / query / schema / validation)
- **Cooperative cancellation**: a ``CancelToken`` is checked before each request,
  so an abandoned attempt stops issuing queries
- **Bounded requests**: every call carries its own socket timeout
- **Detailed error logging**: response bodies are logged before raising

Usage:
    >>> client = DataServiceClient.from_settings(LoaderSettings.from_env())
    >>> rows = client.select(
    ...     Table.CATEGORIES,
    ...     Columns.CATEGORIES,
    ...     filters={"is_active": True},
    ...     order="sort_order.asc",
    ... )
"""

import logging
from typing import Optional, List, Dict, Any, Tuple, Union

import requests
from requests.exceptions import RequestException

from .errors import (
    InventoryConnectivityError,
    InventoryQueryError,
    InventorySchemaError,
    InventoryValidationError,
)
from .helpers import CancelToken
from .settings import LoaderSettings
from .table_config import SCHEMA_ERROR_CODES, Columns, Table

logger = logging.getLogger(__name__)

FilterValue = Union[Any, Tuple[str, Any]]


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def build_filter_params(filters: Optional[Dict[str, FilterValue]]) -> Dict[str, str]:
    """
    Convert ``{"is_active": True, "quantity": ("lte", 10)}`` into PostgREST
    query parameters (``is_active=eq.true&quantity=lte.10``).
    """
    params: Dict[str, str] = {}
    for column, value in (filters or {}).items():
        if isinstance(value, tuple):
            operator, operand = value
        else:
            operator, operand = ("is" if value is None else "eq"), value
        params[column] = f"{operator}.{_format_value(operand)}"
    return params


def _table_name(table: Union[Table, str]) -> str:
    return table.value if isinstance(table, Table) else str(table)


class DataServiceClient:
    """
    Client for the hosted structured-data service.

    Only read operations are needed by the loader: ``select``, ``rpc``,
    ``count`` and ``probe``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        request_timeout: float = 10.0,
    ):
        if not base_url:
            raise ValueError("Data service base URL is required")
        if not api_key:
            raise ValueError("Data service API key is required")

        self.base_url = base_url.rstrip("/")
        self.rest_url = f"{self.base_url}/rest/v1"
        self.request_timeout = request_timeout
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

        logger.info(f"DataServiceClient initialized for {self.base_url}")

    @classmethod
    def from_settings(cls, settings: LoaderSettings) -> "DataServiceClient":
        settings.require_service()
        return cls(
            base_url=settings.service_url,
            api_key=settings.service_key,
            request_timeout=settings.request_timeout_seconds,
        )

    # ============== Low-level API Methods ==============

    def _make_request(
        self,
        method: str,
        url: str,
        table: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        extra_headers: Optional[Dict[str, str]] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> requests.Response:
        """Make an API request and translate failures into loader errors."""
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        headers = dict(self.headers)
        if extra_headers:
            headers.update(extra_headers)

        try:
            response = requests.request(
                method=method,
                url=url,
                headers=headers,
                params=params,
                json=json,
                timeout=self.request_timeout,
            )
        except requests.ConnectionError as e:
            # Includes ConnectTimeout: the service was never reached
            raise InventoryConnectivityError(f"Cannot reach data service: {e}") from e
        except requests.Timeout as e:
            raise InventoryQueryError(
                f"Request to '{table}' timed out after {self.request_timeout}s", table=table
            ) from e
        except RequestException as e:
            raise InventoryQueryError(f"Request to '{table}' failed: {e}", table=table) from e

        if not response.ok:
            raise self._translate_error(response, table)

        return response

    def _translate_error(self, response: requests.Response, table: str) -> InventoryQueryError:
        """Map an HTTP error response onto a schema or query error."""
        status_code = response.status_code
        code = None
        try:
            error_body = response.json()
            if isinstance(error_body, dict):
                code = error_body.get("code")
                message = error_body.get("message") or str(error_body)
            else:
                message = str(error_body)
            logger.error(f"Data service error on '{table}': {status_code} - {error_body}")
        except ValueError:
            message = response.text[:500]
            logger.error(f"Data service error on '{table}': {status_code} - {message}")

        if status_code == 404 or (code is not None and str(code) in SCHEMA_ERROR_CODES):
            return InventorySchemaError(message, status_code=status_code, code=code, table=table)
        return InventoryQueryError(message, status_code=status_code, code=code, table=table)

    @staticmethod
    def _rows(response: requests.Response, table: str) -> List[Dict[str, Any]]:
        try:
            data = response.json()
        except ValueError as e:
            raise InventoryValidationError(f"'{table}' returned a non-JSON body") from e

        if data is None:
            return []
        if not isinstance(data, list):
            raise InventoryValidationError(
                f"'{table}' returned {type(data).__name__}, expected a list of rows"
            )
        return data

    # ============== Query Operations ==============

    def select(
        self,
        table: Union[Table, str],
        columns: str = "*",
        filters: Optional[Dict[str, FilterValue]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> List[Dict[str, Any]]:
        """
        Select rows from a table or view.

        Args:
            table: Table or view name
            columns: PostgREST select list
            filters: Column filters, see ``build_filter_params``
            order: PostgREST order clause, e.g. ``"sort_order.asc"``
            limit: Maximum rows to return
            cancel_token: Aborts before the request if cancelled

        Returns:
            List of raw row dictionaries
        """
        name = _table_name(table)
        params: Dict[str, Any] = {"select": "".join(columns.split())}
        params.update(build_filter_params(filters))
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)

        logger.debug(f"SELECT {name} params={params}")
        response = self._make_request(
            "GET", f"{self.rest_url}/{name}", name, params=params, cancel_token=cancel_token
        )
        rows = self._rows(response, name)
        logger.debug(f"SELECT {name} returned {len(rows)} rows")
        return rows

    def rpc(
        self,
        function: Union[Table, str],
        params: Optional[Dict[str, Any]] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> List[Dict[str, Any]]:
        """Call a server-side function; returns its rows."""
        name = _table_name(function)
        response = self._make_request(
            "POST", f"{self.rest_url}/rpc/{name}", name, json=params or {}, cancel_token=cancel_token
        )
        return self._rows(response, name)

    def count(
        self,
        table: Union[Table, str],
        filters: Optional[Dict[str, FilterValue]] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> int:
        """Exact row count using ``Prefer: count=exact`` and ``Content-Range``."""
        name = _table_name(table)
        params: Dict[str, Any] = {"select": "id"}
        params.update(build_filter_params(filters))

        response = self._make_request(
            "HEAD",
            f"{self.rest_url}/{name}",
            name,
            params=params,
            extra_headers={"Prefer": "count=exact"},
            cancel_token=cancel_token,
        )
        content_range = response.headers.get("Content-Range", "")
        total = content_range.rsplit("/", 1)[-1]
        if not total.isdigit():
            raise InventoryValidationError(
                f"'{name}' count returned unusable Content-Range: {content_range!r}"
            )
        return int(total)

    def probe(self) -> None:
        """Cheapest possible query; raises on any failure."""
        self.select(Table.CATEGORIES, Columns.PROBE, limit=1)
