"""
Unit Tests for DataServiceClient

Tests:
- Query parameter construction (select / filters / order / limit)
- Error classification at the HTTP boundary
- Exact counts via Content-Range
- Cooperative cancellation before a request is issued
"""

import pytest
from unittest.mock import MagicMock, patch
import requests

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from inventory_loader.data_client import DataServiceClient, build_filter_params
from inventory_loader.errors import (
    InventoryConnectivityError,
    InventoryQueryError,
    InventorySchemaError,
    InventoryValidationError,
    LoadCancelledError,
)
from inventory_loader.helpers import CancelToken
from inventory_loader.settings import LoaderSettings
from inventory_loader.table_config import Columns, Table


@pytest.fixture
def client():
    return DataServiceClient("https://data.example.com/", "anon-key", request_timeout=5.0)


def make_response(status_code=200, json_data=None, headers=None, text=""):
    response = MagicMock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.headers = headers or {}
    response.text = text
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


@pytest.mark.unit
class TestBuildFilterParams:

    def test_equality_and_booleans(self):
        assert build_filter_params({"is_active": True, "category_id": "cat_1"}) == {
            "is_active": "eq.true",
            "category_id": "eq.cat_1",
        }

    def test_operator_tuple(self):
        assert build_filter_params({"quantity": ("lte", 10)}) == {"quantity": "lte.10"}

    def test_null(self):
        assert build_filter_params({"deleted_at": None}) == {"deleted_at": "is.null"}

    def test_empty(self):
        assert build_filter_params(None) == {}


@pytest.mark.unit
class TestClientInit:

    def test_requires_url_and_key(self):
        with pytest.raises(ValueError):
            DataServiceClient("", "key")
        with pytest.raises(ValueError):
            DataServiceClient("https://data.example.com", "")

    def test_headers(self, client):
        assert client.base_url == "https://data.example.com"
        assert client.headers["apikey"] == "anon-key"
        assert client.headers["Authorization"] == "Bearer anon-key"

    def test_from_settings(self):
        settings = LoaderSettings(
            service_url="https://data.example.com",
            service_key="k",
            request_timeout_seconds=3,
        )
        client = DataServiceClient.from_settings(settings)
        assert client.request_timeout == 3

    def test_from_settings_requires_service(self):
        with pytest.raises(ValueError, match="INVENTORY_SERVICE_URL"):
            DataServiceClient.from_settings(LoaderSettings())


@pytest.mark.unit
class TestSelect:

    @patch('inventory_loader.data_client.requests.request')
    def test_select_builds_request(self, mock_request, client):
        mock_request.return_value = make_response(json_data=[{"id": "cat_1", "name": "Seeds"}])

        rows = client.select(
            Table.CATEGORIES,
            Columns.CATEGORIES,
            filters={"is_active": True},
            order="sort_order.asc",
            limit=50,
        )

        assert rows == [{"id": "cat_1", "name": "Seeds"}]
        _, kwargs = mock_request.call_args
        assert kwargs["method"] == "GET"
        assert kwargs["url"] == "https://data.example.com/rest/v1/categories"
        assert kwargs["timeout"] == 5.0
        assert kwargs["params"] == {
            "select": "id,name,description,is_active,sort_order",
            "is_active": "eq.true",
            "order": "sort_order.asc",
            "limit": "50",
        }

    @patch('inventory_loader.data_client.requests.request')
    def test_null_body_is_empty(self, mock_request, client):
        mock_request.return_value = make_response(json_data=None)
        assert client.select("products") == []

    @patch('inventory_loader.data_client.requests.request')
    def test_non_list_body_is_validation_error(self, mock_request, client):
        mock_request.return_value = make_response(json_data={"unexpected": True})
        with pytest.raises(InventoryValidationError):
            client.select("products")

    @patch('inventory_loader.data_client.requests.request')
    def test_non_json_body_is_validation_error(self, mock_request, client):
        mock_request.return_value = make_response(json_data=ValueError("no json"))
        with pytest.raises(InventoryValidationError):
            client.select("products")


@pytest.mark.unit
class TestErrorClassification:

    @patch('inventory_loader.data_client.requests.request')
    def test_404_is_schema_error(self, mock_request, client):
        mock_request.return_value = make_response(404, {"message": "relation does not exist"})
        with pytest.raises(InventorySchemaError) as exc_info:
            client.select(Table.PRODUCTS_OPTIMIZED)
        assert exc_info.value.table == "products_optimized"
        assert exc_info.value.status_code == 404

    @patch('inventory_loader.data_client.requests.request')
    def test_undefined_column_code_is_schema_error(self, mock_request, client):
        mock_request.return_value = make_response(
            400, {"code": "42703", "message": "column products.reorder_point does not exist"}
        )
        with pytest.raises(InventorySchemaError) as exc_info:
            client.select("products", "id, reorder_point")
        assert exc_info.value.code == "42703"

    @patch('inventory_loader.data_client.requests.request')
    def test_server_error_is_query_error(self, mock_request, client):
        mock_request.return_value = make_response(500, {"code": "XX000", "message": "internal"})
        with pytest.raises(InventoryQueryError) as exc_info:
            client.select("products")
        assert not isinstance(exc_info.value, InventorySchemaError)
        assert exc_info.value.status_code == 500

    @patch('inventory_loader.data_client.requests.request')
    def test_non_json_error_body(self, mock_request, client):
        mock_request.return_value = make_response(502, ValueError("html"), text="<html>Bad gateway</html>")
        with pytest.raises(InventoryQueryError, match="Bad gateway"):
            client.select("products")

    @patch('inventory_loader.data_client.requests.request')
    def test_connection_error_is_connectivity(self, mock_request, client):
        mock_request.side_effect = requests.ConnectionError("Name or service not known")
        with pytest.raises(InventoryConnectivityError):
            client.select("products")

    @patch('inventory_loader.data_client.requests.request')
    def test_read_timeout_is_query_error(self, mock_request, client):
        mock_request.side_effect = requests.ReadTimeout("read timed out")
        with pytest.raises(InventoryQueryError, match="timed out"):
            client.select("products")


@pytest.mark.unit
class TestRpcAndCount:

    @patch('inventory_loader.data_client.requests.request')
    def test_rpc_posts_params(self, mock_request, client):
        mock_request.return_value = make_response(json_data=[{"id": 1}])

        rows = client.rpc(Table.RPC_LOW_STOCK, {"stock_threshold": 10})

        assert rows == [{"id": 1}]
        _, kwargs = mock_request.call_args
        assert kwargs["method"] == "POST"
        assert kwargs["url"].endswith("/rest/v1/rpc/get_low_stock_products")
        assert kwargs["json"] == {"stock_threshold": 10}

    @patch('inventory_loader.data_client.requests.request')
    def test_count_reads_content_range(self, mock_request, client):
        mock_request.return_value = make_response(headers={"Content-Range": "0-24/57"})

        total = client.count("products", filters={"category_id": "cat_1", "is_active": True})

        assert total == 57
        _, kwargs = mock_request.call_args
        assert kwargs["method"] == "HEAD"
        assert kwargs["headers"]["Prefer"] == "count=exact"
        assert kwargs["params"]["category_id"] == "eq.cat_1"

    @patch('inventory_loader.data_client.requests.request')
    def test_count_empty_range(self, mock_request, client):
        mock_request.return_value = make_response(headers={"Content-Range": "*/0"})
        assert client.count("products") == 0

    @patch('inventory_loader.data_client.requests.request')
    def test_count_without_total(self, mock_request, client):
        mock_request.return_value = make_response(headers={"Content-Range": "0-24/*"})
        with pytest.raises(InventoryValidationError):
            client.count("products")

    @patch('inventory_loader.data_client.requests.request')
    def test_probe_limits_to_one_row(self, mock_request, client):
        mock_request.return_value = make_response(json_data=[{"id": "cat_1"}])
        client.probe()
        _, kwargs = mock_request.call_args
        assert kwargs["params"] == {"select": "id", "limit": "1"}


@pytest.mark.unit
class TestCancellation:

    @patch('inventory_loader.data_client.requests.request')
    def test_cancelled_token_skips_request(self, mock_request, client):
        token = CancelToken()
        token.cancel("timeout after 20000ms")

        with pytest.raises(LoadCancelledError, match="timeout after 20000ms"):
            client.select("products", cancel_token=token)
        mock_request.assert_not_called()
