"""
Tests for the planning backend client.

The backend is mocked with pytest-httpx; every registered response must be requested.
"""
import json

import httpx
import pytest
import pytest_asyncio
import pytest_httpx
from aiolimiter import AsyncLimiter

from planning_dashboard.client import FetchError, PlanningApiClient

TEST_API_URL = "http://testserver:3001"


@pytest_asyncio.fixture
async def client():
    """Fixture for a PlanningApiClient pointed at the mocked backend."""
    api = PlanningApiClient(base_url=TEST_API_URL, timeout=5)
    api.rate_limiter = AsyncLimiter(100, 60)
    yield api
    await api.aclose()


class TestPlanningApiClient:
    """Request shapes and error mapping for PlanningApiClient."""

    @pytest.mark.asyncio
    async def test_get_products(self, client: PlanningApiClient, httpx_mock: pytest_httpx.HTTPXMock, products):
        httpx_mock.add_response(url=f"{TEST_API_URL}/api/products", json=products)

        result = await client.get_products()
        assert [p["product_id"] for p in result] == ["P1", "P2", "P3", "P4"]

    @pytest.mark.asyncio
    async def test_product_forecast_passes_filters(self, client: PlanningApiClient, httpx_mock: pytest_httpx.HTTPXMock):
        httpx_mock.add_response(
            url=f"{TEST_API_URL}/api/forecast-data/product/P1?location_node_id=L1&customer_node_id=C1",
            json=[{"postdate": "2024-01-01", "forecast": 1}],
        )

        result = await client.get_product_forecast("P1", location_node_id="L1", customer_node_id="C1")
        assert result == [{"postdate": "2024-01-01", "forecast": 1}]

    @pytest.mark.asyncio
    async def test_empty_filters_are_not_sent(self, client: PlanningApiClient, httpx_mock: pytest_httpx.HTTPXMock):
        httpx_mock.add_response(url=f"{TEST_API_URL}/api/forecast-data/category/C1", json=[])

        assert await client.get_category_forecast("C1", location_node_id="", customer_node_id=None) == []
        request = httpx_mock.get_requests()[0]
        assert request.url.query == b""

    @pytest.mark.asyncio
    async def test_forecast_by_products_posts_ids(self, client: PlanningApiClient, httpx_mock: pytest_httpx.HTTPXMock):
        httpx_mock.add_response(url=f"{TEST_API_URL}/api/forecast-data/by-products", method="POST", json=[])

        await client.get_forecast_by_products(["P1", "P2"])
        request = httpx_mock.get_requests()[0]
        assert json.loads(request.content) == {"productIds": ["P1", "P2"]}

    @pytest.mark.asyncio
    async def test_update_forecast_returns_object(self, client: PlanningApiClient, httpx_mock: pytest_httpx.HTTPXMock):
        httpx_mock.add_response(
            url=f"{TEST_API_URL}/api/forecast-data/F1",
            method="PUT",
            json={"id": "F1", "commercial_input": 12},
        )

        result = await client.update_forecast("F1", {"commercial_input": 12, "collaboration_status": "reviewed"})
        assert result["commercial_input"] == 12

    @pytest.mark.asyncio
    async def test_null_body_is_empty_list(self, client: PlanningApiClient, httpx_mock: pytest_httpx.HTTPXMock):
        httpx_mock.add_response(url=f"{TEST_API_URL}/api/locations", text="null")
        assert await client.get_locations() == []

    @pytest.mark.asyncio
    async def test_http_error(self, client: PlanningApiClient, httpx_mock: pytest_httpx.HTTPXMock):
        httpx_mock.add_response(url=f"{TEST_API_URL}/api/products", status_code=500, text="Internal Server Error")

        with pytest.raises(FetchError) as exc_info:
            await client.get_products()
        assert "API request failed with status 500" in str(exc_info.value)
        assert exc_info.value.status_code == 500
        assert len(httpx_mock.get_requests()) == 1  # no retry

    @pytest.mark.asyncio
    async def test_network_error(self, client: PlanningApiClient, httpx_mock: pytest_httpx.HTTPXMock):
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        with pytest.raises(FetchError) as exc_info:
            await client.get_customers()
        assert "Request failed" in str(exc_info.value)
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_timeout(self, client: PlanningApiClient, httpx_mock: pytest_httpx.HTTPXMock):
        httpx_mock.add_exception(httpx.ReadTimeout("Read timed out"))

        with pytest.raises(FetchError) as exc_info:
            await client.get_products()
        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_json(self, client: PlanningApiClient, httpx_mock: pytest_httpx.HTTPXMock):
        httpx_mock.add_response(url=f"{TEST_API_URL}/api/products", text="<html>oops</html>")

        with pytest.raises(FetchError) as exc_info:
            await client.get_products()
        assert "Invalid JSON" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_object_where_array_expected(self, client: PlanningApiClient, httpx_mock: pytest_httpx.HTTPXMock):
        httpx_mock.add_response(url=f"{TEST_API_URL}/api/products", json={"message": "Failed to fetch products"})

        with pytest.raises(FetchError) as exc_info:
            await client.get_products()
        assert "Expected a JSON array" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_inventory_projections_and_supply_plan(self, client: PlanningApiClient, httpx_mock: pytest_httpx.HTTPXMock):
        httpx_mock.add_response(
            url=f"{TEST_API_URL}/api/inventory-projections?product_id=P1&limit=100",
            json=[{"projection_month": "2024-01", "forecasted_demand": 10}],
        )
        httpx_mock.add_response(
            url=f"{TEST_API_URL}/api/supply-plan?product_id=P1&location_id=L1",
            json=[{"postdate": "2024-01-01", "safety_stock": 5}],
        )

        projections = await client.get_inventory_projections(product_id="P1")
        plan = await client.get_supply_plan("P1", "L1")
        assert projections[0]["projection_month"] == "2024-01"
        assert plan[0]["safety_stock"] == 5
