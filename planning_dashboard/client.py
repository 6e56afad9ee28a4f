'''planning_dashboard/client.py'''
"""
Async client for the planning backend's REST endpoints.

Every call is a single best-effort request: failures surface as FetchError
and are never retried here.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from aiolimiter import AsyncLimiter

from planning_dashboard.utils.config import Settings

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """A request to the planning backend failed or returned an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None, path: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.path = path
        super().__init__(message)


def _params(**kwargs) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v not in (None, "")}


class PlanningApiClient:
    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        timeout: float = 30.0,
        rate_limit_per_minute: int = 120,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.rate_limiter = AsyncLimiter(rate_limit_per_minute, 60)
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlanningApiClient":
        return cls(
            base_url=settings.backend_url,
            timeout=settings.request_timeout,
            rate_limit_per_minute=settings.rate_limit_per_minute,
        )

    async def __aenter__(self) -> "PlanningApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request_json(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        expect_list: bool = True,
    ) -> Any:
        """
        Issue one request and decode its JSON body.

        Raises:
            FetchError: On network failure, timeout, non-2xx status, a body that
                is not JSON, or a non-array body when an array is expected.
        """
        async with self.rate_limiter:
            try:
                response = await self._client.request(method, path, params=params, json=json)
            except httpx.TimeoutException as e:
                raise FetchError(f"Request timed out after {self.timeout}s: {method} {path}", path=path) from e
            except httpx.RequestError as e:
                raise FetchError(f"Request failed: {method} {path}: {e}", path=path) from e

        if response.status_code >= 400:
            raise FetchError(
                f"API request failed with status {response.status_code}: {method} {path}",
                status_code=response.status_code,
                path=path,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise FetchError(f"Invalid JSON from {method} {path}", status_code=response.status_code, path=path) from e

        if expect_list:
            if data is None:
                return []
            if not isinstance(data, list):
                raise FetchError(f"Expected a JSON array from {path}, got {type(data).__name__}",
                                 status_code=response.status_code, path=path)
        logger.debug(f"{method} {path} -> {response.status_code}")
        return data

    # ---------- Master data ----------
    async def get_products(self) -> List[Dict[str, Any]]:
        return await self.request_json("GET", "/api/products")

    async def get_locations(self) -> List[Dict[str, Any]]:
        return await self.request_json("GET", "/api/locations")

    async def get_customers(self) -> List[Dict[str, Any]]:
        return await self.request_json("GET", "/api/customers")

    # ---------- Forecast data ----------
    async def get_product_forecast(
        self,
        product_id: str,
        location_node_id: Optional[str] = None,
        customer_node_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return await self.request_json(
            "GET",
            f"/api/forecast-data/product/{product_id}",
            params=_params(location_node_id=location_node_id, customer_node_id=customer_node_id),
        )

    async def get_category_forecast(
        self,
        category_id: str,
        location_node_id: Optional[str] = None,
        customer_node_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return await self.request_json(
            "GET",
            f"/api/forecast-data/category/{category_id}",
            params=_params(location_node_id=location_node_id, customer_node_id=customer_node_id),
        )

    async def get_subcategory_forecast(
        self,
        subcategory_id: str,
        location_node_id: Optional[str] = None,
        customer_node_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return await self.request_json(
            "GET",
            f"/api/forecast-data/subcategory/{subcategory_id}",
            params=_params(location_node_id=location_node_id, customer_node_id=customer_node_id),
        )

    async def get_forecast_by_products(self, product_ids: Sequence[str]) -> List[Dict[str, Any]]:
        return await self.request_json(
            "POST", "/api/forecast-data/by-products", json={"productIds": list(product_ids)}
        )

    async def update_forecast(self, forecast_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request_json(
            "PUT", f"/api/forecast-data/{forecast_id}", json=updates, expect_list=False
        )

    # ---------- Inventory / supply ----------
    async def get_inventory_projections(
        self,
        product_id: Optional[str] = None,
        location_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        return await self.request_json(
            "GET",
            "/api/inventory-projections",
            params=_params(product_id=product_id, location_id=location_id, limit=limit),
        )

    async def get_supply_plan(
        self,
        product_id: str,
        location_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return await self.request_json(
            "GET",
            "/api/supply-plan",
            params=_params(product_id=product_id, location_id=location_id),
        )
