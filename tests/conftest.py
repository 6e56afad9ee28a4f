import asyncio
from typing import Any, Dict, List, Optional

import pytest

from planning_dashboard.client import FetchError


def sample_products() -> List[Dict[str, Any]]:
    return [
        {"product_id": "P1", "product_name": "Agua 500ml", "category_id": "C1", "category_name": "Bebidas",
         "subcategory_id": "S1", "subcategory_name": "Agua"},
        {"product_id": "P2", "product_name": "Agua 1L", "category_id": "C1", "category_name": "Bebidas",
         "subcategory_id": "S1", "subcategory_name": "Agua"},
        {"product_id": "P3", "product_name": "Cola 2L", "category_id": "C1", "category_name": "Bebidas",
         "subcategory_id": "S2", "subcategory_name": "Refrescos"},
        {"product_id": "P4", "product_name": "Pan Blanco", "category_id": "C2", "category_name": "Panadería",
         "subcategory_id": None, "subcategory_name": "Pan"},
    ]


def sample_forecast_rows() -> List[Dict[str, Any]]:
    return [
        {"postdate": "2024-01-02", "forecast": 10, "actual": 8, "sales_plan": None, "upper_bound": 12, "lower_bound": 8},
        {"postdate": "2024-01-01", "forecast": 5, "actual": 5, "sales_plan": 4, "upper_bound": 6, "lower_bound": 4},
        {"postdate": "2024-01-02", "forecast": 7, "demand_planner": 3, "upper_bound": 8, "lower_bound": 6},
    ]


class FakePlanningClient:
    """In-memory stand-in for PlanningApiClient used by view and API tests."""

    def __init__(
        self,
        forecasts: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        products: Optional[List[Dict[str, Any]]] = None,
        locations: Optional[List[Dict[str, Any]]] = None,
        supply_plan: Optional[List[Dict[str, Any]]] = None,
        blocking: Optional[set] = None,
        failing: Optional[set] = None,
    ):
        self.forecasts = forecasts or {}
        self.products = products if products is not None else sample_products()
        self.locations = locations or []
        self.supply_plan = supply_plan or []
        self.blocking = blocking or set()
        self.failing = failing or set()
        self.calls: List[tuple] = []

    async def _maybe_block(self, key: str) -> None:
        if key in self.failing:
            raise FetchError(f"API request failed with status 500: {key}", status_code=500, path=key)
        if key in self.blocking:
            await asyncio.Event().wait()

    async def get_product_forecast(self, product_id, location_node_id=None, customer_node_id=None):
        self.calls.append(("forecast", product_id, location_node_id, customer_node_id))
        await self._maybe_block(product_id)
        return self.forecasts.get(product_id, [])

    async def get_products(self):
        self.calls.append(("products",))
        await self._maybe_block("products")
        return self.products

    async def get_locations(self):
        self.calls.append(("locations",))
        await self._maybe_block("locations")
        return self.locations

    async def get_supply_plan(self, product_id, location_id=None):
        self.calls.append(("supply_plan", product_id, location_id))
        await self._maybe_block(f"supply:{product_id}")
        return self.supply_plan

    async def aclose(self):
        pass


@pytest.fixture
def products():
    return sample_products()


@pytest.fixture
def forecast_rows():
    return sample_forecast_rows()
