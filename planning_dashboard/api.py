'''planning_dashboard/api.py'''
import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

import pandas as pd
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from planning_dashboard.client import FetchError, PlanningApiClient
from planning_dashboard.data.aggregate import aggregate_by_date, aggregate_by_month, build_inventory_projections
from planning_dashboard.data.hierarchy import (
    NodeNotFoundError,
    build_category_tree,
    build_location_tree,
    filter_tree,
    resolve_selection,
)
from planning_dashboard.data.load_data import validate_rows
from planning_dashboard.data.pivot import DuplicatePivotEntryError, pivot_long_rows, pivot_metrics
from planning_dashboard.utils.config import API_KEY_ENV, load_config
from planning_dashboard.utils.constants import (
    BOUND_FIELDS,
    ESSENTIAL_FORECAST_COLS,
    ESSENTIAL_PRODUCT_COLS,
    FORECAST_DATE_FIELD,
    FORECAST_EXTRA_FIELDS,
    FORECAST_FIELDS,
    SUPPLY_PLAN_DATE_FIELD,
    SUPPLY_PLAN_METRICS,
)
from planning_dashboard.utils.io_utils import safe_json_convert

# ---------- Logging ----------
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = load_config()

# ---------- FastAPI App ----------
app = FastAPI(
    title="Planning Dashboard API",
    description="Chart- and table-ready views over the demand planning backend: "
                "per-date aggregation, metric pivots and product/location hierarchies",
    version="1.0.0"
)

# ---------- CORS ----------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def require_api_key(request: Request):
    """If PLANNING_API_KEY is set, require x-api-key header to match."""
    expected = os.getenv(API_KEY_ENV)
    if not expected:
        return  # auth disabled
    provided = request.headers.get("x-api-key")
    if provided != expected:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


async def get_client():
    client = PlanningApiClient.from_settings(settings)
    try:
        yield client
    finally:
        await client.aclose()


def upstream_error(e: FetchError) -> HTTPException:
    logger.error(f"Upstream request failed: {e}")
    return HTTPException(status_code=502, detail=f"Planning backend request failed: {e.message}")


# ---------- Schemas ----------
class AggregateRequest(BaseModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    fields: List[str] = Field(default_factory=lambda: list(FORECAST_FIELDS))
    date_field: str = FORECAST_DATE_FIELD
    mean_fields: List[str] = Field(default_factory=list)
    period: Literal["day", "month"] = "day"


class PivotRequest(BaseModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    metrics: Optional[List[str]] = None
    date_field: str = "date"
    layout: Literal["wide", "long"] = "wide"
    on_duplicate: Literal["last", "raise"] = "last"


class ProductsRequest(BaseModel):
    products: List[Dict[str, Any]] = Field(default_factory=list)
    search: Optional[str] = None


class LocationsRequest(BaseModel):
    locations: List[Dict[str, Any]] = Field(default_factory=list)
    search: Optional[str] = None


class SelectionRequest(BaseModel):
    products: List[Dict[str, Any]] = Field(default_factory=list)
    node_id: str
    node_type: Optional[Literal["category", "subcategory", "product"]] = None


transforms = APIRouter(prefix="/api/transforms", dependencies=[Depends(require_api_key)])
dashboard = APIRouter(prefix="/api/dashboard", dependencies=[Depends(require_api_key)])


# ---------- Pure transforms ----------
@transforms.post("/aggregate-by-date")
async def aggregate_endpoint(request: AggregateRequest):
    """Sum rows per date (or per month), treating missing numbers as zero"""
    try:
        aggregate = aggregate_by_month if request.period == "month" else aggregate_by_date
        data = aggregate(
            request.rows,
            fields=request.fields,
            date_field=request.date_field,
            mean_fields=request.mean_fields,
        )
        return {"data": data, "count": len(data), "input_rows": len(request.rows)}
    except Exception as e:
        logger.exception("Aggregation failed: %s", e)
        raise HTTPException(status_code=500, detail=f"Aggregation failed: {str(e)}")


@transforms.post("/pivot")
async def pivot_endpoint(request: PivotRequest):
    try:
        if request.layout == "long":
            pivot = pivot_long_rows(
                request.rows,
                metrics=request.metrics,
                date_field=request.date_field,
                on_duplicate=request.on_duplicate,
            )
        else:
            pivot = pivot_metrics(
                request.rows,
                metrics=request.metrics or SUPPLY_PLAN_METRICS,
                date_field=request.date_field,
                on_duplicate=request.on_duplicate,
            )
        return pivot.to_dict()
    except DuplicatePivotEntryError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.exception("Pivot failed: %s", e)
        raise HTTPException(status_code=500, detail=f"Pivot failed: {str(e)}")


@transforms.post("/category-tree")
async def category_tree_endpoint(request: ProductsRequest):
    tree = filter_tree(build_category_tree(request.products), request.search)
    return {"tree": [node.to_dict() for node in tree]}


@transforms.post("/location-tree")
async def location_tree_endpoint(request: LocationsRequest):
    tree = filter_tree(build_location_tree(request.locations), request.search)
    return {"tree": [node.to_dict() for node in tree]}


@transforms.post("/collect-ids")
async def collect_ids_endpoint(request: SelectionRequest):
    """Resolve a picker selection to the product ids beneath it"""
    tree = build_category_tree(request.products)
    try:
        return resolve_selection(tree, request.node_id, request.node_type)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {request.node_id}")


# ---------- Backend-powered views ----------
@dashboard.get("/forecast/{product_id}")
async def dashboard_forecast(
    product_id: str,
    location_node_id: Optional[str] = None,
    customer_node_id: Optional[str] = None,
    client: PlanningApiClient = Depends(get_client),
):
    """Forecast series for one product, summed per date"""
    try:
        rows = await client.get_product_forecast(product_id, location_node_id, customer_node_id)
    except FetchError as e:
        raise upstream_error(e)

    report = validate_rows(pd.DataFrame(rows), ESSENTIAL_FORECAST_COLS) if rows else None
    data = aggregate_by_date(
        rows,
        fields=FORECAST_FIELDS + FORECAST_EXTRA_FIELDS,
        mean_fields=BOUND_FIELDS,
    )
    logger.info(f"✅ Forecast for product {product_id}: {len(rows)} rows -> {len(data)} dates")
    return {
        "product_id": product_id,
        "data": safe_json_convert(data),
        "raw_rows": len(rows),
        "warnings": report["warnings"] if report else [],
    }


@dashboard.get("/products/tree")
async def dashboard_product_tree(
    search: Optional[str] = None,
    client: PlanningApiClient = Depends(get_client),
):
    try:
        products = await client.get_products()
    except FetchError as e:
        raise upstream_error(e)
    if products:
        validate_rows(pd.DataFrame(products), ESSENTIAL_PRODUCT_COLS)
    tree = filter_tree(build_category_tree(products), search)
    return {"tree": [node.to_dict() for node in tree], "total_products": len(products)}


@dashboard.get("/locations/tree")
async def dashboard_location_tree(
    search: Optional[str] = None,
    client: PlanningApiClient = Depends(get_client),
):
    try:
        locations = await client.get_locations()
    except FetchError as e:
        raise upstream_error(e)
    tree = filter_tree(build_location_tree(locations), search)
    return {"tree": [node.to_dict() for node in tree], "total_locations": len(locations)}


@dashboard.get("/inventory-projections")
async def dashboard_inventory_projections(
    product_id: str,
    location_node_id: Optional[str] = None,
    conversion_rate: float = Query(settings.conversion_rate, ge=0, le=1),
    client: PlanningApiClient = Depends(get_client),
):
    try:
        rows = await client.get_product_forecast(product_id, location_node_id=location_node_id)
    except FetchError as e:
        raise upstream_error(e)
    return build_inventory_projections(rows, conversion_rate=conversion_rate)


@dashboard.get("/supply-plan/{product_id}")
async def dashboard_supply_plan(
    product_id: str,
    location_id: Optional[str] = None,
    on_duplicate: Literal["last", "raise"] = "last",
    client: PlanningApiClient = Depends(get_client),
):
    try:
        rows = await client.get_supply_plan(product_id, location_id)
    except FetchError as e:
        raise upstream_error(e)
    try:
        pivot = pivot_metrics(rows, date_field=SUPPLY_PLAN_DATE_FIELD, on_duplicate=on_duplicate)
    except DuplicatePivotEntryError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"product_id": product_id, "location_id": location_id, **pivot.to_dict()}


app.include_router(transforms)
app.include_router(dashboard)


# ---------- Health ----------
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow(),
        "api_version": "1.0.0",
        "backend_url": settings.backend_url,
        "endpoints_available": [
            "/api/transforms/aggregate-by-date",
            "/api/transforms/pivot",
            "/api/transforms/category-tree",
            "/api/transforms/location-tree",
            "/api/transforms/collect-ids",
            "/api/dashboard/forecast/{product_id}",
            "/api/dashboard/products/tree",
            "/api/dashboard/locations/tree",
            "/api/dashboard/inventory-projections",
            "/api/dashboard/supply-plan/{product_id}",
            "/health"
        ],
    }
