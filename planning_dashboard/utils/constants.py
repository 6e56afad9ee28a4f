'''planning_dashboard/utils/constants.py'''
import os

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
CONFIG_PATH = os.path.join(ROOT_DIR, "configs", "config.yaml")

# Forecast rows carry their date as "postdate" on the wire
FORECAST_DATE_FIELD = "postdate"

FORECAST_FIELDS = [
    "forecast",
    "actual",
    "sales_plan",
    "demand_planner",
    "commercial_input",
]

# Extra series the forecast table aggregates alongside FORECAST_FIELDS
FORECAST_EXTRA_FIELDS = [
    "forecast_ly",
]

BOUND_FIELDS = [
    "upper_bound",
    "lower_bound",
]

SUPPLY_PLAN_DATE_FIELD = "postdate"

SUPPLY_PLAN_METRICS = [
    "forecast",
    "actual",
    "total_demand",
    "planned_arrivals",
    "planned_orders",
    "projected_on_hand",
    "safety_stock",
]

# Display labels used by the supply plan grid
METRIC_LABELS = {
    "total_demand": "Demanda Total",
    "planned_arrivals": "Llegadas Planificadas",
    "planned_orders": "Órdenes Planificadas",
    "projected_on_hand": "Inventario Proyectado",
    "safety_stock": "Stock de Seguridad",
    "forecast": "Forecast",
    "actual": "Actual",
}

UNCATEGORIZED = "Sin Categoría"
UNSUBCATEGORIZED = "Sin Subcategoría"
NO_LOCATION = "Sin Localidad"

# Fraction of monthly forecast assumed to end up as inventory
DEFAULT_CONVERSION_RATE = 0.8

ESSENTIAL_FORECAST_COLS = [FORECAST_DATE_FIELD]
ESSENTIAL_PRODUCT_COLS = ["product_id"]

# Column headers used when exporting the supply plan pivot
EXPORT_METRIC_LABELS = {
    "forecast": "Forecast",
    "actual": "Actual",
    "total_demand": "Total Demand",
    "planned_arrivals": "Planned Arrivals",
    "planned_orders": "Planned Orders",
    "projected_on_hand": "Projected On Hand",
    "safety_stock": "Safety Stock",
}
