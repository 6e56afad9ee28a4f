'''planning_dashboard/views.py'''
"""
Screen-level data holders for the dashboard.

Each view owns its own copy of fetched data. A refresh takes a new request
generation; responses that come back for an older generation are dropped
so a slow request never overwrites a newer one. close() cancels whatever is
in flight, and so does a refresh whose selection leaves nothing to fetch.
A failed fetch or transform keeps the previous data, records the error and
notifies, without raising.
"""
import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from planning_dashboard.client import FetchError, PlanningApiClient
from planning_dashboard.data.aggregate import aggregate_by_date
from planning_dashboard.data.hierarchy import TreeNode, build_category_tree, filter_tree, resolve_selection
from planning_dashboard.data.pivot import MetricPivot, pivot_metrics
from planning_dashboard.utils.constants import (
    BOUND_FIELDS,
    FORECAST_EXTRA_FIELDS,
    FORECAST_FIELDS,
    SUPPLY_PLAN_DATE_FIELD,
    SUPPLY_PLAN_METRICS,
)
from planning_dashboard.utils.filter_state import FilterState, write_filter_file

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]


def log_notifier(message: str) -> None:
    logger.warning(f"⚠️ {message}")


class BaseView:
    error_message = "Error al cargar datos"

    def __init__(self, client: PlanningApiClient, notify: Optional[Notifier] = None):
        self.client = client
        self.notify = notify or log_notifier
        self.error: Optional[Exception] = None
        self.loading = False
        self._generation = 0
        self._task: Optional[asyncio.Future] = None
        self._closed = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def closed(self) -> bool:
        return self._closed

    async def _fetch(self) -> Any:
        raise NotImplementedError

    def _apply(self, payload: Any) -> None:
        raise NotImplementedError

    def _can_fetch(self) -> bool:
        return True

    async def refresh(self) -> bool:
        """
        Fetch and transform. Returns True only when this call's result was applied.
        """
        if self._closed:
            return False
        # Any earlier request is stale now, even when this selection fetches nothing
        self._invalidate()
        if not self._can_fetch():
            return False

        generation = self._generation
        self.loading = True
        self._task = asyncio.ensure_future(self._fetch())

        try:
            payload = await self._task
        except asyncio.CancelledError:
            if generation != self._generation:
                logger.debug(f"{type(self).__name__}: request {generation} superseded")
                return False
            raise
        except FetchError as e:
            if generation != self._generation:
                return False
            self._fail(e, e.message)
            return False

        if generation != self._generation:
            logger.debug(f"{type(self).__name__}: discarding stale response {generation}")
            return False

        try:
            self._apply(payload)
        except ValueError as e:
            self._fail(e, str(e))
            return False
        self.error = None
        self.loading = False
        return True

    def _fail(self, error: Exception, message: str) -> None:
        self.error = error
        self.loading = False
        logger.error(f"{type(self).__name__} refresh failed: {error}")
        self.notify(f"{self.error_message}: {message}")

    def _invalidate(self) -> None:
        """Take a new generation and cancel the pending request, if any."""
        self._generation += 1
        self.loading = False
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def close(self) -> None:
        """Invalidate in-flight requests; later refreshes are no-ops."""
        self._closed = True
        self._invalidate()


class ForecastView(BaseView):
    """Forecast series for the selected product/location/customer, summed per date."""

    error_message = "Error al cargar datos de pronóstico"

    def __init__(
        self,
        client: PlanningApiClient,
        filters: FilterState,
        notify: Optional[Notifier] = None,
        fields: Sequence[str] = tuple(FORECAST_FIELDS + FORECAST_EXTRA_FIELDS),
        mean_fields: Sequence[str] = tuple(BOUND_FIELDS),
    ):
        super().__init__(client, notify)
        self.filters = filters
        self.fields = fields
        self.mean_fields = mean_fields
        self.data: List[Dict[str, Any]] = []

    def _can_fetch(self) -> bool:
        return bool(self.filters.product_id)

    async def _fetch(self) -> List[Dict[str, Any]]:
        return await self.client.get_product_forecast(
            self.filters.product_id,
            location_node_id=self.filters.location_id,
            customer_node_id=self.filters.customer_id,
        )

    def _apply(self, rows: List[Dict[str, Any]]) -> None:
        self.data = aggregate_by_date(rows, fields=self.fields, mean_fields=self.mean_fields)

    async def apply_filters(
        self,
        filters: FilterState,
        persist_to: Union[str, Path, None] = None,
    ) -> bool:
        """Swap the selection, persist it when a path is given, and refresh."""
        self.filters = filters
        if persist_to is not None:
            write_filter_file(filters, persist_to)
        return await self.refresh()


class ProductPickerView(BaseView):
    error_message = "Error al cargar productos"

    def __init__(self, client: PlanningApiClient, notify: Optional[Notifier] = None):
        super().__init__(client, notify)
        self.products: List[Dict[str, Any]] = []
        self.tree: Tuple[TreeNode, ...] = ()
        self.selection: Optional[Dict[str, Any]] = None

    async def _fetch(self) -> List[Dict[str, Any]]:
        return await self.client.get_products()

    def _apply(self, products: List[Dict[str, Any]]) -> None:
        self.products = products
        self.tree = build_category_tree(products)

    def search(self, term: Optional[str]) -> Tuple[TreeNode, ...]:
        return filter_tree(self.tree, term)

    def select(self, node_id: str, node_type: Optional[str] = None) -> Dict[str, Any]:
        self.selection = resolve_selection(self.tree, node_id, node_type)
        return self.selection


class SupplyPlanView(BaseView):
    """Supply plan metrics for one product/location, pivoted to metric x date."""

    error_message = "Error al cargar datos del plan de suministro"

    def __init__(
        self,
        client: PlanningApiClient,
        filters: FilterState,
        notify: Optional[Notifier] = None,
        on_duplicate: str = "last",
    ):
        super().__init__(client, notify)
        self.filters = filters
        self.on_duplicate = on_duplicate
        self.pivot = MetricPivot(metrics=tuple(SUPPLY_PLAN_METRICS), dates=())

    def _can_fetch(self) -> bool:
        return bool(self.filters.product_id and self.filters.location_id)

    async def _fetch(self) -> List[Dict[str, Any]]:
        return await self.client.get_supply_plan(self.filters.product_id, self.filters.location_id)

    def _apply(self, rows: List[Dict[str, Any]]) -> None:
        if not rows:
            logger.info("No se encontraron datos para los filtros seleccionados")
        self.pivot = pivot_metrics(
            rows,
            metrics=SUPPLY_PLAN_METRICS,
            date_field=SUPPLY_PLAN_DATE_FIELD,
            on_duplicate=self.on_duplicate,
        )
