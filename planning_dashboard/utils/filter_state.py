'''planning_dashboard/utils/filter_state.py'''
import json
import logging
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Optional, Union

from planning_dashboard.utils.io_utils import save_json

logger = logging.getLogger(__name__)

FILTER_KEYS = ("product_id", "location_id", "customer_id", "start_date", "end_date")


@dataclass(frozen=True)
class FilterState:
    """Persisted dashboard selection for one screen."""
    screen: str = "demandForecast"
    product_id: Optional[str] = None
    location_id: Optional[str] = None
    customer_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    def with_selection(self, **changes) -> "FilterState":
        unknown = set(changes) - set(FILTER_KEYS)
        if unknown:
            raise ValueError(f"Unknown filter keys: {sorted(unknown)}")
        return replace(self, **changes)

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, key) for key in FILTER_KEYS)


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def load_filters(text: Optional[str], screen: str = "demandForecast") -> FilterState:
    """
    Parse stored filter JSON into a FilterState.
    Anything malformed yields an empty state for the screen.
    """
    if not text:
        return FilterState(screen=screen)
    try:
        raw = json.loads(text)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed stored filters for {screen}")
        return FilterState(screen=screen)
    if not isinstance(raw, dict):
        return FilterState(screen=screen)
    return FilterState(screen=screen, **{key: _clean(raw.get(key)) for key in FILTER_KEYS})


def dump_filters(state: FilterState) -> str:
    payload = {key: value for key, value in asdict(state).items() if key != "screen"}
    return json.dumps(payload, sort_keys=True)


def filter_file_path(directory: Union[str, Path], screen: str) -> Path:
    return Path(directory) / f"{screen}Filters.json"


def read_filter_file(path: Union[str, Path], screen: str = "demandForecast") -> FilterState:
    path = Path(path)
    if not path.exists():
        return FilterState(screen=screen)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(f"Failed to read stored filters from {path}: {e}")
        return FilterState(screen=screen)
    return load_filters(text, screen=screen)


def write_filter_file(state: FilterState, path: Union[str, Path]) -> bool:
    """Persist the state; a failed write is logged and reported as False."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        save_json(json.loads(dump_filters(state)), str(path))
    except OSError as e:
        logger.warning(f"Failed to save filters to {path}: {e}")
        return False
    return True
