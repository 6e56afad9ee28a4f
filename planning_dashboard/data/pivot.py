'''planning_dashboard/data/pivot.py'''
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from planning_dashboard.data.load_data import DATE_KEY_COL, rows_to_frame
from planning_dashboard.utils.constants import (
    EXPORT_METRIC_LABELS,
    SUPPLY_PLAN_METRICS,
)

logger = logging.getLogger(__name__)

ON_DUPLICATE_MODES = ("last", "raise")


class DuplicatePivotEntryError(ValueError):
    """Raised when a (metric, date) pair appears more than once and on_duplicate="raise"."""

    def __init__(self, duplicates: List[Tuple[str, str]]):
        self.duplicates = duplicates
        preview = ", ".join(f"{m}@{d}" for m, d in duplicates[:5])
        super().__init__(f"Duplicate pivot entries ({len(duplicates)}): {preview}")


@dataclass(frozen=True)
class MetricPivot:
    metrics: Tuple[str, ...]
    dates: Tuple[str, ...]          # YYYY-MM-DD, ascending
    values: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def value(self, metric: str, date: str) -> float:
        return self.values.get(metric, {}).get(date, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metrics": list(self.metrics),
            "dates": list(self.dates),
            "values": {m: dict(v) for m, v in self.values.items()},
        }

    def to_frame(self, labels: Optional[Dict[str, str]] = None) -> pd.DataFrame:
        """Metric rows by date columns, optionally relabelled for display."""
        frame = pd.DataFrame(
            [[self.value(m, d) for d in self.dates] for m in self.metrics],
            index=list(self.metrics),
            columns=list(self.dates),
            dtype=float,
        )
        if labels:
            frame.index = [labels.get(m, m) for m in self.metrics]
        frame.index.name = "metric"
        return frame


def _check_mode(on_duplicate: str) -> None:
    if on_duplicate not in ON_DUPLICATE_MODES:
        raise ValueError(f"on_duplicate must be one of {ON_DUPLICATE_MODES}, got {on_duplicate!r}")


def _build(df: pd.DataFrame, metrics: Sequence[str], value_lookup) -> MetricPivot:
    date_keys = sorted(df[DATE_KEY_COL].unique()) if not df.empty else []
    dates = tuple(pd.Timestamp(d).strftime("%Y-%m-%d") for d in date_keys)
    values = {m: {d: float(value_lookup(m, d)) for d in dates} for m in metrics}
    return MetricPivot(metrics=tuple(metrics), dates=dates, values=values)


def pivot_metrics(
    rows: Iterable[Dict[str, Any]],
    metrics: Sequence[str] = SUPPLY_PLAN_METRICS,
    date_field: str = "date",
    on_duplicate: str = "last",
) -> MetricPivot:
    """
    Pivot wide rows (one date + one column per metric) into metric -> date -> value.

    Dates are compared as calendar dates, not strings. Missing values default
    to 0. When two rows share a date, the later row wins for every metric
    (on_duplicate="last"), or DuplicatePivotEntryError is raised (on_duplicate="raise").
    """
    _check_mode(on_duplicate)
    metrics = list(dict.fromkeys(metrics))
    df = rows_to_frame(rows, metrics, date_field=date_field)

    if not df.empty:
        dup_mask = df.duplicated(subset=[DATE_KEY_COL], keep="first")
        if dup_mask.any():
            dup_dates = sorted(df.loc[dup_mask, DATE_KEY_COL].dt.strftime("%Y-%m-%d").unique())
            if on_duplicate == "raise":
                raise DuplicatePivotEntryError([(m, d) for d in dup_dates for m in metrics])
            logger.warning(f"Duplicate pivot dates resolved last-write-wins: {dup_dates[:5]}")
            df = df.drop_duplicates(subset=[DATE_KEY_COL], keep="last")

    lookup = {}
    for _, row in df.iterrows():
        day = row[DATE_KEY_COL].strftime("%Y-%m-%d")
        for m in metrics:
            lookup[(m, day)] = row[m]

    return _build(df, metrics, lambda m, d: lookup.get((m, d), 0.0))


def pivot_long_rows(
    rows: Iterable[Dict[str, Any]],
    metrics: Optional[Sequence[str]] = None,
    metric_field: str = "metric",
    date_field: str = "date",
    value_field: str = "value",
    on_duplicate: str = "last",
) -> MetricPivot:
    """
    Pivot long rows shaped {metric, date, value}.

    Every distinct date seen in the input becomes a column, even if it only
    appears for a metric that is not selected. Without `metrics`, metrics are
    taken in order of first appearance.
    """
    _check_mode(on_duplicate)
    df = rows_to_frame(rows, [value_field], date_field=date_field)
    if metric_field not in df.columns:
        df[metric_field] = pd.Series(dtype="object")
    df[metric_field] = df[metric_field].fillna("").astype(str)

    if metrics is None:
        metrics = [m for m in dict.fromkeys(df[metric_field]) if m]
    else:
        metrics = list(dict.fromkeys(metrics))

    if not df.empty:
        selected = df[metric_field].isin(metrics)
        dup_mask = selected & df.duplicated(subset=[metric_field, DATE_KEY_COL], keep="first")
        if dup_mask.any():
            dups = sorted(set(zip(
                df.loc[dup_mask, metric_field],
                df.loc[dup_mask, DATE_KEY_COL].dt.strftime("%Y-%m-%d"),
            )))
            if on_duplicate == "raise":
                raise DuplicatePivotEntryError(dups)
            logger.warning(f"Duplicate pivot entries resolved last-write-wins: {dups[:5]}")

    lookup = {}
    for _, row in df.iterrows():
        lookup[(row[metric_field], row[DATE_KEY_COL].strftime("%Y-%m-%d"))] = row[value_field]

    return _build(df, metrics, lambda m, d: lookup.get((m, d), 0.0))


def export_pivot_csv(
    pivot: MetricPivot,
    path: Union[str, Path],
    labels: Optional[Dict[str, str]] = EXPORT_METRIC_LABELS,
) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    pivot.to_frame(labels=labels).to_csv(path, encoding="utf-8")
    logger.info(f"Exported pivot {len(pivot.metrics)}x{len(pivot.dates)} to {path}")
    return path
