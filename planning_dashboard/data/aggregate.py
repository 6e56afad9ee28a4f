'''planning_dashboard/data/aggregate.py'''
import logging
from typing import Any, Dict, Iterable, List, Sequence

import pandas as pd

from planning_dashboard.data.load_data import DATE_KEY_COL, rows_to_frame
from planning_dashboard.utils.constants import (
    DEFAULT_CONVERSION_RATE,
    FORECAST_DATE_FIELD,
    FORECAST_FIELDS,
)

logger = logging.getLogger(__name__)

MONTH_KEY_COL = "_month_key"


def _split_fields(fields: Sequence[str], mean_fields: Sequence[str]):
    # A field listed in both is averaged
    mean_fields = list(dict.fromkeys(mean_fields))
    sum_fields = [f for f in dict.fromkeys(fields) if f not in mean_fields]
    return sum_fields, mean_fields


def _aggregate_frame(
    df: pd.DataFrame,
    key_col: str,
    sum_fields: List[str],
    mean_fields: List[str],
) -> pd.DataFrame:
    grouped = df.groupby(key_col, sort=True)
    parts = []
    if sum_fields:
        parts.append(grouped[sum_fields].sum())
    if mean_fields:
        parts.append(grouped[mean_fields].mean())
    if not parts:
        return pd.DataFrame(index=grouped.size().index)
    return pd.concat(parts, axis=1)


def aggregate_by_date(
    rows: Iterable[Dict[str, Any]],
    fields: Sequence[str] = FORECAST_FIELDS,
    date_field: str = FORECAST_DATE_FIELD,
    mean_fields: Sequence[str] = (),
) -> List[Dict[str, Any]]:
    """
    Collapse raw rows sharing a calendar date into one record per date.

    Every field in `fields` is summed across the rows of that date, with
    null, missing and non-numeric values counting as zero. Fields in
    `mean_fields` are averaged per date instead (the forecast table does
    this for upper/lower bounds).

    Args:
        rows: Flat JSON rows, each carrying `date_field`
        fields: Numeric fields to sum
        date_field: Name of the date column, echoed back as YYYY-MM-DD
        mean_fields: Numeric fields to average

    Returns:
        One dict per distinct date, sorted ascending by calendar date.
        Empty input yields an empty list.
    """
    sum_fields, mean_fields = _split_fields(fields, mean_fields)
    df = rows_to_frame(rows, sum_fields + mean_fields, date_field=date_field)
    if df.empty:
        return []

    aggregated = _aggregate_frame(df, DATE_KEY_COL, sum_fields, mean_fields)

    records = []
    for key, values in aggregated.iterrows():
        record = {date_field: key.strftime("%Y-%m-%d")}
        for field in sum_fields + mean_fields:
            record[field] = float(values[field])
        records.append(record)

    logger.debug(f"Aggregated {len(df)} rows into {len(records)} dates")
    return records


def aggregate_by_month(
    rows: Iterable[Dict[str, Any]],
    fields: Sequence[str] = FORECAST_FIELDS,
    date_field: str = FORECAST_DATE_FIELD,
    mean_fields: Sequence[str] = (),
) -> List[Dict[str, Any]]:
    """Same as aggregate_by_date but keyed by YYYY-MM under "month"."""
    sum_fields, mean_fields = _split_fields(fields, mean_fields)
    df = rows_to_frame(rows, sum_fields + mean_fields, date_field=date_field)
    if df.empty:
        return []

    df[MONTH_KEY_COL] = df[DATE_KEY_COL].dt.strftime("%Y-%m")
    aggregated = _aggregate_frame(df, MONTH_KEY_COL, sum_fields, mean_fields)

    return [
        {"month": key, **{field: float(values[field]) for field in sum_fields + mean_fields}}
        for key, values in aggregated.iterrows()
    ]


def build_inventory_projections(
    rows: Iterable[Dict[str, Any]],
    conversion_rate: float = DEFAULT_CONVERSION_RATE,
    date_field: str = FORECAST_DATE_FIELD,
) -> List[Dict[str, Any]]:
    """
    Monthly inventory projection from forecast rows.

    projected_ending_inventory is a flat approximation: the month's summed
    forecast times `conversion_rate`.
    """
    if conversion_rate < 0:
        raise ValueError(f"conversion_rate must be >= 0, got {conversion_rate}")

    monthly = aggregate_by_month(rows, fields=["forecast"], date_field=date_field)
    return [
        {
            "projection_month": row["month"],
            "forecasted_demand": row["forecast"],
            "projected_ending_inventory": row["forecast"] * conversion_rate,
        }
        for row in monthly
    ]
