'''planning_dashboard/data/load_data.py'''
import logging
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

DATE_KEY_COL = "_date_key"

# Trailing "Z" / "+hh:mm" after a clock time
_UTC_OFFSET_RE = re.compile(r"(\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)(?:Z|[+-]\d{2}:?\d{2})$")


def _drop_offset(value: Any) -> Any:
    if isinstance(value, str):
        return _UTC_OFFSET_RE.sub(r"\1", value.strip())
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


def parse_dates(values: pd.Series) -> pd.Series:
    """
    Parse ISO date strings / timestamps to naive calendar dates; junk becomes NaT.

    UTC offsets are discarded rather than converted, so a timestamp is bucketed
    under the calendar day written in it.
    """
    parsed = pd.to_datetime(values.map(_drop_offset), errors="coerce", format="ISO8601")
    return parsed.dt.normalize()


def coerce_numeric(df: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """Coerce the given columns to float, adding missing ones; null/inf/junk becomes 0."""
    for col in columns:
        if col in df.columns:
            df[col] = (
                pd.to_numeric(df[col], errors="coerce")
                .replace([np.inf, -np.inf], np.nan)
                .fillna(0.0)
                .astype(float)
            )
        else:
            df[col] = 0.0
    return df


def rows_to_frame(
    rows: Optional[Iterable[Dict[str, Any]]],
    numeric_fields: Sequence[str] = (),
    date_field: Optional[str] = None,
) -> pd.DataFrame:
    """
    Normalise a JSON array from the planning backend into a DataFrame.

    Args:
        rows: Flat JSON objects as returned by the REST endpoints
        numeric_fields: Columns coerced to float (missing/null -> 0.0)
        date_field: Optional date column parsed into DATE_KEY_COL

    Returns:
        DataFrame with numeric columns coerced and, when date_field is given,
        a parsed calendar-date column. Rows whose date cannot be parsed are dropped.
    """
    records = []
    skipped = 0
    for row in rows or []:
        if isinstance(row, dict):
            records.append(row)
        else:
            skipped += 1
    if skipped:
        logger.warning(f"Skipped {skipped} non-object rows")

    df = pd.DataFrame.from_records(records) if records else pd.DataFrame()
    df = coerce_numeric(df, numeric_fields)

    if date_field is None:
        return df

    if date_field not in df.columns:
        df[date_field] = pd.Series(dtype="object")
    df[DATE_KEY_COL] = parse_dates(df[date_field])

    before_count = len(df)
    df = df.dropna(subset=[DATE_KEY_COL])
    after_count = len(df)
    if before_count != after_count:
        logger.warning(f"Dropped {before_count - after_count} rows with invalid {date_field}")
    return df.reset_index(drop=True)


def validate_rows(
    df: pd.DataFrame,
    essential_columns: List[str],
) -> Dict[str, Any]:
    """
    Report on the structure of a loaded frame without raising.

    Returns:
        Dictionary with row count, missing essential columns and warnings
    """
    validation_results = {
        'total_rows': len(df),
        'columns_found': list(df.columns),
        'missing_essential': [col for col in essential_columns if col not in df.columns],
        'validation_passed': True,
        'warnings': []
    }

    if validation_results['missing_essential']:
        warning_msg = f"Missing essential columns: {validation_results['missing_essential']}"
        validation_results['warnings'].append(warning_msg)
        validation_results['validation_passed'] = False
        logger.warning(warning_msg)

    if df.empty:
        validation_results['warnings'].append("No rows returned")

    return validation_results
