'''planning_dashboard/utils/io_utils.py'''
import json
import logging
import math
from datetime import date, datetime
from typing import Any, Dict

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def save_json(data: Dict[str, Any], path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=4)


def safe_float(value) -> float:
    """Safely convert values to float, handling None, NaN, inf and junk strings as 0.0"""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, np.integer, np.floating)):
        value = float(value)
        return 0.0 if math.isnan(value) or math.isinf(value) else value
    if isinstance(value, str):
        try:
            converted = float(value)
        except ValueError:
            return 0.0
        return 0.0 if math.isnan(converted) or math.isinf(converted) else converted
    return 0.0


def safe_json_convert(obj):
    """Recursively convert object to be JSON serializable"""
    if isinstance(obj, dict):
        return {k: safe_json_convert(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [safe_json_convert(item) for item in obj]
    elif isinstance(obj, pd.Timestamp):
        return obj.strftime("%Y-%m-%d")
    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return safe_float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif obj is None:
        return None
    elif isinstance(obj, float):
        return safe_float(obj)
    elif isinstance(obj, (int, str, bool)):
        return obj
    else:
        return str(obj)
