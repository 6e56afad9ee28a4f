'''planning_dashboard/utils/config.py'''
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from planning_dashboard.utils.constants import CONFIG_PATH, DEFAULT_CONVERSION_RATE

logger = logging.getLogger(__name__)

BACKEND_URL_ENV = "PLANNING_BACKEND_URL"
REQUEST_TIMEOUT_ENV = "PLANNING_REQUEST_TIMEOUT"
API_KEY_ENV = "PLANNING_API_KEY"


@dataclass(frozen=True)
class Settings:
    backend_url: str = "http://localhost:3001"
    request_timeout: float = 30.0
    rate_limit_per_minute: int = 120
    filter_state_dir: str = "state"
    conversion_rate: float = DEFAULT_CONVERSION_RATE
    api_key: Optional[str] = None


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Loads a YAML file and returns the parsed dictionary.
    A missing or empty file yields an empty dict.
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"Config file not found at {path}, using defaults")
        return {}
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


def load_config(path: Union[str, Path, None] = None) -> Settings:
    """
    Build Settings from configs/config.yaml, then apply environment overrides.

    Args:
        path: Optional config path (defaults to configs/config.yaml under the repo root)

    Returns:
        Settings instance

    Raises:
        ValueError: If a numeric setting cannot be parsed
    """
    raw = load_yaml(path or CONFIG_PATH)
    backend = raw.get("backend", {}) or {}
    dashboard = raw.get("dashboard", {}) or {}
    defaults = Settings()

    backend_url = os.getenv(BACKEND_URL_ENV) or backend.get("url") or defaults.backend_url
    timeout = os.getenv(REQUEST_TIMEOUT_ENV) or backend.get("timeout_seconds", defaults.request_timeout)

    try:
        settings = Settings(
            backend_url=str(backend_url).rstrip("/"),
            request_timeout=float(timeout),
            rate_limit_per_minute=int(backend.get("rate_limit_per_minute", defaults.rate_limit_per_minute)),
            filter_state_dir=str(dashboard.get("filter_state_dir", defaults.filter_state_dir)),
            conversion_rate=float(dashboard.get("conversion_rate", defaults.conversion_rate)),
            api_key=os.getenv(API_KEY_ENV) or None,
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid configuration value: {e}")

    logger.info(f"Loaded configuration: backend={settings.backend_url}, timeout={settings.request_timeout}s")
    return settings
