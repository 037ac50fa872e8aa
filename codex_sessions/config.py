"""YAML configuration for the session browser."""

import logging
from pathlib import Path
from typing import Optional

import yaml

from .models import ArchiveFilter, SortOrder

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "session-browser.yaml"
DEFAULT_LOG_NAME = "session-browser.log"


def load_config(config_path: str) -> dict:
    """Load configuration from YAML file."""
    path = Path(config_path).expanduser()

    if not path.exists():
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return {}

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        logger.warning(f"Config file {config_path} is not a mapping, ignoring it")
        return {}
    return data


def archive_filter_from(value: Optional[str], default: ArchiveFilter = ArchiveFilter.ACTIVE) -> ArchiveFilter:
    if value is None:
        return default
    try:
        return ArchiveFilter(str(value).lower())
    except ValueError:
        logger.warning(f"Unknown show filter {value!r}, using {default.value}")
        return default


def sort_order_from(value: Optional[str], default: SortOrder = SortOrder.DESC) -> SortOrder:
    if value is None:
        return default
    try:
        return SortOrder(str(value).lower())
    except ValueError:
        logger.warning(f"Unknown sort order {value!r}, using {default.value}")
        return default
