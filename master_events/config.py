"""
Coordinator configuration.

Settings are read from a JSON file when present, otherwise defaults apply.
Environment flags (MASTER_EVENTS_*) can override either.
"""

import json
import logging
import os
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger("MasterEventsConfig")

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "settings.json")


def _env_flag(name: str, default: bool) -> bool:
    raw_value = os.environ.get(name)
    if raw_value is None or not raw_value.strip():
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


class CoordinatorConfig(BaseModel):
    default_expected_count: int = Field(default=1, ge=0)
    thread_safe: bool = True        # guard coordinator state with an RLock
    clear_errors_on_reset: bool = False

    @classmethod
    def from_env(cls, base: Optional["CoordinatorConfig"] = None) -> "CoordinatorConfig":
        """
        Overlay MASTER_EVENTS_* environment variables on a base config.

        Args:
            base: Starting config (defaults if None)
        """
        base = base or cls()
        values = base.model_dump()

        count = os.environ.get("MASTER_EVENTS_DEFAULT_EXPECTED_COUNT")
        if count is not None and count.strip():
            values["default_expected_count"] = int(count)
        values["thread_safe"] = _env_flag("MASTER_EVENTS_THREAD_SAFE", base.thread_safe)
        values["clear_errors_on_reset"] = _env_flag(
            "MASTER_EVENTS_CLEAR_ERRORS_ON_RESET", base.clear_errors_on_reset
        )
        return cls(**values)


def load_config(path: Optional[str] = None) -> CoordinatorConfig:
    config_path = path or DEFAULT_CONFIG_PATH
    try:
        with open(config_path, "r") as f:
            data = json.load(f)
    except FileNotFoundError:
        # Fallback Defaults
        logger.debug(f"No settings file at {config_path}, using defaults")
        data = {}
    return CoordinatorConfig.from_env(CoordinatorConfig(**data))
