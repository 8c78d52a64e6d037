from pathlib import Path
from dataclasses import dataclass
import os
from functools import lru_cache

import yaml


BASE_DIR = Path(__file__).resolve().parent.parent


@dataclass
class Settings:
    # Server
    BASE_URL: str = "http://127.0.0.1:9880"
    REQUEST_TIMEOUT: float = 60.0

    # Logging
    LOG_LEVEL: str = "WARNING"
    LOG_JSON: bool = False


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from config.yaml if available, otherwise use defaults/env vars.

    Cached to avoid repeated file reads. Clear cache with get_settings.cache_clear().
    """
    cfg_path = os.environ.get("CONFIG_PATH", str(BASE_DIR / "config.yaml"))

    data = {}
    if Path(cfg_path).exists():
        with open(cfg_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    def _val(key: str, default):
        """Get value from YAML, env var, or default."""
        if key in data:
            return data[key]
        return os.environ.get(key.upper(), default)

    return Settings(
        BASE_URL=str(_val("base_url", "http://127.0.0.1:9880")).rstrip("/"),
        REQUEST_TIMEOUT=float(_val("request_timeout", 60.0)),
        LOG_LEVEL=str(_val("log_level", "WARNING")).upper(),
        LOG_JSON=_as_bool(_val("log_json", False)),
    )
