"""Configuration loader for the system prompt cache."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_CONFIG_PATH = "config/prompt_cache.defaults.yml"


@dataclass(frozen=True)
class CacheConfig:
    capacity: int = 100
    ttl_sec: int = 3600
    eviction_policy: str = "fifo"
    sweep_interval_sec: float = 0.0
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheConfig":
        return cls(
            capacity=int(data.get("capacity", 100)),
            ttl_sec=int(data.get("ttl_sec", 3600)),
            eviction_policy=str(data.get("eviction_policy", "fifo")).lower(),
            sweep_interval_sec=float(data.get("sweep_interval_sec", 0.0)),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )


ENV_MAP = {
    "capacity": "PROMPT_CACHE_CAPACITY",
    "ttl_sec": "PROMPT_CACHE_TTL_SEC",
    "eviction_policy": "PROMPT_CACHE_EVICTION_POLICY",
    "sweep_interval_sec": "PROMPT_CACHE_SWEEP_INTERVAL_SEC",
    "log_level": "PROMPT_CACHE_LOG_LEVEL",
}


def load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def merge_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
    merged = json.loads(json.dumps(config_data))  # deep copy via json

    for key, env_name in ENV_MAP.items():
        if env_name not in os.environ:
            continue
        value: Any = os.environ[env_name]
        if key in {"capacity", "ttl_sec"}:
            value = int(value)
        elif key == "sweep_interval_sec":
            value = float(value)
        merged[key] = value

    return merged


def load_config(config_path: str | Path = DEFAULT_CONFIG_PATH) -> CacheConfig:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = load_yaml(path)
    data = merge_env_overrides(data)
    return CacheConfig.from_dict(data)


def configure_logging(config: CacheConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
