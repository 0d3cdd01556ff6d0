"""
Configuration Module - Typed settings for the line-index engine

Settings are resolved in three layers:
1. Defaults declared on the models below
2. ``JSONLOGS_<SECTION>__<KEY>`` environment variables (a ``.env`` file is loaded first)
3. Explicit overrides passed to ``load_config``
"""
import json
import os
from typing import Any, Dict, List, Literal, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field

ENV_PREFIX = "JSONLOGS_"


class StreamingConfig(BaseModel):
    enabled: Union[bool, Literal["auto"]] = "auto"
    threshold_mb: float = Field(10, gt=0)
    chunk_size: int = Field(1000, ge=1)
    cache_size: int = Field(100, ge=1)
    show_progress: bool = True
    stats_sample_size: int = Field(10000, ge=1)
    table_sample_size: int = Field(1000, ge=1)


class NavigationConfig(BaseModel):
    error_field: str = "level"
    error_values: List[str] = ["error", "ERROR", "fatal", "FATAL"]


class AnalysisConfig(BaseModel):
    timestamp_field: str = "timestamp"
    timestamp_formats: List[str] = [
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d %H:%M:%S",
        "iso8601",
    ]


class AdvancedConfig(BaseModel):
    tail_update_interval: int = Field(100, ge=1)  # milliseconds
    watch_changes: bool = False


class JsonLogsConfig(BaseModel):
    streaming: StreamingConfig = StreamingConfig()
    navigation: NavigationConfig = NavigationConfig()
    analysis: AnalysisConfig = AnalysisConfig()
    advanced: AdvancedConfig = AdvancedConfig()

    @property
    def tail_interval_seconds(self) -> float:
        return self.advanced.tail_update_interval / 1000.0


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_value(raw: str) -> Any:
    # Lists, numbers and booleans are written as JSON; anything else stays a string
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Collect ``JSONLOGS_SECTION__KEY=value`` variables into a nested dict"""
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for name, raw in environ.items():
        if not name.startswith(ENV_PREFIX) or "__" not in name:
            continue
        section, _, key = name[len(ENV_PREFIX):].lower().partition("__")
        if section not in JsonLogsConfig.model_fields:
            continue
        overrides.setdefault(section, {})[key] = _env_value(raw)
    return overrides


def load_config(overrides: Optional[Dict[str, Any]] = None,
                env_file: Optional[str] = None) -> JsonLogsConfig:
    """
    Build the effective configuration

    Args:
        overrides: Nested dict merged last (e.g. ``{"streaming": {"chunk_size": 500}}``)
        env_file: Optional ``.env`` path; variables already set are not overwritten

    Raises:
        pydantic.ValidationError: If a value has the wrong type or range
    """
    if env_file:
        load_dotenv(env_file, override=False)

    settings = JsonLogsConfig().model_dump()
    settings = _deep_merge(settings, env_overrides())
    settings = _deep_merge(settings, overrides or {})
    return JsonLogsConfig.model_validate(settings)
