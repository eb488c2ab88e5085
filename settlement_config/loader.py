"""
Configuration Loader (``settlement_config.loader``).

Responsibility
--------------
Loads the engine YAML document and parses it into typed
``settlement_config.schema`` dataclasses.  Runtime callers go through
``settlement_config.get_active_config()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Rates are Decimal (parsed from their string form) and never negative.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Negative rate, ``max_workers < 1``, ``batch_size < 1`` or an unknown log
  level -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from settlement_kernel.domain.entities import FeeRateConfig
from settlement_kernel.domain.values import ZERO, to_decimal
from settlement_kernel.exceptions import ConfigurationError
from settlement_config.schema import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_CATEGORY,
    DEFAULT_MAX_WORKERS,
    ClassificationConfig,
    ContainsRule,
    EngineConfig,
    PrefixRule,
    SyncSettings,
)

_FEE_KEYS = ("app_rate", "league_rate", "revenue_rate", "revenue_app_rate")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_fee_rates(data: dict[str, Any]) -> FeeRateConfig:
    values = {}
    for key in _FEE_KEYS:
        rate = to_decimal(str(data.get(key, 0)))
        if rate < ZERO:
            raise ConfigurationError(f"fee_rates.{key}", f"must not be negative (got {rate})")
        values[key] = rate
    return FeeRateConfig(**values)


def _positive_int(data: dict[str, Any], key: str, default: int) -> int:
    raw = data.get(key, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"sync.{key}", f"must be an integer (got {raw!r})") from None
    if value < 1:
        raise ConfigurationError(f"sync.{key}", f"must be at least 1 (got {value})")
    return value


def parse_sync(data: dict[str, Any]) -> SyncSettings:
    return SyncSettings(
        max_workers=_positive_int(data, "max_workers", DEFAULT_MAX_WORKERS),
        batch_size=_positive_int(data, "batch_size", DEFAULT_BATCH_SIZE),
    )


def parse_classification(data: dict[str, Any]) -> ClassificationConfig:
    """
    Parse the classification tables.

    ``manual_links`` keys are upper-cased so lookups match the
    classifier's normalized agent names.
    """
    overrides = {str(k): str(v) for k, v in (data.get("agent_overrides") or {}).items()}
    links = {str(k).upper().strip(): str(v) for k, v in (data.get("manual_links") or {}).items()}
    prefix_rules = tuple(
        PrefixRule(
            prefixes=tuple(str(p).upper() for p in item["prefixes"]),
            category=str(item["category"]),
        )
        for item in data.get("prefix_rules") or []
    )
    contains_rules = tuple(
        ContainsRule(needle=str(item["needle"]).upper(), category=str(item["category"]))
        for item in data.get("contains_rules") or []
    )
    return ClassificationConfig(
        agent_overrides=MappingProxyType(overrides),
        manual_links=MappingProxyType(links),
        prefix_rules=prefix_rules,
        contains_rules=contains_rules,
        default_category=str(data.get("default_category", DEFAULT_CATEGORY)),
    )


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """Parse a whole engine document; absent sections take their defaults."""
    log_level = str(data.get("log_level", "INFO")).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigurationError("log_level", f"unknown level {log_level!r}")

    return EngineConfig(
        fee_rates=parse_fee_rates(data.get("fee_rates") or {}),
        sync=parse_sync(data.get("sync") or {}),
        classification=parse_classification(data.get("classification") or {}),
        database_url=data.get("database_url"),
        log_level=log_level,
        checksum=compute_checksum(data),
    )


def load_engine_config(path: Path) -> EngineConfig:
    return parse_engine_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
