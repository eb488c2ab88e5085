"""
settlement_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  The kernel and engines never read
    configuration files or environment variables themselves.

Architecture position:
    Configuration -- sits above ``settlement_kernel`` and
    ``settlement_engines`` and below ``settlement_batch``.  The kernel
    MUST NEVER import from ``settlement_config``.

Resolution order:
    1. An explicit ``path`` argument.
    2. The ``SETTLEMENT_ENGINE_CONFIG`` environment variable.
    3. The packaged ``defaults/engine.yaml``.

Failure modes:
    - ``FileNotFoundError`` -- the resolved file does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``ConfigurationError`` -- an invalid value.

Every successful call emits a ``SETTLEMENT_CONFIG_TRACE`` log entry with
the source path and checksum.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from settlement_config.loader import compute_checksum, load_engine_config, parse_engine_config
from settlement_config.schema import (
    ClassificationConfig,
    ContainsRule,
    EngineConfig,
    PrefixRule,
    SyncSettings,
)

_logger = logging.getLogger("settlement_kernel.config")

CONFIG_ENV_VAR = "SETTLEMENT_ENGINE_CONFIG"

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "engine.yaml"


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def get_active_config(path: str | Path | None = None) -> EngineConfig:
    """The ONLY public configuration entrypoint."""
    source = resolve_config_path(path)
    config = load_engine_config(source)
    _logger.info(
        "SETTLEMENT_CONFIG_TRACE",
        extra={
            "trace_type": "SETTLEMENT_CONFIG_TRACE",
            "source": str(source),
            "checksum": config.checksum,
            "max_workers": config.sync.max_workers,
            "prefix_rules": len(config.classification.prefix_rules),
        },
    )
    return config


__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "ClassificationConfig",
    "ContainsRule",
    "EngineConfig",
    "PrefixRule",
    "SyncSettings",
    "compute_checksum",
    "get_active_config",
    "parse_engine_config",
    "resolve_config_path",
]
