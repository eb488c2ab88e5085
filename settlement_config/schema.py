"""
Configuration Schema (``settlement_config.schema``).

Responsibility
--------------
Frozen dataclasses describing the engine configuration document: league
fee rates, rate-sync worker settings and the subclub classification
tables.

Architecture position
---------------------
**Config layer** -- pure data definitions with no I/O.  Fee rates reuse
the kernel's ``FeeRateConfig`` so the parsed value feeds the fee engine
directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from settlement_kernel.domain.entities import FeeRateConfig

DEFAULT_MAX_WORKERS = 8
DEFAULT_BATCH_SIZE = 20
DEFAULT_CATEGORY = "?"


@dataclass(frozen=True)
class SyncSettings:
    """Bounded parallelism of the rate-sync propagator."""

    max_workers: int = DEFAULT_MAX_WORKERS
    batch_size: int = DEFAULT_BATCH_SIZE


@dataclass(frozen=True)
class PrefixRule:
    """Agents whose bare name starts with any of ``prefixes`` belong to ``category``."""

    prefixes: tuple[str, ...]
    category: str


@dataclass(frozen=True)
class ContainsRule:
    """Agents whose bare name contains ``needle`` belong to ``category``."""

    needle: str
    category: str


@dataclass(frozen=True)
class ClassificationConfig:
    agent_overrides: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    manual_links: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    prefix_rules: tuple[PrefixRule, ...] = ()
    contains_rules: tuple[ContainsRule, ...] = ()
    default_category: str = DEFAULT_CATEGORY


@dataclass(frozen=True)
class EngineConfig:
    """The whole engine configuration, with the checksum of its source document."""

    fee_rates: FeeRateConfig = field(default_factory=FeeRateConfig)
    sync: SyncSettings = field(default_factory=SyncSettings)
    classification: ClassificationConfig = field(default_factory=ClassificationConfig)
    database_url: str | None = None
    log_level: str = "INFO"
    checksum: str = ""
