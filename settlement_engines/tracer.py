"""
settlement_engines.tracer -- SETTLEMENT_ENGINE_TRACE records for pure engines.

``@traced_engine`` logs one record per call of a decorated engine:

    engine_name, engine_version  which calculation ran
    input_fingerprint            16 hex chars of SHA-256 over selected inputs
    output                       selected result attributes (money as strings)
    duration_ms

Two calls with equal fingerprints and different outputs mean the engine is
not deterministic, which is what the trace exists to expose when a week is
recomputed after a rate change.  The decorator never alters arguments or
the return value.

Usage:
    @traced_engine("fees", "1.0",
                   fingerprint_fields=("rake", "revenue"),
                   output_fields=("total_fees",))
    def compute_fees(rake, revenue, rates):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any

from settlement_kernel.logging_config import get_logger

TRACE_TYPE = "SETTLEMENT_ENGINE_TRACE"

logger = get_logger("engines.tracer")


def canonical(value: Any) -> str:
    """Stable text form: Decimals exact, dataclasses by field, mappings key-sorted."""
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float, Decimal)):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return type(value).__name__ + canonical(
            {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        )
    if isinstance(value, Mapping):
        pairs = sorted((str(k), canonical(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(canonical(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(fields: tuple[str, ...], arguments: Mapping[str, Any]) -> str:
    """SHA-256 prefix over ``name=value`` of each field; absent fields hash as null."""
    text = "|".join(f"{name}={canonical(arguments.get(name))}" for name in fields)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def _output_summary(result: Any, fields: tuple[str, ...]) -> dict[str, str]:
    return {name: canonical(getattr(result, name, None)) for name in fields}


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    output_fields: tuple[str, ...] = (),
) -> Callable:
    """Wrap a pure engine function so each call emits a trace record."""

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                try:
                    arguments = signature.bind(*args, **kwargs).arguments
                except TypeError:
                    arguments = kwargs
                fingerprint = compute_input_fingerprint(fingerprint_fields, arguments)

            started = time.monotonic()
            result = func(*args, **kwargs)

            logger.info(
                TRACE_TYPE,
                extra={
                    "trace_type": TRACE_TYPE,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fingerprint,
                    "output": _output_summary(result, output_fields),
                    "duration_ms": round((time.monotonic() - started) * 1000, 2),
                },
            )
            return result

        return wrapper

    return decorator
