"""Tests for settlement_engines.tracer."""

from dataclasses import dataclass
from decimal import Decimal

from settlement_engines.tracer import compute_input_fingerprint, traced_engine


@dataclass(frozen=True)
class _Rates:
    app: Decimal


class TestFingerprint:
    def test_deterministic(self):
        args = {"rake": Decimal("10.00"), "rates": _Rates(Decimal("8"))}
        first = compute_input_fingerprint(("rake", "rates"), args)
        assert first == compute_input_fingerprint(("rake", "rates"), dict(args))
        assert len(first) == 16

    def test_sensitive_to_values(self):
        a = compute_input_fingerprint(("rake",), {"rake": Decimal("10")})
        b = compute_input_fingerprint(("rake",), {"rake": Decimal("11")})
        assert a != b

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(("x",), {"x": None})


class TestTracedEngine:
    def test_positional_and_keyword_calls_match(self, captured_logs):
        @traced_engine("probe", "9.9", fingerprint_fields=("a", "b"))
        def probe(a, b=1):
            return a + b

        assert probe(1, 2) == 3
        assert probe(a=1, b=2) == 3

        traces = [r for r in captured_logs() if r.get("engine_name") == "probe"]
        assert len(traces) == 2
        assert traces[0]["input_fingerprint"] == traces[1]["input_fingerprint"]
        assert traces[0]["engine_version"] == "9.9"
        assert traces[0]["trace_type"] == "SETTLEMENT_ENGINE_TRACE"

    def test_output_summary(self, captured_logs):
        @traced_engine("probe_out", "1.0", output_fields=("app", "missing"))
        def probe():
            return _Rates(Decimal("8.50"))

        probe()
        (trace,) = [r for r in captured_logs() if r.get("engine_name") == "probe_out"]
        assert trace["output"] == {"app": "8.50", "missing": "null"}
        assert trace["input_fingerprint"] == ""
