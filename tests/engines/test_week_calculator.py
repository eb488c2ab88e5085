"""
Tests for settlement_engines.week.

Grouping, effective rates, agent pooling, conservation of totals and the
conversion to metric records.
"""

from datetime import date
from decimal import Decimal

from settlement_engines.classification import Classifier, build_rules
from settlement_engines.week import calculate_week, to_metrics
from settlement_kernel.domain.naming import NO_AGENT_BUCKET, UNASSIGNED_SUBCLUB
from settlement_kernel.domain.rates import RateHistory, RateInterval
from tests.builders import make_row


def _rows():
    return [
        make_row("p1", agent="Alpha", winnings="-100", rake="200"),
        make_row("p2", agent="Alpha", winnings="50", rake="100"),
        make_row("p3", agent="none", subclub=None, winnings="10"),
    ]


class TestCalculateWeek:
    def test_player_and_agent_results(self):
        week = calculate_week(_rows(), player_rates={"p2": "20"}, agent_rates={"Alpha": "10"})

        players = {p.external_player_id: p for p in week.players}
        assert players["p1"].rb_rate == Decimal("10")
        assert players["p1"].resultado == Decimal("-80.00")
        assert players["p2"].rb_rate == Decimal("20")
        assert players["p2"].resultado == Decimal("70.00")

        (alpha,) = week.subclubs["IMPERIO"].agents
        assert alpha.commission == Decimal("30.00")
        assert alpha.resultado == Decimal("-20.00")
        assert alpha.player_count == 2

    def test_unresolvable_references_are_bucketed(self):
        week = calculate_week(_rows())
        (bucket,) = week.subclubs[UNASSIGNED_SUBCLUB].agents
        assert bucket.agent_name == NO_AGENT_BUCKET
        assert bucket.player_count == 1

    def test_totals_are_conserved(self):
        rows = _rows()
        week = calculate_week(rows, agent_rates={"Alpha": "10"})
        assert week.totals.players == len(rows) == len(week.players)
        assert week.totals.winnings == sum(r.winnings for r in rows)
        assert week.totals.rake == sum(s.totals.rake for s in week.subclubs.values())

    def test_nickname_rate_fallback(self):
        rows = [make_row("p9", nickname="shark", rake="100")]
        week = calculate_week(rows, player_rates={"shark": "12"})
        assert week.players[0].rb_value == Decimal("12.00")

    def test_rate_history_resolved_for_week(self):
        history = RateHistory("Alpha")
        history.add(RateInterval(Decimal("10"), date(2025, 1, 1), date(2025, 1, 31)))
        history.add(RateInterval(Decimal("15"), date(2025, 2, 1)))

        week = calculate_week(
            [make_row("p1", rake="100")],
            agent_rates={"Alpha": history},
            week_start=date(2025, 2, 3),
        )
        assert week.players[0].rb_rate == Decimal("15")

    def test_classifier_fills_blank_subclub(self):
        classifier = Classifier(build_rules(prefix_rules=[(("AMS",), "IMPERIO")]))
        week = calculate_week(
            [make_row("p1", agent="AG. AMS Joe", subclub=None, rake="10")],
            classifier=classifier,
        )
        assert list(week.subclubs) == ["IMPERIO"]

    def test_logs_week_calculated(self, captured_logs):
        calculate_week(_rows())
        event = next(r for r in captured_logs() if r["message"] == "week_calculated")
        assert event["players"] == 3


class TestToMetrics:
    def test_records_are_unlinked(self):
        week = calculate_week(_rows(), agent_rates={"Alpha": "10"})
        players, agents = to_metrics(week, "s-1")

        assert len(players) == 3
        assert len(agents) == 2
        assert all(p.settlement_id == "s-1" and p.agent_id is None for p in players)
        alpha = next(a for a in agents if a.agent_name == "Alpha")
        assert alpha.subclub_name == "IMPERIO"
        assert alpha.commission == Decimal("30.00")
