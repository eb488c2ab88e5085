"""
Tests for settlement_engines.result.

Player results, pooled and direct agent rakeback.
"""

from decimal import Decimal

from settlement_engines.result import agent_rakeback, agent_result, player_result
from tests.builders import make_player


class TestPlayerResult:
    def test_winnings_plus_rakeback(self):
        result = player_result("-200", "150", "10")
        assert result.rb_value == Decimal("15")
        assert result.resultado == Decimal("-185")

    def test_rounded_rebuilds_resultado(self):
        result = player_result("10.004", "33.33", "8").rounded()
        assert result.rb_value == Decimal("2.67")
        assert result.resultado == Decimal("12.67")

    def test_malformed_inputs_are_zero(self):
        result = player_result(None, "abc", "NaN")
        assert result.rb_value == 0
        assert result.resultado == 0


class TestAgentRakeback:
    TEAM = [make_player(rake_total="1000"), make_player(rake_total="2000")]

    def test_pooled(self):
        assert agent_rakeback(self.TEAM, "10", is_direct=False) == Decimal("300")

    def test_direct_uses_player_rates(self):
        rates = {self.TEAM[0].id: Decimal("5"), self.TEAM[1].id: Decimal("15")}
        total = agent_rakeback(self.TEAM, "10", is_direct=True, player_rate=lambda p: rates[p.id])
        assert total == Decimal("350")

    def test_modes_diverge_on_same_input(self):
        rates = {self.TEAM[0].id: Decimal("5"), self.TEAM[1].id: Decimal("15")}
        pooled = agent_result(self.TEAM, "10")
        direct = agent_result(self.TEAM, "10", is_direct=True, player_rate=lambda p: rates[p.id])
        assert pooled.rb_total != direct.rb_total

    def test_direct_without_lookup_is_zero(self):
        assert agent_rakeback(self.TEAM, "10", is_direct=True) == 0


class TestAgentResult:
    def test_totals(self):
        team = [
            make_player(rake_total="100", winnings="-50"),
            make_player(rake_total="300", winnings="20"),
        ]
        result = agent_result(team, "10")
        assert result.rake_total == Decimal("400")
        assert result.winnings_total == Decimal("-30")
        assert result.rb_total == Decimal("40")
        assert result.resultado == Decimal("10")

    def test_direct_reports_zero_agent_rate(self):
        result = agent_result([make_player(rake_total="100")], "25", is_direct=True)
        assert result.rb_rate == 0

    def test_emits_engine_trace(self, captured_logs):
        agent_result([], "10")
        traces = [r for r in captured_logs() if r["message"] == "SETTLEMENT_ENGINE_TRACE"]
        assert traces[-1]["engine_name"] == "agent_result"
