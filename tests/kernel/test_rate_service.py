"""Tests for settlement_kernel.services.rate_service."""

from datetime import date
from decimal import Decimal

from sqlalchemy import select

from settlement_kernel.models.rates import AgentRateModel
from settlement_kernel.services.rate_service import RateService


class TestRateService:
    def test_first_rate_is_open(self, session):
        service = RateService(session)
        record = service.set_agent_rate("agent-1", "10", date(2025, 1, 1))
        assert record.is_current
        assert service.agent_history("agent-1").current().rate == Decimal("10")

    def test_supersede_keeps_one_open_row(self, session):
        service = RateService(session)
        service.set_agent_rate("agent-1", "10", date(2025, 1, 1))
        service.set_agent_rate("agent-1", "12.5", date(2025, 2, 1))

        rows = session.scalars(
            select(AgentRateModel).order_by(AgentRateModel.effective_from)
        ).all()
        assert len(rows) == 2
        assert rows[0].effective_to == date(2025, 1, 31)
        assert rows[1].effective_to is None
        assert sum(1 for r in rows if r.effective_to is None) == 1

    def test_history_rate_on(self, session):
        service = RateService(session)
        service.set_player_rate("player-1", "5", date(2025, 1, 1))
        service.set_player_rate("player-1", "7", date(2025, 3, 1))

        history = service.player_history("player-1")
        assert history.rate_on(date(2025, 2, 10)) == Decimal("5")
        assert history.rate_on(date(2025, 3, 10)) == Decimal("7")

    def test_logs_supersession(self, session, captured_logs):
        service = RateService(session)
        service.set_agent_rate("agent-1", "10", date(2025, 1, 1))
        service.set_agent_rate("agent-1", "11", date(2025, 2, 1))
        events = [r for r in captured_logs() if r["message"] == "rate_superseded"]
        assert Decimal(events[-1]["previous_rate"]) == Decimal("10")
