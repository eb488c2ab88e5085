"""
Tests for settlement_batch.stores.sql -- SqlSettlementStore.

Validates reads, the conditional writes (rowcount decides success) and a
full propagation run over SQLite.  Runs with one worker because the
StaticPool shares a single SQLite connection.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from settlement_batch import SettlementStore
from settlement_batch.domain.types import SyncPhase, SyncStatus
from settlement_batch.services.propagator import RateSyncPropagator
from settlement_batch.stores.memory import InMemorySettlementStore
from settlement_batch.stores.sql import SqlSettlementStore
from settlement_config.schema import SyncSettings
from settlement_kernel.domain.entities import OrganizationKind, SettlementStatus
from settlement_kernel.models.metrics import AgentWeekMetricModel, PlayerWeekMetricModel
from settlement_kernel.models.rates import AgentRateModel, PlayerRateModel
from settlement_kernel.models.settlement import OrganizationModel, SettlementModel
from tests.builders import CLUB_ID, WEEK

SETTLEMENT_ID = "s-1"


@pytest.fixture
def store(session_factory):
    with session_factory() as session, session.begin():
        session.add_all([
            SettlementModel(id=SETTLEMENT_ID, club_id=CLUB_ID, week_start=WEEK),
            OrganizationModel(id="sub-imp", name="IMPERIO", kind="SUBCLUB", parent_id=CLUB_ID),
            OrganizationModel(id="org-joao", name="João", kind="AGENT", parent_id="sub-imp"),
            OrganizationModel(
                id="org-old", name="Retired", kind="AGENT", parent_id="sub-imp", is_active=False,
            ),
            AgentWeekMetricModel(
                id="am-joao", settlement_id=SETTLEMENT_ID, agent_name="joao",
                subclub_name="IMPERIO", rake_total=Decimal("200"), winnings_total=Decimal("-50"),
            ),
            AgentWeekMetricModel(
                id="am-new", settlement_id=SETTLEMENT_ID, agent_name="Newcomer",
                subclub_name="IMPERIO",
            ),
            PlayerWeekMetricModel(
                id="pm-1", settlement_id=SETTLEMENT_ID, external_player_id="100",
                player_id="pl-1", agent_name="João", subclub_name="IMPERIO",
                rake_total=Decimal("200"), winnings=Decimal("-50"),
            ),
            AgentRateModel(agent_id="org-joao", rate=Decimal("5"),
                           effective_from=date(2024, 1, 1), effective_to=date(2024, 12, 31)),
            AgentRateModel(agent_id="org-joao", rate=Decimal("10"), effective_from=date(2025, 1, 1)),
            PlayerRateModel(player_id="pl-1", rate=Decimal("12.5"), effective_from=date(2025, 1, 1)),
        ])
    return SqlSettlementStore(session_factory)


class TestProtocol:
    def test_both_stores_satisfy_protocol(self, session_factory):
        assert isinstance(SqlSettlementStore(session_factory), SettlementStore)
        assert isinstance(InMemorySettlementStore(), SettlementStore)


class TestReads:
    def test_settlement_dto(self, store):
        settlement = store.get_settlement(SETTLEMENT_ID)
        assert settlement.status == SettlementStatus.DRAFT
        assert settlement.is_mutable
        assert store.get_settlement("missing") is None

    def test_inactive_organizations_excluded(self, store):
        ids = {org.id for org in store.list_organizations(OrganizationKind.AGENT)}
        assert ids == {"org-joao"}

    def test_agent_rows_ordered_by_name_then_subclub(self, store, session_factory):
        with session_factory() as session, session.begin():
            session.add_all([
                AgentWeekMetricModel(
                    id="am-z1", settlement_id=SETTLEMENT_ID, agent_name="Zed", subclub_name="TGP",
                ),
                AgentWeekMetricModel(
                    id="am-z2", settlement_id=SETTLEMENT_ID, agent_name="Zed", subclub_name="IMPERIO",
                ),
            ])

        zed = [m for m in store.list_agent_metrics(SETTLEMENT_ID) if m.agent_name == "Zed"]
        assert [m.subclub_name for m in zed] == ["IMPERIO", "TGP"]

    def test_only_open_rates_are_current(self, store):
        assert store.current_agent_rates() == {"org-joao": Decimal("10")}
        assert store.current_player_rates(["pl-1", "pl-x"]) == {"pl-1": Decimal("12.5")}
        assert store.current_player_rates([]) == {}


class TestConditionalWrites:
    def test_create_agent_dedupes_by_normalized_name(self, store):
        org, created = store.create_agent("JOAO", "sub-imp")
        assert (org.id, created) == ("org-joao", False)

        org, created = store.create_agent("Newcomer", "sub-imp")
        assert created is True
        assert org.parent_id == "sub-imp"

    def test_reparent_requires_expected_parent(self, store, session_factory):
        assert store.reparent_organization("org-joao", CLUB_ID, "sub-x") is False
        assert store.reparent_organization("org-joao", "sub-imp", "sub-x") is True
        with session_factory() as session:
            assert session.get(OrganizationModel, "org-joao").parent_id == "sub-x"

    def test_link_fills_only_null_fields(self, store, session_factory):
        assert store.link_agent_metric("am-joao", "org-joao", None) is True
        # agent already linked, subclub still open
        assert store.link_agent_metric("am-joao", "org-other", "sub-imp") is True
        assert store.link_agent_metric("am-joao", "org-other", "sub-other") is False

        with session_factory() as session:
            row = session.get(AgentWeekMetricModel, "am-joao")
            assert (row.agent_id, row.subclub_id) == ("org-joao", "sub-imp")

    def test_rate_update_is_conditional(self, store):
        args = (Decimal("10"), Decimal("20.00"), Decimal("-30.00"))
        assert store.update_agent_metric_rate("am-joao", Decimal("3"), *args) is False
        assert store.update_agent_metric_rate("am-joao", Decimal("0"), *args) is True
        assert store.update_agent_metric_rate("am-joao", Decimal("0"), *args) is False
        assert store.update_player_metric_rate("missing", Decimal("0"), *args) is False

    def test_commission_update_is_conditional(self, store, session_factory):
        args = (Decimal("40.00"), Decimal("-10.00"))
        assert store.update_agent_metric_commission("am-joao", Decimal("5"), *args) is False
        assert store.update_agent_metric_commission("am-joao", Decimal("0"), *args) is True

        with session_factory() as session:
            row = session.get(AgentWeekMetricModel, "am-joao")
            assert (row.rb_rate, row.commission, row.resultado) == (0, Decimal("40.00"), Decimal("-10.00"))

    @pytest.mark.parametrize("status", [SettlementStatus.FINAL, SettlementStatus.VOID])
    def test_metric_writes_refused_once_settlement_closed(self, store, session_factory, status):
        with session_factory() as session, session.begin():
            session.get(SettlementModel, SETTLEMENT_ID).status = status.value

        assert store.link_agent_metric("am-joao", "org-joao", "sub-imp") is False
        assert store.link_player_metric("pm-1", "org-joao", "sub-imp") is False
        rate_args = (Decimal("10"), Decimal("20.00"), Decimal("-30.00"))
        assert store.update_agent_metric_rate("am-joao", Decimal("0"), *rate_args) is False
        assert store.update_player_metric_rate("pm-1", Decimal("0"), *rate_args) is False
        assert store.update_agent_metric_commission(
            "am-joao", Decimal("0"), Decimal("1.00"), Decimal("1.00"),
        ) is False

        with session_factory() as session:
            row = session.get(AgentWeekMetricModel, "am-joao")
            assert (row.agent_id, row.rb_rate, row.commission) == (None, 0, 0)


class TestPropagationOverSql:
    def test_full_run_and_rerun(self, store, session_factory, clock):
        propagator = RateSyncPropagator(store, SyncSettings(max_workers=1, batch_size=5), clock)

        result = propagator.run(SETTLEMENT_ID)

        assert result.status == SyncStatus.COMPLETED
        assert result.phase(SyncPhase.RESOLVE_AGENTS).succeeded == 1
        assert result.agents_updated == 1
        assert result.players_updated == 1

        with session_factory() as session:
            agent = session.get(AgentWeekMetricModel, "am-joao")
            assert agent.agent_id == "org-joao"
            assert agent.commission == Decimal("20.00")
            assert agent.resultado == Decimal("-30.00")

            player = session.get(PlayerWeekMetricModel, "pm-1")
            assert player.rb_rate == Decimal("12.5")
            assert player.rb_value == Decimal("25.00")
            assert player.resultado == Decimal("-25.00")

            newcomer = session.scalars(
                select(OrganizationModel).where(OrganizationModel.name == "Newcomer")
            ).one()
            assert newcomer.parent_id == "sub-imp"

        assert propagator.run(SETTLEMENT_ID).writes == 0

    def test_direct_agent_recomputed_from_players(self, store, session_factory, clock):
        with session_factory() as session, session.begin():
            session.add_all([
                AgentWeekMetricModel(
                    id="am-direct", settlement_id=SETTLEMENT_ID, agent_name="Direto",
                    subclub_name="IMPERIO", rake_total=Decimal("3000"),
                    winnings_total=Decimal("-400"), is_direct=True,
                ),
                PlayerWeekMetricModel(
                    id="pm-d1", settlement_id=SETTLEMENT_ID, external_player_id="201",
                    player_id="pl-d1", agent_name="Direto", subclub_name="IMPERIO",
                    rake_total=Decimal("1000"), winnings=Decimal("-100"),
                ),
                PlayerWeekMetricModel(
                    id="pm-d2", settlement_id=SETTLEMENT_ID, external_player_id="202",
                    player_id="pl-d2", agent_name="Direto", subclub_name="IMPERIO",
                    rake_total=Decimal("2000"), winnings=Decimal("-300"),
                ),
                PlayerRateModel(player_id="pl-d1", rate=Decimal("5"), effective_from=date(2025, 1, 1)),
                PlayerRateModel(player_id="pl-d2", rate=Decimal("15"), effective_from=date(2025, 1, 1)),
            ])
        propagator = RateSyncPropagator(store, SyncSettings(max_workers=1, batch_size=5), clock)

        result = propagator.run(SETTLEMENT_ID)

        assert result.phase(SyncPhase.DIRECT_AGENTS).succeeded == 1
        with session_factory() as session:
            agent = session.get(AgentWeekMetricModel, "am-direct")
            assert agent.commission == Decimal("350.00")
            assert agent.resultado == Decimal("-50.00")
        assert propagator.run(SETTLEMENT_ID).writes == 0

    def test_final_settlement_untouched(self, store, session_factory, clock):
        with session_factory() as session, session.begin():
            session.get(SettlementModel, SETTLEMENT_ID).status = SettlementStatus.FINAL.value

        result = RateSyncPropagator(store, SyncSettings(max_workers=1), clock).run(SETTLEMENT_ID)

        assert result.status == SyncStatus.NOT_DRAFT
        with session_factory() as session:
            assert session.get(AgentWeekMetricModel, "am-joao").agent_id is None
