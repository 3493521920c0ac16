"""
End-to-end pipeline tests against the in-memory store.
"""
import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.errors import NotFoundError, StoreError
from app.schemas.risk_score import RiskLevel
from app.scoring.engine import calculate_churn_probability
from app.services.behavioral_store import BENCHMARKS, FEEDBACK, PRS, RISK_SCORES, WELLNESS
from app.services.risk_score_service import RiskScoreService
from conftest import NOW


def _service(store, publisher=None) -> RiskScoreService:
    return RiskScoreService(store, clock=lambda: NOW, publish=publisher)


def _run(coro):
    return asyncio.run(coro)


def _days_ago(n: int) -> datetime:
    return NOW - timedelta(days=n)


class TestSingleMembership:

    def test_no_history_gets_complete_default_snapshot(self, store):
        store.add_membership("m-empty")
        snap = _run(_service(store).calculate_risk_score("m-empty"))

        assert snap.factors.attendance.days_gap == 999
        assert snap.attendance_score == 0
        assert snap.wellness_score == 50
        assert snap.factors.wellness.average_energy == 5.0
        assert snap.performance_score == 0
        assert snap.engagement_score == 0
        assert (snap.attendance_trend, snap.performance_trend,
                snap.engagement_trend, snap.wellness_trend) == (0, 0, 0, 0)
        assert snap.days_since_last_visit is None
        assert snap.days_since_last_checkin is None
        assert snap.days_since_last_pr is None
        assert snap.overall_risk_score == 13
        assert snap.risk_level == RiskLevel.CRITICAL
        assert snap.churn_probability == calculate_churn_probability(13)

    def test_active_athlete(self, store):
        store.add_membership("m-1", checkin_streak=10)
        for d in (date(2026, 10, 17), date(2026, 10, 15), date(2026, 10, 12), date(2026, 10, 9),
                  date(2026, 10, 5), date(2026, 10, 1), date(2026, 9, 25), date(2026, 9, 21)):
            store.attend("m-1", d)
        store.attend("m-1", date(2026, 10, 18), status="no_show")
        for d in (date(2026, 9, 10), date(2026, 9, 1), date(2026, 8, 25), date(2026, 8, 22)):
            store.attend("m-1", d)
        for n in (3, 10, 20):
            store.add(PRS, "m-1", _days_ago(n))
        store.add(BENCHMARKS, "m-1", _days_ago(5))
        for n in range(1, 16):
            store.add(WELLNESS, "m-1", _days_ago(n), energy_level=8, workout_readiness=6,
                      stress_level=3, motivation_level=7)
        for n in range(35, 45):
            store.add(WELLNESS, "m-1", _days_ago(n), energy_level=6, workout_readiness=6,
                      stress_level=5, motivation_level=5)
        for n in (2, 6, 9, 13, 16):
            store.add(FEEDBACK, "m-1", _days_ago(n))

        snap = _run(_service(store).calculate_risk_score("m-1"))

        assert snap.factors.attendance.days_gap == 2
        assert snap.factors.attendance.frequency == 1.87
        assert snap.attendance_score == 60
        assert snap.attendance_trend == 100.0
        assert snap.performance_score == 90
        assert snap.engagement_score == 57
        # 15+5 now vs 10+0 before
        assert snap.engagement_trend == 100.0
        assert snap.wellness_score == 70
        assert snap.wellness_trend == 16.67
        # 60*0.35 + 57*0.25 + 70*0.25 + 90*0.15 = 66.25
        assert snap.overall_risk_score == 66
        assert snap.risk_level == RiskLevel.MEDIUM
        assert snap.days_since_last_visit == 2
        assert snap.days_since_last_checkin == 1
        assert snap.days_since_last_pr == 3

    def test_unknown_membership_raises_not_found(self, store):
        with pytest.raises(NotFoundError):
            _run(_service(store).calculate_risk_score("nope"))
        assert store.upsert_calls == 0

    def test_store_error_propagates(self, store):
        store.add_membership("m-broken")
        store.failing.add("m-broken")
        with pytest.raises(StoreError):
            _run(_service(store).calculate_risk_score("m-broken"))
        assert store.upsert_calls == 0

    def test_valid_for_24_hours(self, store):
        store.add_membership("m-1")
        snap = _run(_service(store).calculate_risk_score("m-1"))
        assert snap.calculated_at == NOW
        assert snap.valid_until == NOW + timedelta(hours=24)
        assert store.tables[RISK_SCORES]["m-1"]["valid_until"] == NOW + timedelta(hours=24)

    def test_event_published_after_persist(self, store, publisher):
        store.add_membership("m-1")
        _run(_service(store, publisher).calculate_risk_score("m-1"))
        assert [s.membership_id for s in publisher.events] == ["m-1"]

    def test_no_event_on_failure(self, store, publisher):
        with pytest.raises(NotFoundError):
            _run(_service(store, publisher).calculate_risk_score("ghost"))
        assert publisher.events == []


class TestUpsert:

    def test_recalculation_keeps_one_row(self, store):
        store.add_membership("m-1")
        service = _service(store)
        _run(service.calculate_risk_score("m-1"))
        _run(service.calculate_risk_score("m-1"))
        assert store.upsert_calls == 2
        assert list(store.tables[RISK_SCORES]) == ["m-1"]

    def test_recalculation_is_idempotent(self, store):
        store.add_membership("m-1", checkin_streak=4)
        store.attend("m-1", date(2026, 10, 14))
        store.add(PRS, "m-1", _days_ago(8))
        service = _service(store)

        _run(service.calculate_risk_score("m-1"))
        first = dict(store.tables[RISK_SCORES]["m-1"])
        _run(service.calculate_risk_score("m-1"))
        second = store.tables[RISK_SCORES]["m-1"]

        volatile = {"calculated_at", "updated_at", "valid_until"}
        assert {k: v for k, v in first.items() if k not in volatile} == \
               {k: v for k, v in second.items() if k not in volatile}

    def test_persisted_factors_use_camel_case(self, store):
        store.add_membership("m-1")
        _run(_service(store).calculate_risk_score("m-1"))
        factors = store.tables[RISK_SCORES]["m-1"]["factors"]
        assert factors["attendance"]["daysGap"] == 999
        assert "benchmarkProgress" in factors["performance"]
        assert "feedbackFrequency" in factors["engagement"]
        assert "averageReadiness" in factors["wellness"]


class TestBoxBatch:

    def test_failures_do_not_stop_the_batch(self, store):
        for mid in ("a", "b", "c", "d"):
            store.add_membership(mid)
        store.failing.add("b")

        result = _run(_service(store).calculate_box_risk_scores("box-1"))

        assert result.total == 4
        assert result.successful == 3
        assert result.failed == 1
        assert [o.membership_id for o in result.outcomes] == ["a", "b", "c", "d"]
        assert result.errors[0].membership_id == "b"
        assert "connection reset" in result.errors[0].error
        assert set(store.tables[RISK_SCORES]) == {"a", "c", "d"}

    def test_only_active_athletes(self, store):
        store.add_membership("athlete")
        store.add_membership("coach", role="coach")
        store.add_membership("lapsed", is_active=False)
        store.add_membership("elsewhere", box_id="box-2")

        result = _run(_service(store).calculate_box_risk_scores("box-1"))

        assert result.total == 1
        assert result.outcomes[0].membership_id == "athlete"
        assert result.outcomes[0].risk_level == RiskLevel.CRITICAL

    def test_empty_box_is_noop_success(self, store):
        result = _run(_service(store).calculate_box_risk_scores("box-empty"))
        assert result.total == 0
        assert result.successful == 0
        assert result.failed == 0
        assert result.error is None
        assert result.completed_at is not None

    def test_listing_failure_is_reported_not_raised(self, store):
        store.listing_fails = True
        result = _run(_service(store).calculate_box_risk_scores("box-1"))
        assert result.error is not None
        assert result.total == 0

    def test_unexpected_listing_error_is_reported_not_raised(self, store):
        async def broken_listing(box_id, role):
            raise RuntimeError("boom")

        store.find_active_memberships_by_role = broken_listing
        result = _run(_service(store).calculate_box_risk_scores("box-1"))
        assert result.error == "boom"
        assert result.total == 0
        assert result.completed_at is not None

    def test_memberships_processed_one_at_a_time(self, store):
        for mid in ("a", "b", "c"):
            store.add_membership(mid)
        _run(_service(store).calculate_box_risk_scores("box-1"))

        # every read for a membership finishes before the next one starts
        order = [mid for i, mid in enumerate(store.read_log) if i == 0 or store.read_log[i - 1] != mid]
        assert order == ["a", "b", "c"]


class TestExplicitBatch:

    def test_unknown_ids_counted_as_failures(self, store):
        store.add_membership("a")
        result = _run(_service(store).calculate_many(["a", "missing"]))
        assert result.successful == 1
        assert result.failed == 1
        assert "not found" in result.errors[0].error
