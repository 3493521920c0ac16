"""
Engagement factor  (weight = 0.25)

  40% check-in streak (3 pts/day) + 30% wellness check-ins (daily = ideal)
  + 30% WOD feedback (10 pts each)

The streak is a running counter kept on the membership row by the check-in flow.
"""
from __future__ import annotations

from app.schemas.risk_score import EngagementFactors
from app.scoring.numeric import percent_change, round_half_up, round_score
from app.scoring.window import ANALYSIS_PERIOD_DAYS, AnalysisWindow
from app.services.behavioral_store import FEEDBACK, WELLNESS, BehavioralStore, MembershipRecord


def score_engagement(
    checkin_streak: int,
    checkin_count: int,
    feedback_count: int,
    previous_checkin_count: int = 0,
    previous_feedback_count: int = 0,
) -> EngagementFactors:
    trend = percent_change(
        checkin_count + feedback_count,
        previous_checkin_count + previous_feedback_count,
    )

    streak_score = min(100, checkin_streak * 3)
    checkin_score = min(100.0, checkin_count / ANALYSIS_PERIOD_DAYS * 100 * 3)
    feedback_score = min(100, feedback_count * 10)
    score = streak_score * 0.4 + checkin_score * 0.3 + feedback_score * 0.3

    return EngagementFactors(
        score=round_score(score),
        trend=round_half_up(trend, 2),
        checkin_streak=checkin_streak,
        feedback_frequency=round_half_up(feedback_count / ANALYSIS_PERIOD_DAYS * 7, 2),
    )


async def calculate(
    store: BehavioralStore,
    membership: MembershipRecord,
    window: AnalysisWindow,
) -> EngagementFactors:
    checkins = await store.count_where(WELLNESS, membership.id, window.current)
    feedback = await store.count_where(FEEDBACK, membership.id, window.current)
    previous_checkins = await store.count_where(WELLNESS, membership.id, window.previous)
    previous_feedback = await store.count_where(FEEDBACK, membership.id, window.previous)

    return score_engagement(
        membership.checkin_streak or 0,
        checkins,
        feedback,
        previous_checkins,
        previous_feedback,
    )
