"""
Attendance factor  (weight = 0.35)

  score = 70% frequency (4 sessions/week = 100) + 30% recency (-5 pts per day absent)
"""
from __future__ import annotations

from app.schemas.risk_score import AttendanceFactors
from app.scoring.numeric import percent_change, round_half_up, round_score, whole_days_between
from app.scoring.window import ANALYSIS_PERIOD_DAYS, AnalysisWindow
from app.services.behavioral_store import ATTENDANCE, BehavioralStore

# Reported when the member has not attended anything in the analysis window
NO_ATTENDANCE_GAP_DAYS = 999

IDEAL_SESSIONS_PER_WEEK = 4
RECENCY_PENALTY_PER_DAY = 5

_ATTENDED = {"status": "attended"}


def score_attendance(current_count: int, previous_count: int, days_gap: int) -> AttendanceFactors:
    frequency = current_count / ANALYSIS_PERIOD_DAYS * 7
    trend = percent_change(current_count, previous_count)

    frequency_score = min(100.0, frequency / IDEAL_SESSIONS_PER_WEEK * 100)
    recency_score = max(0, 100 - days_gap * RECENCY_PENALTY_PER_DAY)
    score = frequency_score * 0.7 + recency_score * 0.3

    return AttendanceFactors(
        score=round_score(score),
        trend=round_half_up(trend, 2),
        days_gap=days_gap,
        frequency=round_half_up(frequency, 2),
    )


async def calculate(store: BehavioralStore, membership_id: str, window: AnalysisWindow) -> AttendanceFactors:
    current_count = await store.count_where(ATTENDANCE, membership_id, window.current, _ATTENDED)
    last_attendance = await store.max_date_where(ATTENDANCE, membership_id, window.current, _ATTENDED)
    previous_count = await store.count_where(ATTENDANCE, membership_id, window.previous, _ATTENDED)

    if last_attendance is None:
        days_gap = NO_ATTENDANCE_GAP_DAYS
    else:
        days_gap = whole_days_between(window.now, last_attendance)

    return score_attendance(current_count, previous_count, days_gap)
