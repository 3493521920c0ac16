"""
The two adjacent windows every factor compares:

  comparison_start ── previous ──> analysis_start ── current ──> now
       (now - 60d)                    (now - 30d)
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from app.services.behavioral_store import DateRange

ANALYSIS_PERIOD_DAYS = 30
COMPARISON_PERIOD_DAYS = 30


@dataclass(frozen=True)
class AnalysisWindow:
    now: datetime
    analysis_start: datetime
    comparison_start: datetime

    @classmethod
    def ending_at(cls, now: datetime) -> "AnalysisWindow":
        analysis_start = now - timedelta(days=ANALYSIS_PERIOD_DAYS)
        return cls(
            now=now,
            analysis_start=analysis_start,
            comparison_start=analysis_start - timedelta(days=COMPARISON_PERIOD_DAYS),
        )

    @property
    def current(self) -> DateRange:
        return DateRange(self.analysis_start, self.now)

    @property
    def previous(self) -> DateRange:
        return DateRange(self.comparison_start, self.analysis_start)
