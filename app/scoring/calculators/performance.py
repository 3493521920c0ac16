"""
Performance factor  (weight = 0.15)

PRs count more than benchmark results: 25 pts per PR (cap 100),
15 pts per benchmark (cap 50), total capped at 100.
"""
from __future__ import annotations

from app.schemas.risk_score import PerformanceFactors
from app.scoring.numeric import percent_change, round_half_up, round_score
from app.scoring.window import AnalysisWindow
from app.services.behavioral_store import BENCHMARKS, PRS, BehavioralStore

POINTS_PER_PR = 25
POINTS_PER_BENCHMARK = 15
BENCHMARK_SCORE_CAP = 50


def score_performance(
    pr_count: int,
    benchmark_count: int,
    previous_pr_count: int = 0,
    previous_benchmark_count: int = 0,
) -> PerformanceFactors:
    trend = percent_change(
        pr_count + benchmark_count,
        previous_pr_count + previous_benchmark_count,
    )

    pr_score = min(100, pr_count * POINTS_PER_PR)
    benchmark_score = min(BENCHMARK_SCORE_CAP, benchmark_count * POINTS_PER_BENCHMARK)

    return PerformanceFactors(
        score=min(100, round_score(pr_score + benchmark_score)),
        trend=round_half_up(trend, 2),
        pr_count=pr_count,
        benchmark_progress=benchmark_count,
    )


async def calculate(store: BehavioralStore, membership_id: str, window: AnalysisWindow) -> PerformanceFactors:
    pr_count = await store.count_where(PRS, membership_id, window.current)
    benchmark_count = await store.count_where(BENCHMARKS, membership_id, window.current)
    previous_pr_count = await store.count_where(PRS, membership_id, window.previous)
    previous_benchmark_count = await store.count_where(BENCHMARKS, membership_id, window.previous)

    return score_performance(pr_count, benchmark_count, previous_pr_count, previous_benchmark_count)
