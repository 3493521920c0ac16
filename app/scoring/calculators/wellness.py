"""
Wellness factor  (weight = 0.25)

Self-reported 1-10 scales averaged over the analysis window.
Every missing average falls back to the neutral midpoint 5, so a member
with no check-ins scores exactly 50 rather than best or worst case.

Trend tracks the energy/readiness composite only.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.schemas.risk_score import WellnessFactors
from app.scoring.numeric import round_half_up, round_score
from app.scoring.window import AnalysisWindow
from app.services.behavioral_store import WELLNESS, BehavioralStore

NEUTRAL_MIDPOINT = 5.0


@dataclass(frozen=True)
class WellnessAverages:
    energy: float = NEUTRAL_MIDPOINT
    readiness: float = NEUTRAL_MIDPOINT
    stress: float = NEUTRAL_MIDPOINT
    motivation: float = NEUTRAL_MIDPOINT


def _or_default(value: Optional[float], default: float) -> float:
    # 0 is outside the 1-10 scale and is treated as missing
    return float(value) if value else default


def score_wellness(
    current: WellnessAverages,
    previous_energy: Optional[float] = None,
    previous_readiness: Optional[float] = None,
) -> WellnessFactors:
    positive_score = (current.energy + current.readiness + current.motivation) / 30 * 100
    stress_impact = (10 - current.stress) / 10 * 100
    score = positive_score * 0.8 + stress_impact * 0.2

    prev_energy = _or_default(previous_energy, current.energy)
    prev_readiness = _or_default(previous_readiness, current.readiness)

    current_composite = (current.energy + current.readiness) / 2
    previous_composite = (prev_energy + prev_readiness) / 2
    if previous_composite == 0:
        trend = 0.0
    else:
        trend = (current_composite - previous_composite) / previous_composite * 100

    return WellnessFactors(
        score=round_score(score),
        trend=round_half_up(trend, 2),
        average_energy=round_half_up(current.energy, 2),
        average_readiness=round_half_up(current.readiness, 2),
    )


async def calculate(store: BehavioralStore, membership_id: str, window: AnalysisWindow) -> WellnessFactors:
    async def avg(column: str, date_range) -> Optional[float]:
        return await store.average_where(WELLNESS, membership_id, date_range, column)

    current = WellnessAverages(
        energy=_or_default(await avg("energy_level", window.current), NEUTRAL_MIDPOINT),
        readiness=_or_default(await avg("workout_readiness", window.current), NEUTRAL_MIDPOINT),
        stress=_or_default(await avg("stress_level", window.current), NEUTRAL_MIDPOINT),
        motivation=_or_default(await avg("motivation_level", window.current), NEUTRAL_MIDPOINT),
    )
    previous_energy = await avg("energy_level", window.previous)
    previous_readiness = await avg("workout_readiness", window.previous)

    return score_wellness(current, previous_energy, previous_readiness)
