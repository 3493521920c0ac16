"""
Prometheus collectors for the scoring pipeline. Exposed on /metrics.
"""
from prometheus_client import Counter, Histogram

RISK_SCORE_CALCULATIONS = Counter(
    "risk_score_calculations_total",
    "Single-membership risk score calculations",
    ["status"],
)

RISK_SCORE_DURATION = Histogram(
    "risk_score_calculation_seconds",
    "Wall time of one membership's full scoring pipeline",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

RISK_SCORE_BATCHES = Counter(
    "risk_score_batches_total",
    "Batch recalculations (box or explicit id list)",
    ["kind"],
)
