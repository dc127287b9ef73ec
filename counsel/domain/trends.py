"""
Direction of clinical score series.

Lower scores are better outcomes on the tracked instruments (PHQ-9 and GAD-7
style scales), so a falling least-squares line means the member is improving.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .aggregation import day_key
from .models import AssessmentTrend, ChartPoint, TimedScore, Trend

IMPROVING_SLOPE = -0.5
DECLINING_SLOPE = 0.5


def least_squares_slope(scores: Sequence[float]) -> float:
    """
    Slope of the ordinary least-squares line through ``(index, score)``.

    Requires at least two scores; the x values ``0..n-1`` are distinct, so the
    denominator is never zero.
    """
    n = len(scores)
    if n < 2:
        raise ValueError("At least two scores are required to fit a slope")

    sum_x = n * (n - 1) / 2
    sum_x2 = (n - 1) * n * (2 * n - 1) / 6
    sum_y = sum(scores)
    sum_xy = sum(x * y for x, y in enumerate(scores))

    return (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)


def classify_trend(scores: Sequence[float]) -> Trend:
    """
    Classify a chronological (oldest first) score series.

    Example:
        >>> classify_trend([10, 8, 6, 4, 2])
        <Trend.IMPROVING: 'improving'>
        >>> classify_trend([7])
        <Trend.INSUFFICIENT_DATA: 'insufficient_data'>
    """
    if len(scores) < 2:
        return Trend.INSUFFICIENT_DATA

    slope = least_squares_slope(scores)
    if slope < IMPROVING_SLOPE:
        return Trend.IMPROVING
    if slope > DECLINING_SLOPE:
        return Trend.DECLINING
    return Trend.STABLE


def build_assessment_trend(assessment_type: str, points: Iterable[TimedScore]) -> AssessmentTrend:
    """One chart point per completed assessment, plus latest score and trend."""
    ordered = sorted(points, key=lambda p: p.timestamp)
    scores = [p.value for p in ordered]

    return AssessmentTrend(
        assessment_type=assessment_type,
        data=tuple(ChartPoint(date=day_key(p.timestamp), value=p.value) for p in ordered),
        current_score=scores[-1] if scores else None,
        trend=classify_trend(scores),
    )
