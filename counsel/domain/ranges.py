"""
Interpretation range coverage checks.

A set of interpretation ranges for one subject (a scoring category or the
overall score) partitions the percentage axis into consecutive half-open
intervals ``(previous.max_percent, max_percent]``; the first interval is
closed at zero, ``[0, first.max_percent]``. Ranges are authored as a single
upper bound each and may be given in any order.
"""

from __future__ import annotations

from collections.abc import Sequence

from ..infrastructure.exceptions import InvalidRangeCoverageError
from .models import InterpretationBand, InterpretationRange

FULL_SCALE_PERCENT = 100


def _sorted_by_upper_bound(ranges: Sequence[InterpretationRange]) -> list[InterpretationRange]:
    return sorted(ranges, key=lambda r: r.max_percent)


def validate_ranges(ranges: Sequence[InterpretationRange], subject_label: str) -> None:
    """
    Verify that ``ranges`` form a gapless, non-overlapping partition of 0..100.

    Raises:
        InvalidRangeCoverageError: tagged with ``subject_label`` on the first
            violation found.

    Example:
        >>> validate_ranges([InterpretationRange(100, "All", "Whole scale")], "overall")
    """
    if not ranges:
        raise InvalidRangeCoverageError(subject_label, "At least one range is required")

    ordered = _sorted_by_upper_bound(ranges)

    if ordered[0].max_percent <= 0:
        raise InvalidRangeCoverageError(subject_label, "First range must have maxPercent > 0")

    if ordered[-1].max_percent != FULL_SCALE_PERCENT:
        raise InvalidRangeCoverageError(subject_label, "Last range must have maxPercent = 100")

    # Strict increase is enough: with half-open intervals a tie is the only
    # way two buckets can overlap or leave a hole.
    for prev, curr in zip(ordered, ordered[1:]):
        if curr.max_percent <= prev.max_percent:
            raise InvalidRangeCoverageError(
                subject_label, "Ranges must be in ascending order without overlaps"
            )


def to_bands(
    ranges: Sequence[InterpretationRange], subject_label: str = "overall"
) -> list[InterpretationBand]:
    """Validate ``ranges`` and return them with explicit lower bounds, lowest first."""
    validate_ranges(ranges, subject_label)

    bands: list[InterpretationBand] = []
    lower = 0.0
    for index, rng in enumerate(_sorted_by_upper_bound(ranges)):
        bands.append(
            InterpretationBand(
                min_percent=lower,
                max_percent=float(rng.max_percent),
                label=rng.label,
                description=rng.description,
                includes_min=index == 0,
            )
        )
        lower = float(rng.max_percent)
    return bands


def interpret_percent(
    ranges: Sequence[InterpretationRange], percent: float, subject_label: str = "overall"
) -> InterpretationBand:
    """
    Return the band whose interval contains ``percent``.

    Raises:
        ValueError: If ``percent`` lies outside 0..100.
        InvalidRangeCoverageError: If the ranges themselves are invalid.
    """
    if not (0 <= percent <= FULL_SCALE_PERCENT):
        raise ValueError(f"Percent must be between 0 and 100 inclusive, got {percent}")

    for band in to_bands(ranges, subject_label):
        if band.contains(percent):
            return band

    # Unreachable for a validated partition.
    raise ValueError(f"No interpretation range covers {percent}%")


def score_to_percent(score: float, max_score: float) -> float:
    """Express a raw score as a percentage of the maximum attainable score."""
    if max_score <= 0:
        raise ValueError("Maximum score must be positive")
    if score < 0 or score > max_score:
        raise ValueError(f"Score {score} is outside 0..{max_score}")
    return score / max_score * FULL_SCALE_PERCENT
