"""Qualitative readings of metric values.

Each metric is read through a MetricRule: an ordered list of threshold
bands, the first matching band wins. A missing value always reads as
neutral with threshold "N/A", and such readings are left out of the
category score.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

NOT_APPLICABLE = "N/A"

_LEVEL_POINTS = {"good": 100, "neutral": 50, "bad": 0}


class Level(Enum):
    """Qualitative level of a metric."""

    GOOD = "good"
    NEUTRAL = "neutral"
    BAD = "bad"

    @property
    def points(self) -> int:
        """Score contribution: good 100, neutral 50, bad 0."""
        return _LEVEL_POINTS[self.value]


@dataclass(frozen=True)
class Interpretation:
    """Reading of a single metric value."""

    level: Level
    message: str
    threshold: str


class Outlook(Enum):
    """Direction of an economy-wide indicator for the company."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class OutlookReading:
    """Reading of a macro or trade indicator."""

    value: float | None
    outlook: Outlook
    message: str


@dataclass(frozen=True)
class Band:
    """One threshold band of a rule.

    Attributes:
        test: Predicate on the metric value.
        level: Level assigned when the predicate holds.
        message: Reading shown to the user.
        threshold: Human-readable description of the band boundary.
    """

    test: Callable[[float], bool]
    level: Level
    message: str
    threshold: str


@dataclass(frozen=True)
class MetricRule:
    """Threshold bands for one metric, evaluated in order."""

    label: str
    bands: tuple[Band, ...]
    missing_message: str | None = None


def above(limit: float) -> Callable[[float], bool]:
    """Predicate: value >= limit."""
    return lambda v: v >= limit


def below(limit: float) -> Callable[[float], bool]:
    """Predicate: value < limit."""
    return lambda v: v < limit


def at_most(limit: float) -> Callable[[float], bool]:
    """Predicate: value <= limit."""
    return lambda v: v <= limit


def between(low: float, high: float) -> Callable[[float], bool]:
    """Predicate: low <= value <= high."""
    return lambda v: low <= v <= high


def always(_: float) -> bool:
    return True


def interpret(value: float | None, rule: MetricRule) -> Interpretation:
    """Read a value through its rule.

    Args:
        value: Metric value, None when it could not be computed.
        rule: Bands for the metric.

    Returns:
        Interpretation of the first band whose test accepts the value.
        A missing value, or one no band accepts, reads as neutral with
        threshold "N/A".
    """
    if value is None:
        message = rule.missing_message or f"Insufficient data to calculate {rule.label}"
        return Interpretation(Level.NEUTRAL, message, NOT_APPLICABLE)
    for band in rule.bands:
        if band.test(value):
            return Interpretation(band.level, band.message, band.threshold)
    return Interpretation(
        Level.NEUTRAL, f"{rule.label} outside the rated ranges", NOT_APPLICABLE
    )


def interpret_metrics(
    metrics: Any, rules: Mapping[str, MetricRule]
) -> dict[str, Interpretation]:
    """Read every ruled attribute of a metrics dataclass.

    Args:
        metrics: Category metrics instance.
        rules: Attribute name to rule.

    Returns:
        Attribute name to interpretation, in rule order.
    """
    return {
        name: interpret(getattr(metrics, name), rule)
        for name, rule in rules.items()
    }


def category_score(interpretations: Mapping[str, Interpretation]) -> int | None:
    """Mean of good=100, neutral=50, bad=0, rounded half up.

    Readings with threshold "N/A" are skipped.

    Returns:
        Score in [0, 100], or None if no reading qualifies.
    """
    points = [
        i.level.points
        for i in interpretations.values()
        if i.threshold != NOT_APPLICABLE
    ]
    if not points:
        return None
    # Half-up rounding, so 62.5 scores 63.
    return math.floor(sum(points) / len(points) + 0.5)
