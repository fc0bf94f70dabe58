"""Tests for finmetrics.interpretation."""

from __future__ import annotations

from finmetrics.interpretation import (
    NOT_APPLICABLE,
    Band,
    Interpretation,
    Level,
    MetricRule,
    above,
    always,
    at_most,
    below,
    between,
    category_score,
    interpret,
    interpret_metrics,
)

_RULE = MetricRule("test ratio", (
    Band(above(2.0), Level.GOOD, "high", ">= 2.0"),
    Band(above(1.0), Level.NEUTRAL, "middle", "1.0 - 2.0"),
    Band(always, Level.BAD, "low", "< 1.0"),
))


def _reading(level: Level, threshold: str = "x") -> Interpretation:
    return Interpretation(level, "", threshold)


class TestPredicates:

    def test_above_is_inclusive(self) -> None:
        assert above(1.0)(1.0)
        assert not above(1.0)(0.99)

    def test_below_is_exclusive(self) -> None:
        assert below(1.0)(0.99)
        assert not below(1.0)(1.0)

    def test_at_most(self) -> None:
        assert at_most(1.0)(1.0)
        assert not at_most(1.0)(1.01)

    def test_between_is_inclusive(self) -> None:
        check = between(1.0, 2.0)
        assert check(1.0) and check(2.0) and check(1.5)
        assert not check(2.01)


class TestInterpret:

    def test_first_matching_band_wins(self) -> None:
        result = interpret(2.5, _RULE)
        assert result.level is Level.GOOD
        assert result.threshold == ">= 2.0"

    def test_boundary_goes_to_higher_band(self) -> None:
        assert interpret(2.0, _RULE).level is Level.GOOD
        assert interpret(1.0, _RULE).level is Level.NEUTRAL

    def test_fallback_band(self) -> None:
        assert interpret(0.2, _RULE).level is Level.BAD

    def test_missing_value_is_neutral(self) -> None:
        result = interpret(None, _RULE)
        assert result.level is Level.NEUTRAL
        assert result.threshold == NOT_APPLICABLE
        assert "test ratio" in result.message

    def test_missing_message_override(self) -> None:
        rule = MetricRule("x", _RULE.bands, missing_message="No inventory")
        assert interpret(None, rule).message == "No inventory"

    def test_unmatched_value_is_neutral(self) -> None:
        rule = MetricRule("x", (Band(above(5.0), Level.GOOD, "big", ">= 5"),))
        result = interpret(1.0, rule)
        assert result.level is Level.NEUTRAL
        assert result.threshold == NOT_APPLICABLE


class TestInterpretMetrics:

    def test_reads_attributes_in_rule_order(self) -> None:
        class Metrics:
            a = 3.0
            b = None

        readings = interpret_metrics(Metrics(), {"a": _RULE, "b": _RULE})
        assert list(readings) == ["a", "b"]
        assert readings["a"].level is Level.GOOD
        assert readings["b"].threshold == NOT_APPLICABLE


class TestCategoryScore:

    def test_points(self) -> None:
        assert Level.GOOD.points == 100
        assert Level.NEUTRAL.points == 50
        assert Level.BAD.points == 0

    def test_mean_of_points(self) -> None:
        readings = {
            "a": _reading(Level.GOOD),
            "b": _reading(Level.BAD),
            "c": _reading(Level.NEUTRAL),
        }
        assert category_score(readings) == 50

    def test_rounds_half_up(self) -> None:
        readings = {
            "a": _reading(Level.GOOD),
            "b": _reading(Level.GOOD),
            "c": _reading(Level.NEUTRAL),
            "d": _reading(Level.BAD),
        }
        # (100 + 100 + 50 + 0) / 4 = 62.5
        assert category_score(readings) == 63

    def test_skips_not_applicable(self) -> None:
        readings = {
            "a": _reading(Level.GOOD),
            "b": _reading(Level.NEUTRAL, NOT_APPLICABLE),
        }
        assert category_score(readings) == 100

    def test_no_rated_readings(self) -> None:
        assert category_score({}) is None
        assert category_score({"a": _reading(Level.NEUTRAL, NOT_APPLICABLE)}) is None
