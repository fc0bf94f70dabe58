"""CLI entry point for the financial metrics engine."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from finmetrics.calculator import FinancialMetrics, calculate_all_metrics
from finmetrics.config import DCFConfig, EngineConfig
from finmetrics.data import SnapshotError, load_snapshot
from finmetrics.scoring import interpret_score

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog="finmetrics",
        description="Financial metrics, valuation and risk engine",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    calc_parser = subparsers.add_parser(
        "calculate", help="Calculate all metrics for a JSON snapshot"
    )
    calc_parser.add_argument(
        "snapshot",
        type=Path,
        help="Path to the company snapshot JSON document",
    )
    calc_parser.add_argument(
        "--market-risk-premium",
        type=float,
        default=None,
        help="Equity risk premium for CAPM (default: 0.055)",
    )
    calc_parser.add_argument(
        "--terminal-growth",
        type=float,
        default=None,
        help="DCF terminal growth rate (default: 0.025)",
    )
    calc_parser.add_argument(
        "--projection-years",
        type=int,
        default=None,
        help="DCF projection horizon in years (default: 5)",
    )
    calc_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> EngineConfig:
    """Apply CLI overrides on top of the default DCF assumptions."""
    defaults = DCFConfig()
    dcf = DCFConfig(
        market_risk_premium=(
            args.market_risk_premium
            if args.market_risk_premium is not None
            else defaults.market_risk_premium
        ),
        terminal_growth_rate=(
            args.terminal_growth
            if args.terminal_growth is not None
            else defaults.terminal_growth_rate
        ),
        projection_years=(
            args.projection_years
            if args.projection_years is not None
            else defaults.projection_years
        ),
    )
    return EngineConfig(dcf=dcf)


def _fmt(value: float | None, format_spec: str = ".1f") -> str:
    return "n/a" if value is None else format(value, format_spec)


def _log_summary(metrics: FinancialMetrics) -> None:
    """Log the headline scores, valuation and risk profile."""
    scores = metrics.scores
    logger.info(
        "%s (as of %s): total score %s (%s)",
        metrics.symbol or "?",
        metrics.as_of or "unknown",
        _fmt(scores.total),
        interpret_score(scores.total),
    )
    logger.info(
        "Scores: profitability %s, growth %s, valuation %s, risk %s, health %s",
        _fmt(scores.profitability),
        _fmt(scores.growth),
        _fmt(scores.valuation),
        _fmt(scores.risk),
        _fmt(scores.health),
    )
    for category, score in metrics.category_scores.items():
        logger.info("  %-14s %s", category, "n/a" if score is None else score)

    dcf = metrics.dcf
    logger.info(
        "DCF: WACC %s, intrinsic value %s, margin of safety %s (%s)",
        _fmt(dcf.wacc, ".2%"),
        _fmt(dcf.intrinsic_value, ".2f"),
        _fmt(dcf.margin_of_safety, ".1%"),
        metrics.dcf_interpretation.valuation,
    )
    logger.info(
        "Risk: %s (score %s), beta %s, volatility %s",
        metrics.risk_interpretation.level,
        _fmt(metrics.risk_interpretation.score),
        _fmt(metrics.risk.beta, ".2f"),
        _fmt(metrics.risk.annualized_volatility, ".1%"),
    )


def run_calculate(args: argparse.Namespace) -> None:
    """Execute the calculate command.

    Args:
        args: Parsed CLI arguments.
    """
    try:
        config = _build_config(args)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(1)

    try:
        snapshot = load_snapshot(args.snapshot)
    except (SnapshotError, OSError) as exc:
        logger.error("Cannot read snapshot %s: %s", args.snapshot, exc)
        sys.exit(1)

    logger.info("Loaded snapshot for %s from %s", snapshot.symbol or "?", args.snapshot)
    metrics = calculate_all_metrics(snapshot, config)
    _log_summary(metrics)


def main(argv: list[str] | None = None) -> None:
    """Main entry point.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).
    """
    args = _parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command == "calculate":
        run_calculate(args)
    else:
        logger.error("Unknown command: %s", args.command)
        sys.exit(1)


if __name__ == "__main__":
    main()
