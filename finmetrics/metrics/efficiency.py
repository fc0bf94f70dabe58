"""Efficiency metrics: how hard the asset base and working capital work."""

from __future__ import annotations

from dataclasses import dataclass

from finmetrics.data.models import FinancialSnapshot
from finmetrics.interpretation import (
    Band,
    Interpretation,
    Level,
    MetricRule,
    above,
    always,
    below,
    between,
    interpret_metrics,
)
from finmetrics.kernel import safe_divide, safe_subtract


@dataclass(frozen=True)
class EfficiencyMetrics:
    """Turnover ratios (times per year)."""

    asset_turnover: float | None = None
    fixed_asset_turnover: float | None = None
    inventory_turnover: float | None = None
    receivables_turnover: float | None = None
    payables_turnover: float | None = None
    working_capital_turnover: float | None = None


def _positive(value: float | None) -> float | None:
    return value if value is not None and value > 0 else None


def compute_efficiency(snapshot: FinancialSnapshot) -> EfficiencyMetrics:
    """Compute turnover ratios.

    Fixed assets are approximated as total assets less current assets.
    Fixed-asset and working-capital turnover are None unless their base
    is positive; inventory, receivables and payables turnover are None
    when the balance is zero or missing.
    """
    s = snapshot
    cogs = s.cost_of_revenue or None
    return EfficiencyMetrics(
        asset_turnover=safe_divide(s.revenue, s.total_assets),
        fixed_asset_turnover=safe_divide(
            s.revenue, _positive(safe_subtract(s.total_assets, s.current_assets))
        ),
        inventory_turnover=safe_divide(cogs, s.inventory or None),
        receivables_turnover=safe_divide(s.revenue, s.net_receivables or None),
        payables_turnover=safe_divide(cogs, s.accounts_payable or None),
        working_capital_turnover=safe_divide(
            s.revenue,
            _positive(safe_subtract(s.current_assets, s.current_liabilities)),
        ),
    )


EFFICIENCY_RULES: dict[str, MetricRule] = {
    "asset_turnover": MetricRule("total asset turnover", (
        Band(above(2.0), Level.GOOD, "Strong revenue per unit of assets", ">= 2.0"),
        Band(above(1.0), Level.NEUTRAL, "Revenue in line with the asset base", "1.0 - 2.0"),
        Band(always, Level.BAD, "Asset base generates little revenue", "< 1.0"),
    )),
    "fixed_asset_turnover": MetricRule("fixed asset turnover", (
        Band(above(5.0), Level.GOOD, "Long-lived assets are used intensively", ">= 5.0"),
        Band(above(2.0), Level.NEUTRAL, "Typical use of long-lived assets", "2.0 - 5.0"),
        Band(always, Level.BAD, "Capital-heavy relative to revenue", "< 2.0"),
    )),
    "inventory_turnover": MetricRule("inventory turnover", (
        Band(above(8.0), Level.GOOD, "Inventory sells through quickly", ">= 8.0"),
        Band(above(4.0), Level.NEUTRAL, "Typical inventory sell-through", "4.0 - 8.0"),
        Band(always, Level.BAD, "Inventory moves slowly", "< 4.0"),
    ), missing_message="Not applicable without inventory, or insufficient data"),
    "receivables_turnover": MetricRule("receivables turnover", (
        Band(above(12.0), Level.GOOD, "Receivables are collected quickly", ">= 12.0"),
        Band(above(6.0), Level.NEUTRAL, "Typical collection pace", "6.0 - 12.0"),
        Band(always, Level.BAD, "Receivables are collected slowly", "< 6.0"),
    )),
    "payables_turnover": MetricRule("payables turnover", (
        Band(between(6.0, 12.0), Level.GOOD, "Suppliers are paid on balanced terms", "6.0 - 12.0"),
        Band(between(4.0, 6.0), Level.NEUTRAL, "Suppliers are paid somewhat slowly", "4.0 - 6.0"),
        Band(between(12.0, 18.0), Level.NEUTRAL, "Suppliers are paid somewhat quickly", "12.0 - 18.0"),
        Band(below(4.0), Level.BAD, "Supplier payments are stretched", "< 4.0"),
        Band(always, Level.BAD, "Suppliers are paid faster than needed", "> 18.0"),
    )),
    "working_capital_turnover": MetricRule("working capital turnover", (
        Band(between(4.0, 8.0), Level.GOOD, "Working capital supports revenue efficiently", "4.0 - 8.0"),
        Band(between(2.0, 4.0), Level.NEUTRAL, "Working capital is somewhat idle", "2.0 - 4.0"),
        Band(between(8.0, 12.0), Level.NEUTRAL, "Working capital is running lean", "8.0 - 12.0"),
        Band(below(2.0), Level.BAD, "Too much working capital for the revenue produced", "< 2.0"),
        Band(always, Level.BAD, "Working capital may be too thin for the revenue base", "> 12.0"),
    )),
}


def interpret_efficiency(metrics: EfficiencyMetrics) -> dict[str, Interpretation]:
    """Read each efficiency metric."""
    return interpret_metrics(metrics, EFFICIENCY_RULES)
