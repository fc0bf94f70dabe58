"""Snapshot data contracts and loading."""

from __future__ import annotations

from finmetrics.data.loader import SnapshotError, load_snapshot, snapshot_from_dict
from finmetrics.data.models import (
    CompetitorRevenue,
    FinancialSnapshot,
    IndustryData,
    MacroData,
    PriorYearData,
    SectorMedians,
    TradeFXData,
)

__all__ = [
    "CompetitorRevenue",
    "FinancialSnapshot",
    "IndustryData",
    "MacroData",
    "PriorYearData",
    "SectorMedians",
    "SnapshotError",
    "TradeFXData",
    "load_snapshot",
    "snapshot_from_dict",
]
