"""Snapshot loading from JSON documents.

Accepts camelCase (upstream provider) or snake_case keys. A document may
be flat or nested in the provider layout ``{"yahoo": {...}, "fred": {...},
"industry": {...}}``. Non-numeric values become None; unknown keys are
ignored.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import fields
from pathlib import Path
from typing import Any

import pandas as pd

from finmetrics.data.models import (
    BENCHMARK_COLUMNS,
    PRICE_COLUMNS,
    CompetitorRevenue,
    FinancialSnapshot,
    IndustryData,
    MacroData,
    PriorYearData,
    SectorMedians,
    TradeFXData,
)
from finmetrics.kernel import to_optional_float

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z0-9])")

# Keys whose mechanical snake_case form differs from the field name.
_KEY_ALIASES = {
    "break_even_inflation_10y": "breakeven_inflation_10y",
    "fred": "macro",
    "industry_info": "industry_data",
    "yahoo_beta": "beta",
}

_STRING_FIELDS = {"symbol", "company_name", "sector", "industry", "as_of"}
_SERIES_FIELDS = {
    "historical_revenue",
    "historical_net_income",
    "historical_eps",
    "historical_dividends",
    "historical_fcf",
}
_RETURN_FIELDS = {"stock_returns", "market_returns"}


class SnapshotError(ValueError):
    """Raised when a snapshot document has an unusable shape."""


def _snake(key: str) -> str:
    name = _CAMEL_BOUNDARY.sub(r"\1_\2", key).lower()
    return _KEY_ALIASES.get(name, name)


def _normalise_keys(raw: Mapping[str, Any]) -> dict[str, Any]:
    return {_snake(str(k)): v for k, v in raw.items()}


def _float_tuple(values: Any) -> tuple[float, ...]:
    if not isinstance(values, (list, tuple)):
        return ()
    result = []
    for v in values:
        f = to_optional_float(v)
        if f is not None:
            result.append(f)
    return tuple(result)


def _numeric_record(cls: type, raw: Any) -> Any:
    """Build a dataclass of optional floats from a mapping."""
    if not isinstance(raw, Mapping):
        return cls()
    data = _normalise_keys(raw)
    kwargs = {
        f.name: to_optional_float(data.get(f.name))
        for f in fields(cls)
        if f.name in data
    }
    return cls(**kwargs)


def _price_frame(rows: Any, columns: tuple[str, ...]) -> pd.DataFrame:
    """Convert a list of bar objects into a date-sorted DataFrame.

    Bars without a usable close are dropped with a warning.

    Raises:
        SnapshotError: If rows is present but not a list.
    """
    if rows is None:
        return pd.DataFrame(columns=list(columns))
    if not isinstance(rows, list):
        raise SnapshotError(
            f"price history must be a list of bars, got {type(rows).__name__}"
        )

    records = []
    dropped = 0
    for row in rows:
        if not isinstance(row, Mapping):
            dropped += 1
            continue
        bar = _normalise_keys(row)
        # Benchmark feeds sometimes label the close as "price".
        close = to_optional_float(bar.get("close", bar.get("price")))
        if close is None:
            dropped += 1
            continue
        record: dict[str, Any] = {"date": str(bar.get("date", ""))}
        for col in columns:
            if col == "date":
                continue
            record[col] = close if col == "close" else to_optional_float(bar.get(col))
        records.append(record)

    if dropped:
        logger.warning("Dropped %d price bars without a close", dropped)

    frame = pd.DataFrame(records, columns=list(columns))
    if not frame.empty:
        frame = frame.sort_values("date", kind="stable").reset_index(drop=True)
    return frame


def _industry(raw: Any) -> IndustryData:
    if not isinstance(raw, Mapping):
        return IndustryData()
    data = _normalise_keys(raw)
    competitors = []
    for entry in data.get("competitor_revenues") or []:
        if not isinstance(entry, Mapping):
            continue
        revenue = to_optional_float(entry.get("revenue"))
        if revenue is None:
            continue
        competitors.append(
            CompetitorRevenue(symbol=str(entry.get("symbol", "")), revenue=revenue)
        )
    return IndustryData(
        industry_name=str(data.get("industry_name", "")),
        sector_name=str(data.get("sector_name", "")),
        industry_revenue=to_optional_float(data.get("industry_revenue")),
        industry_growth_rate=to_optional_float(data.get("industry_growth_rate")),
        market_size=to_optional_float(data.get("market_size")),
        industry_pe=to_optional_float(data.get("industry_pe")),
        industry_roic=to_optional_float(data.get("industry_roic")),
        competitor_revenues=tuple(competitors),
    )


def _trade_fx(raw: Any) -> TradeFXData:
    if not isinstance(raw, Mapping):
        return TradeFXData()
    data = _normalise_keys(raw)
    kwargs: dict[str, Any] = {
        f.name: to_optional_float(data.get(f.name))
        for f in fields(TradeFXData)
        if f.name in data and f.name != "fx_history"
    }
    kwargs["fx_history"] = _float_tuple(data.get("fx_history"))
    return TradeFXData(**kwargs)


def snapshot_from_dict(document: Mapping[str, Any]) -> FinancialSnapshot:
    """Build a FinancialSnapshot from a decoded JSON document.

    Args:
        document: Flat or provider-nested mapping of snapshot fields.

    Returns:
        Populated, immutable FinancialSnapshot.

    Raises:
        SnapshotError: If the document is not a mapping or its price
            history is malformed.
    """
    if not isinstance(document, Mapping):
        raise SnapshotError(
            f"snapshot must be a JSON object, got {type(document).__name__}"
        )

    data = _normalise_keys(document)

    # Provider layout: quote and statement fields live under "yahoo".
    nested = data.pop("yahoo", None)
    if isinstance(nested, Mapping):
        data = {**_normalise_keys(nested), **data}
    if isinstance(data.get("industry"), Mapping):
        data["industry_data"] = data.pop("industry")

    known = {f.name for f in fields(FinancialSnapshot)}
    for key in sorted(set(data) - known):
        logger.debug("Ignoring unknown snapshot key %s", key)

    kwargs: dict[str, Any] = {}
    for f in fields(FinancialSnapshot):
        if f.name not in data:
            continue
        value = data[f.name]
        if f.name in _STRING_FIELDS:
            kwargs[f.name] = None if value is None else str(value)
        elif f.name in _SERIES_FIELDS:
            kwargs[f.name] = _float_tuple(value)
        elif f.name in _RETURN_FIELDS:
            kwargs[f.name] = _float_tuple(value) if value is not None else None
        elif f.name == "price_history":
            kwargs[f.name] = _price_frame(value, PRICE_COLUMNS)
        elif f.name == "market_price_history":
            kwargs[f.name] = _price_frame(value, BENCHMARK_COLUMNS)
        elif f.name == "macro":
            kwargs[f.name] = _numeric_record(MacroData, value)
        elif f.name == "industry_data":
            kwargs[f.name] = _industry(value)
        elif f.name == "trade_fx":
            kwargs[f.name] = _trade_fx(value)
        elif f.name == "prior_year":
            kwargs[f.name] = (
                _numeric_record(PriorYearData, value)
                if isinstance(value, Mapping) else None
            )
        elif f.name == "sector_medians":
            kwargs[f.name] = (
                _numeric_record(SectorMedians, value)
                if isinstance(value, Mapping) else None
            )
        else:
            kwargs[f.name] = to_optional_float(value)

    # Identity strings default to "" rather than None.
    for name in ("symbol", "company_name", "sector", "industry"):
        if kwargs.get(name) is None:
            kwargs.pop(name, None)

    return FinancialSnapshot(**kwargs)


def load_snapshot(path: str | Path) -> FinancialSnapshot:
    """Read a JSON snapshot file.

    Raises:
        OSError: If the file cannot be read.
        SnapshotError: If the content is not UTF-8 encoded JSON or has the
            wrong shape.
    """
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise SnapshotError(f"{path}: not UTF-8 text ({exc})") from exc
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"{path}: invalid JSON ({exc})") from exc
    snapshot = snapshot_from_dict(document)
    logger.debug(
        "%s: loaded snapshot with %d price bars",
        snapshot.symbol or path, len(snapshot.price_history),
    )
    return snapshot
