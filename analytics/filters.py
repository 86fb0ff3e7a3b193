from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from analytics.records import ALL, CHANNELS, Channel, Record, parse_channel


@dataclass(frozen=True)
class DashboardFilters:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    market: str = ALL
    channel: str = ALL

    @property
    def channel_focus(self) -> Optional[Channel]:
        return parse_channel(self.channel)


def _as_date(value: object) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        ts = pd.to_datetime(value, errors="coerce")
    except (TypeError, ValueError):
        return None
    if ts is None or pd.isna(ts):
        return None
    return ts.date()


def normalize_filters(
    raw: dict,
    *,
    available_dates: Optional[Tuple[Optional[date], Optional[date]]] = None,
) -> DashboardFilters:
    start_date = _as_date(raw.get("start_date"))
    end_date = _as_date(raw.get("end_date"))
    if start_date is None and end_date is None and available_dates:
        start_date, end_date = available_dates
    if start_date is not None and end_date is not None and start_date > end_date:
        start_date, end_date = end_date, start_date

    # Markets absent from the data are kept so they select nothing.
    market = str(raw.get("market") or ALL).strip() or ALL

    channel_raw = raw.get("channel") or ALL
    focus = parse_channel(channel_raw)
    channel = focus if focus is not None else ALL

    return DashboardFilters(start_date=start_date, end_date=end_date, market=market, channel=channel)


def filter_records(records: Iterable[Record], filters: DashboardFilters) -> List[Record]:
    """Date range (inclusive, either side optional) and market selection.

    Channel never drops rows; it only picks which spend column downstream
    aggregations read.
    """
    start, end, market = filters.start_date, filters.end_date, filters.market
    out: List[Record] = []
    for r in records:
        if start is not None and r.date < start:
            continue
        if end is not None and r.date > end:
            continue
        if market != ALL and r.market != market:
            continue
        out.append(r)
    return out


def apply_filters(
    records: Iterable[Record],
    date_range: Optional[Tuple[Optional[date], Optional[date]]] = None,
    market: Optional[str] = None,
    channel: Optional[str] = None,
) -> List[Record]:
    start, end = date_range or (None, None)
    filters = DashboardFilters(start_date=_as_date(start), end_date=_as_date(end), market=market or ALL, channel=channel or ALL)
    return filter_records(records, filters)


def market_options(records: Iterable[Record]) -> List[str]:
    return [ALL] + sorted({r.market for r in records})


def channel_options() -> List[str]:
    return [ALL, *CHANNELS]


def date_extent(records: Iterable[Record]) -> Tuple[Optional[date], Optional[date]]:
    dates = [r.date for r in records]
    if not dates:
        return None, None
    return min(dates), max(dates)
