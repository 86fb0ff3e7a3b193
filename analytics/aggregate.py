from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from analytics.records import (
    CHANNELS,
    CLICK_COLUMNS,
    IMPRESSION_COLUMNS,
    SPEND_COLUMNS,
    Channel,
    Record,
    focus_spend,
    market_label,
    records_to_frame,
    safe_div,
)


@dataclass(frozen=True)
class Totals:
    revenue: float = 0.0
    orders: int = 0
    sessions: int = 0
    spend: float = 0.0
    aov: float = 0.0
    cvr: float = 0.0
    roas: float = 0.0


@dataclass(frozen=True)
class DatePoint:
    date: date
    revenue: float
    orders: int
    spend: float
    roas: float


@dataclass(frozen=True)
class ChannelSummary:
    channel: Channel
    spend: float
    clicks: int
    impressions: int
    cpc: float
    ctr: float
    # Overall revenue over this channel's spend; the data has no per-channel revenue.
    roas: float


@dataclass(frozen=True)
class MarketSummary:
    market: str
    city: str
    state: str
    revenue: float
    orders: int
    sessions: int
    spend: float
    roas: float
    cvr: float


@dataclass(frozen=True)
class AggregationResult:
    totals: Totals = field(default_factory=Totals)
    by_date: List[DatePoint] = field(default_factory=list)
    by_channel: List[ChannelSummary] = field(default_factory=list)
    by_market: List[MarketSummary] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        by_date = []
        for p in self.by_date:
            row = asdict(p)
            row["date"] = p.date.isoformat()
            by_date.append(row)
        return {
            "totals": asdict(self.totals),
            "by_date": by_date,
            "by_channel": [asdict(c) for c in self.by_channel],
            "by_market": [asdict(m) for m in self.by_market],
        }


def compute_totals(df: pd.DataFrame) -> Totals:
    revenue = float(df["revenue"].sum())
    orders = int(df["online_orders"].sum())
    sessions = int(df["sessions"].sum())
    spend = float(df["spend_total"].sum())
    return Totals(
        revenue=revenue,
        orders=orders,
        sessions=sessions,
        spend=spend,
        aov=safe_div(revenue, orders),
        cvr=safe_div(orders, sessions),
        roas=safe_div(revenue, spend),
    )


def compute_by_date(df: pd.DataFrame, channel_focus: Optional[Channel] = None) -> List[DatePoint]:
    if df.empty:
        return []
    grouped = (
        df.assign(spend=focus_spend(df, channel_focus))
        .groupby("date")
        .agg(revenue=("revenue", "sum"), orders=("online_orders", "sum"), spend=("spend", "sum"))
        .reset_index()
        .sort_values("date")
    )
    return [
        DatePoint(
            date=r.date.date(),
            revenue=float(r.revenue),
            orders=int(r.orders),
            spend=float(r.spend),
            roas=safe_div(r.revenue, r.spend),
        )
        for r in grouped.itertuples(index=False)
    ]


def compute_by_channel(df: pd.DataFrame, total_revenue: float) -> List[ChannelSummary]:
    out: List[ChannelSummary] = []
    for ch in CHANNELS:
        spend = float(df[SPEND_COLUMNS[ch]].sum())
        clicks = int(df[CLICK_COLUMNS[ch]].sum())
        impressions = int(df[IMPRESSION_COLUMNS[ch]].sum())
        out.append(
            ChannelSummary(
                channel=ch,
                spend=spend,
                clicks=clicks,
                impressions=impressions,
                cpc=safe_div(spend, clicks),
                ctr=safe_div(clicks, impressions),
                roas=safe_div(total_revenue, spend),
            )
        )
    return out


def compute_by_market(df: pd.DataFrame, channel_focus: Optional[Channel] = None) -> List[MarketSummary]:
    if df.empty:
        return []
    grouped = (
        df.assign(spend=focus_spend(df, channel_focus))
        .groupby(["city", "state"], sort=True)
        .agg(
            revenue=("revenue", "sum"),
            orders=("online_orders", "sum"),
            sessions=("sessions", "sum"),
            spend=("spend", "sum"),
        )
        .reset_index()
    )
    grouped["market"] = [market_label((c, s)) for c, s in zip(grouped["city"], grouped["state"])]
    grouped = grouped.sort_values(["revenue", "market"], ascending=[False, True], kind="mergesort")
    return [
        MarketSummary(
            market=r.market,
            city=str(r.city),
            state=str(r.state),
            revenue=float(r.revenue),
            orders=int(r.orders),
            sessions=int(r.sessions),
            spend=float(r.spend),
            roas=safe_div(r.revenue, r.spend),
            cvr=safe_div(r.orders, r.sessions),
        )
        for r in grouped.itertuples(index=False)
    ]


def aggregate(records: Iterable[Record], channel_focus: Optional[Channel] = None) -> AggregationResult:
    """Totals, per-date series, per-channel and per-market summaries.

    Channel focus changes the spend used by the per-date and per-market series
    only; totals and the channel breakdown always use all three channels.
    """
    df = records_to_frame(records)
    totals = compute_totals(df)
    return AggregationResult(
        totals=totals,
        by_date=compute_by_date(df, channel_focus),
        by_channel=compute_by_channel(df, totals.revenue),
        by_market=compute_by_market(df, channel_focus),
    )
