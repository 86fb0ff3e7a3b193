"""Month-over-month and year-over-year insights.

Rows are bucketed by calendar month. The two most recent buckets present in
the input are compared (MoM) even when the data has gaps between them, and
the current month is compared to the bucket exactly twelve months earlier
(YoY). A missing year-ago bucket counts as all zeros, so YoY deltas read as
+100%; payloads flag that case with ``yoy_approximate``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from analytics.records import (
    CHANNELS,
    SPEND_COLUMNS,
    Channel,
    Record,
    focus_spend,
    market_label,
    records_to_frame,
    safe_div,
)

MONTH_LABEL_FORMAT = "%b %Y"


def pct_change(current: float, previous: float) -> float:
    """Relative change; +100% when only the current value is nonzero, 0 when both are zero."""
    if previous:
        return (current - previous) / previous
    return 1.0 if current else 0.0


def month_label(month: pd.Period) -> str:
    return month.strftime(MONTH_LABEL_FORMAT)


@dataclass(frozen=True)
class MonthlyBucket:
    month: Optional[pd.Period]
    revenue: float = 0.0
    orders: int = 0
    sessions: int = 0
    spend: float = 0.0
    cvr: float = 0.0
    roas: float = 0.0

    def snapshot(self) -> "MonthSnapshot":
        return MonthSnapshot(revenue=self.revenue, orders=self.orders, roas=self.roas, cvr=self.cvr)


@dataclass(frozen=True)
class MonthSnapshot:
    revenue: float = 0.0
    orders: int = 0
    roas: float = 0.0
    cvr: float = 0.0


@dataclass(frozen=True)
class DeltaSet:
    revenue: float
    orders: float
    roas: float
    cvr: float

    @classmethod
    def between(cls, curr: MonthSnapshot, prev: MonthSnapshot) -> "DeltaSet":
        return cls(
            revenue=pct_change(curr.revenue, prev.revenue),
            orders=pct_change(curr.orders, prev.orders),
            roas=pct_change(curr.roas, prev.roas),
            cvr=pct_change(curr.cvr, prev.cvr),
        )


@dataclass(frozen=True)
class ChannelMover:
    channel: Channel
    d_roas: float
    d_revenue: float
    d_cvr: float


@dataclass(frozen=True)
class MarketGrowth:
    market: str
    curr_revenue: float
    prev_revenue: float
    growth: float


@dataclass(frozen=True)
class InsightLabels:
    curr_label: str
    prev_label: str
    yoy_label: str


@dataclass(frozen=True)
class Narratives:
    top_channel: str
    best_market: str
    watch_metric: str


@dataclass(frozen=True)
class InsightPayload:
    labels: InsightLabels
    curr: MonthSnapshot
    prev: MonthSnapshot
    yoy: MonthSnapshot
    mom: DeltaSet
    yoy_delta: DeltaSet
    yoy_approximate: bool
    narratives: Narratives
    channel_movers: List[ChannelMover] = field(default_factory=list)
    market_growth: List[MarketGrowth] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def monthly_rollup(df: pd.DataFrame, spend: pd.Series) -> List[MonthlyBucket]:
    """Monthly buckets ascending, with CVR and ROAS from the given spend series."""
    if df.empty:
        return []
    grouped = (
        df.assign(month=df["date"].dt.to_period("M"), spend=spend)
        .groupby("month")
        .agg(
            revenue=("revenue", "sum"),
            orders=("online_orders", "sum"),
            sessions=("sessions", "sum"),
            spend=("spend", "sum"),
        )
        .sort_index()
    )
    return [
        MonthlyBucket(
            month=month,
            revenue=float(r.revenue),
            orders=int(r.orders),
            sessions=int(r.sessions),
            spend=float(r.spend),
            cvr=safe_div(r.orders, r.sessions),
            roas=safe_div(r.revenue, r.spend),
        )
        for month, r in zip(grouped.index, grouped.itertuples(index=False))
    ]


def compute_channel_movers(df: pd.DataFrame) -> List[ChannelMover]:
    movers: List[ChannelMover] = []
    for ch in CHANNELS:
        series = monthly_rollup(df, df[SPEND_COLUMNS[ch]])
        c = series[-1] if series else MonthlyBucket(month=None)
        p = series[-2] if len(series) >= 2 else MonthlyBucket(month=None)
        movers.append(
            ChannelMover(
                channel=ch,
                d_roas=pct_change(c.roas, p.roas),
                d_revenue=pct_change(c.revenue, p.revenue),
                d_cvr=pct_change(c.cvr, p.cvr),
            )
        )
    return movers


def compute_market_growth(df: pd.DataFrame) -> List[MarketGrowth]:
    """MoM revenue growth per market, highest first (ties keep market-key order)."""
    if df.empty:
        return []
    monthly = (
        df.assign(month=df["date"].dt.to_period("M"))
        .groupby(["city", "state", "month"], sort=True)["revenue"]
        .sum()
    )
    rows: List[MarketGrowth] = []
    for (city, state), series in monthly.groupby(level=["city", "state"], sort=True):
        values = series.sort_index(level="month").tolist()
        curr = float(values[-1])
        prev = float(values[-2]) if len(values) >= 2 else 0.0
        rows.append(
            MarketGrowth(
                market=market_label((city, state)),
                curr_revenue=curr,
                prev_revenue=prev,
                growth=pct_change(curr, prev),
            )
        )
    return sorted(rows, key=lambda m: m.growth, reverse=True)


def build_insights(records: Iterable[Record], channel_focus: Optional[Channel] = None) -> Optional[InsightPayload]:
    """Insight payload, or None when fewer than two monthly buckets exist."""
    df = records_to_frame(records)
    monthly = monthly_rollup(df, focus_spend(df, channel_focus))
    if len(monthly) < 2:
        return None

    curr, prev = monthly[-1], monthly[-2]
    yoy_month = curr.month - 12
    by_month = {b.month: b for b in monthly}
    yoy_bucket = by_month.get(yoy_month)
    yoy = yoy_bucket.snapshot() if yoy_bucket is not None else MonthSnapshot()

    labels = InsightLabels(
        curr_label=month_label(curr.month),
        prev_label=month_label(prev.month),
        yoy_label=month_label(yoy_month),
    )

    movers = compute_channel_movers(df)
    # max() keeps the first channel on ties
    top = max(movers, key=lambda m: abs(m.d_roas))

    growth = compute_market_growth(df)
    if growth:
        best = growth[0]
        best_market = f"{best.market} had the strongest MoM revenue growth ({best.growth:.1%})."
    else:
        best_market = "Not enough market data"

    narratives = Narratives(
        top_channel=f"{top.channel} channel had the largest MoM ROAS change ({top.d_roas:.1%}).",
        best_market=best_market,
        watch_metric=(
            f"Watch CVR: {labels.curr_label} vs {labels.prev_label} is "
            f"{pct_change(curr.cvr, prev.cvr):.1%} change."
        ),
    )

    curr_snap, prev_snap = curr.snapshot(), prev.snapshot()
    return InsightPayload(
        labels=labels,
        curr=curr_snap,
        prev=prev_snap,
        yoy=yoy,
        mom=DeltaSet.between(curr_snap, prev_snap),
        yoy_delta=DeltaSet.between(curr_snap, yoy),
        yoy_approximate=yoy_bucket is None,
        narratives=narratives,
        channel_movers=movers,
        market_growth=growth,
    )
