from __future__ import annotations

from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

from analytics.aggregate import ChannelSummary, DatePoint, MarketSummary
from analytics.insights import MonthlyBucket, month_label

alt.data_transformers.disable_max_rows()

REVENUE_COLOR = "#e63946"
ROAS_COLOR = "#2a9d8f"
MUTED_COLOR = "#d9e9e6"


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def revenue_roas_chart(points: List[DatePoint]) -> Optional[alt.LayerChart]:
    """Revenue (left axis) and ROAS (right axis) over time."""
    if not points:
        return None
    df = pd.DataFrame(
        [{"date": pd.Timestamp(p.date), "revenue": p.revenue, "roas": p.roas, "orders": p.orders} for p in points]
    )
    base = alt.Chart(df).encode(x=alt.X("date:T", title="Date", axis=alt.Axis(format="%b %d, %Y", grid=False)))
    tooltip = [
        alt.Tooltip("date:T", title="Date", format="%b %d, %Y"),
        alt.Tooltip("revenue:Q", title="Revenue", format="$,.0f"),
        alt.Tooltip("roas:Q", title="ROAS", format=".2f"),
    ]
    revenue = base.mark_line(point={"filled": True, "size": 40}, color=REVENUE_COLOR).encode(
        y=alt.Y("revenue:Q", title="Revenue", axis=alt.Axis(format="$,.0f", gridDash=[4, 4], domain=False, ticks=False)),
        tooltip=tooltip,
    )
    roas = base.mark_line(color=ROAS_COLOR, strokeDash=[4, 3]).encode(
        y=alt.Y("roas:Q", title="ROAS", axis=alt.Axis(format=".1f", domain=False, ticks=False)),
        tooltip=tooltip,
    )
    return alt.layer(revenue, roas).resolve_scale(y="independent").properties(height=320)


def roas_by_channel_chart(channels: List[ChannelSummary], highlight: Optional[str] = None) -> alt.Chart:
    df = pd.DataFrame(
        [
            {
                "channel": c.channel,
                "roas": c.roas,
                "cpc": c.cpc,
                "ctr": c.ctr,
                "dim": bool(highlight) and c.channel != highlight,
            }
            for c in channels
        ]
    )
    hover = alt.selection_point(fields=["channel"], on="mouseover", empty="all")
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("channel:N", title="Channel", sort=None, axis=alt.Axis(grid=False)),
            y=alt.Y("roas:Q", title="ROAS", axis=alt.Axis(format=".2f", gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.condition(alt.datum.dim, alt.value(MUTED_COLOR), alt.value(ROAS_COLOR)),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.6)),
            tooltip=[
                alt.Tooltip("channel:N", title="Channel"),
                alt.Tooltip("roas:Q", title="ROAS", format=".2f"),
                alt.Tooltip("cpc:Q", title="CPC", format="$,.2f"),
                alt.Tooltip("ctr:Q", title="CTR", format=".1%"),
            ],
        )
        .add_params(hover)
        .properties(height=320)
    )


def market_revenue_chart(markets: List[MarketSummary], top_n: int = 15) -> Optional[alt.Chart]:
    if not markets:
        return None
    df = pd.DataFrame(
        [{"market": m.market, "revenue": m.revenue, "roas": m.roas, "cvr": m.cvr} for m in markets[:top_n]]
    )
    return (
        alt.Chart(df)
        .mark_bar(color=REVENUE_COLOR)
        .encode(
            x=alt.X("revenue:Q", title="Revenue", axis=alt.Axis(format="$~s", gridDash=[4, 4], domain=False, ticks=False)),
            y=alt.Y("market:N", title="Market", sort="-x"),
            tooltip=[
                alt.Tooltip("market:N", title="Market"),
                alt.Tooltip("revenue:Q", title="Revenue", format="$,.0f"),
                alt.Tooltip("roas:Q", title="ROAS", format=".2f"),
                alt.Tooltip("cvr:Q", title="CVR", format=".1%"),
            ],
        )
    )


def monthly_revenue_chart(buckets: List[MonthlyBucket]) -> Optional[alt.Chart]:
    if not buckets:
        return None
    df = pd.DataFrame(
        [{"month": month_label(b.month), "order": i, "revenue": b.revenue, "roas": b.roas} for i, b in enumerate(buckets)]
    )
    return (
        alt.Chart(df)
        .mark_bar(color=ROAS_COLOR)
        .encode(
            x=alt.X("month:N", title="Month", sort=alt.EncodingSortField(field="order", order="ascending")),
            y=alt.Y("revenue:Q", title="Revenue", axis=alt.Axis(format="$~s", gridDash=[4, 4], domain=False, ticks=False)),
            tooltip=[
                alt.Tooltip("month:N", title="Month"),
                alt.Tooltip("revenue:Q", title="Revenue", format="$,.0f"),
                alt.Tooltip("roas:Q", title="ROAS", format=".2f"),
            ],
        )
        .properties(height=260)
    )
