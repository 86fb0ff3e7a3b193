from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

from analytics.aggregate import compute_by_market, compute_totals
from analytics.charts import market_revenue_chart, to_vega_spec
from analytics.filters import DashboardFilters
from analytics.records import Record, records_to_frame, safe_div


def compute_markets(filters: DashboardFilters, ctx: Dict[str, Any], *, top_n: int = 15) -> Dict[str, Any]:
    records: List[Record] = ctx.get("filtered_records", [])
    df = records_to_frame(records)
    markets = compute_by_market(df, filters.channel_focus)
    total_revenue = compute_totals(df).revenue

    rows = []
    for rank, m in enumerate(markets, start=1):
        row = asdict(m)
        row["rank"] = rank
        row["revenue_share"] = safe_div(m.revenue, total_revenue)
        rows.append(row)

    chart = market_revenue_chart(markets, top_n=top_n)
    return {
        "filters": asdict(filters),
        "markets": rows,
        "total_revenue": total_revenue,
        "charts": {"revenue_by_market": to_vega_spec(chart)} if chart is not None else {},
    }
