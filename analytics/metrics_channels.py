from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

from analytics.aggregate import compute_by_channel, compute_totals
from analytics.charts import roas_by_channel_chart, to_vega_spec
from analytics.filters import DashboardFilters
from analytics.records import Record, records_to_frame, safe_div


def compute_channels(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    records: List[Record] = ctx.get("filtered_records", [])
    df = records_to_frame(records)
    totals = compute_totals(df)
    channels = compute_by_channel(df, totals.revenue)

    rows = []
    for c in channels:
        row = asdict(c)
        row["spend_share"] = safe_div(c.spend, totals.spend)
        row["focused"] = c.channel == filters.channel_focus
        rows.append(row)

    return {
        "filters": asdict(filters),
        "channels": rows,
        "total_spend": totals.spend,
        # Channel ROAS divides overall revenue by each channel's spend.
        "roas_basis": "overall_revenue",
        "charts": {"roas_by_channel": to_vega_spec(roas_by_channel_chart(channels, highlight=filters.channel_focus))},
    }
