from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

from analytics.charts import monthly_revenue_chart, to_vega_spec
from analytics.filters import DashboardFilters
from analytics.insights import build_insights, monthly_rollup
from analytics.records import Record, focus_spend, records_to_frame

INSUFFICIENT_DATA_MESSAGE = "Not enough data for insights"


def compute_insights(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    records: List[Record] = ctx.get("filtered_records", [])
    insights = build_insights(records, filters.channel_focus)
    if insights is None:
        return {"filters": asdict(filters), "available": False, "message": INSUFFICIENT_DATA_MESSAGE}

    df = records_to_frame(records)
    chart = monthly_revenue_chart(monthly_rollup(df, focus_spend(df, filters.channel_focus)))
    payload = insights.to_dict()
    payload.update(
        {
            "filters": asdict(filters),
            "available": True,
            "charts": {"monthly_revenue": to_vega_spec(chart)} if chart is not None else {},
        }
    )
    return payload
