from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

from analytics.aggregate import AggregationResult, Totals, aggregate
from analytics.charts import revenue_roas_chart, roas_by_channel_chart, to_vega_spec
from analytics.data import format_currency_0, format_percent, format_ratio, round_half_up
from analytics.filters import DashboardFilters
from analytics.records import Record

TOP_MARKETS = 10


def kpi_cards(totals: Totals) -> List[Dict[str, Any]]:
    return [
        {"key": "revenue", "label": "Revenue", "value": round_half_up(totals.revenue, 2), "display": format_currency_0(totals.revenue)},
        {"key": "orders", "label": "Orders", "value": totals.orders, "display": f"{totals.orders:,}"},
        {"key": "aov", "label": "AOV", "value": round_half_up(totals.aov, 2), "display": format_currency_0(totals.aov)},
        {"key": "roas", "label": "ROAS", "value": round_half_up(totals.roas, 2), "display": format_ratio(totals.roas)},
        {"key": "cvr", "label": "CVR", "value": round_half_up(totals.cvr, 4), "display": format_percent(totals.cvr)},
    ]


def compute_overview(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    records: List[Record] = ctx.get("filtered_records", [])
    result: AggregationResult = aggregate(records, filters.channel_focus)

    charts: Dict[str, Any] = {}
    trend = revenue_roas_chart(result.by_date)
    if trend is not None:
        charts["revenue_roas"] = to_vega_spec(trend)
    charts["roas_by_channel"] = to_vega_spec(roas_by_channel_chart(result.by_channel, highlight=filters.channel_focus))

    payload = result.to_dict()
    return {
        "filters": asdict(filters),
        "row_count": len(records),
        "kpis": kpi_cards(result.totals),
        "totals": payload["totals"],
        "by_date": payload["by_date"],
        "by_channel": payload["by_channel"],
        "top_markets": payload["by_market"][:TOP_MARKETS],
        "charts": charts,
    }
