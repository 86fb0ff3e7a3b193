from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from analytics.aggregate import compute_totals
from analytics.filters import DashboardFilters
from analytics.metrics_overview import kpi_cards
from analytics.records import Record, records_to_frame

DEFAULT_ROW_LIMIT = 500


def record_rows(records: List[Record], limit: Optional[int] = DEFAULT_ROW_LIMIT) -> List[Dict[str, Any]]:
    ordered = sorted(records, key=lambda r: (r.date, r.city, r.state, r.location_id))
    if limit is not None:
        ordered = ordered[: max(0, int(limit))]
    rows = []
    for r in ordered:
        row = asdict(r)
        row["date"] = r.date.isoformat()
        row["market"] = r.market
        rows.append(row)
    return rows


def compute_details(
    filters: DashboardFilters,
    ctx: Dict[str, Any],
    *,
    limit: Optional[int] = DEFAULT_ROW_LIMIT,
) -> Dict[str, Any]:
    records: List[Record] = ctx.get("filtered_records", [])
    all_records = ctx.get("records", ())
    totals = compute_totals(records_to_frame(records))
    quality = ctx.get("quality") or {}

    return {
        "filters": asdict(filters),
        "kpis": kpi_cards(totals),
        "row_counts": {
            "dataset_rows": int(len(all_records)),
            "filtered_rows": int(len(records)),
        },
        "cleaning_checks": {
            "rows_read": int(quality.get("rows_read", 0) or 0),
            "rows_dropped_invalid_date": int(quality.get("dropped_invalid_date", 0) or 0),
            "rows_dropped_missing_market": int(quality.get("dropped_missing_market", 0) or 0),
            "imputed_values": dict(quality.get("imputed") or {}),
        },
        "rows": record_rows(records, limit),
        "truncated": limit is not None and len(records) > limit,
    }
