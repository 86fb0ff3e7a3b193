from __future__ import annotations

import logging
import math
from dataclasses import asdict
from datetime import date
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from analytics.data import load_dashboard_data, prepare_context
from analytics.filters import DashboardFilters, channel_options, normalize_filters
from analytics.metrics_channels import compute_channels
from analytics.metrics_details import DEFAULT_ROW_LIMIT, compute_details, record_rows
from analytics.metrics_insights import compute_insights
from analytics.metrics_markets import compute_markets
from analytics.metrics_overview import compute_overview
from api.schemas import DashboardFiltersModel, DateRangeResponse, MetaListResponse


app = FastAPI(title="Burrito Shack Marketing Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: DashboardFiltersModel, data_ctx: dict) -> DashboardFilters:
    raw = model.model_dump()
    return normalize_filters(
        raw,
        available_dates=data_ctx.get("date_range"),
    )


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
                date: lambda d: d.isoformat(),
            },
        )
    )


def _error(name: str, exc: Exception) -> JSONResponse:
    logger.exception("%s failed", name)
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/markets", response_model=MetaListResponse)
def meta_markets():
    try:
        data_ctx = load_dashboard_data()
        return _json({"values": list(data_ctx.get("markets") or ["All"])})
    except Exception as exc:
        return _error("meta_markets", exc)


@app.get("/meta/channels", response_model=MetaListResponse)
def meta_channels():
    return _json({"values": channel_options()})


@app.get("/meta/date-range", response_model=DateRangeResponse)
def meta_date_range():
    try:
        data_ctx = load_dashboard_data()
        start, end = data_ctx.get("date_range") or (None, None)
        return _json({"start_date": start, "end_date": end})
    except Exception as exc:
        return _error("meta_date_range", exc)


@app.post("/overview")
def overview(filters: DashboardFiltersModel):
    try:
        data_ctx = load_dashboard_data()
        f = _filters_from_model(filters, data_ctx)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_overview(f, ctx))
    except Exception as exc:
        return _error("overview", exc)


@app.post("/markets")
def markets(filters: DashboardFiltersModel, top_n: int = Query(default=15, ge=1, le=200)):
    try:
        data_ctx = load_dashboard_data()
        f = _filters_from_model(filters, data_ctx)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_markets(f, ctx, top_n=top_n))
    except Exception as exc:
        return _error("markets", exc)


@app.post("/channels")
def channels(filters: DashboardFiltersModel):
    try:
        data_ctx = load_dashboard_data()
        f = _filters_from_model(filters, data_ctx)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_channels(f, ctx))
    except Exception as exc:
        return _error("channels", exc)


@app.post("/details")
def details(filters: DashboardFiltersModel, limit: Optional[int] = Query(default=DEFAULT_ROW_LIMIT, ge=0)):
    try:
        data_ctx = load_dashboard_data()
        f = _filters_from_model(filters, data_ctx)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_details(f, ctx, limit=limit))
    except Exception as exc:
        return _error("details", exc)


@app.post("/insights")
def insights(filters: DashboardFiltersModel):
    try:
        data_ctx = load_dashboard_data()
        f = _filters_from_model(filters, data_ctx)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_insights(f, ctx))
    except Exception as exc:
        return _error("insights", exc)


@app.post("/export/{page}")
def export_page(page: str, filters: DashboardFiltersModel):
    data_ctx = load_dashboard_data()
    f = _filters_from_model(filters, data_ctx)
    ctx = prepare_context(f, data_ctx)

    filename = f"{page}.csv"
    if page in {"details", "rows"}:
        export_df = pd.DataFrame(record_rows(ctx["filtered_records"], limit=None))
    elif page == "markets":
        export_df = pd.DataFrame(compute_markets(f, ctx)["markets"])
    elif page == "channels":
        export_df = pd.DataFrame(compute_channels(f, ctx)["channels"])
    elif page == "overview":
        export_df = pd.DataFrame(compute_overview(f, ctx)["by_date"])
    else:
        export_df = pd.DataFrame()

    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})


@app.get("/filters/default")
def default_filters():
    data_ctx = load_dashboard_data()
    return _json(asdict(normalize_filters({}, available_dates=data_ctx.get("date_range"))))
