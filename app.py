import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from analytics import data as dd
from analytics.filters import DashboardFilters, channel_options
from analytics.metrics_channels import compute_channels
from analytics.metrics_details import compute_details, record_rows
from analytics.metrics_insights import compute_insights
from analytics.metrics_markets import compute_markets
from analytics.metrics_overview import compute_overview
from analytics.records import ALL


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #2b2b2b;}
        .card {border: 1px solid #f0e6d6;border-radius: 16px;padding: 16px;background: #ffffff;
               box-shadow: 0 10px 30px rgba(0,0,0,0.08); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #2b2b2b;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #fffaf3;border: 1px solid #f7efe1;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #3d2b1f;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header"><div class="card-title">{title}</div></div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(filters: DashboardFilters) -> str:
    start = filters.start_date.isoformat() if filters.start_date else "…"
    end = filters.end_date.isoformat() if filters.end_date else "…"
    chips = [f"Dates: {start} → {end}", f"Market: {filters.market}", f"Channel: {filters.channel}"]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_page_header(title: str, filters: DashboardFilters, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>Dashboard / {title}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if export_df is not None and not export_df.empty:
            st.download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
                key=f"export_{title}",
            )
    st.markdown(f"<div class='chip-row'>{format_filter_summary(filters)}</div>", unsafe_allow_html=True)


def render_kpis(kpis: List[Dict[str, Any]]):
    cols = st.columns(len(kpis))
    for col, kpi in zip(cols, kpis):
        col.metric(kpi["label"], kpi["display"])


def render_chart(spec: Optional[Dict[str, Any]], empty_note: str = "No data"):
    if not spec:
        st.info(empty_note)
        return
    st.vega_lite_chart(spec, use_container_width=True)


def format_table(df: pd.DataFrame, money: List[str], pct: List[str], ratio: List[str]) -> pd.DataFrame:
    out = df.copy()
    for c in money:
        out[c] = out[c].apply(dd.format_currency_0)
    for c in pct:
        out[c] = out[c].apply(dd.format_percent)
    for c in ratio:
        out[c] = out[c].apply(dd.format_ratio)
    return out


def markets_frame(rows: List[Dict[str, Any]]) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame()
    df = pd.DataFrame(rows)[["market", "revenue", "orders", "sessions", "spend", "roas", "cvr"]]
    df = format_table(df, money=["revenue", "spend"], pct=["cvr"], ratio=["roas"])
    return df.rename(columns={"market": "Market", "revenue": "Revenue", "orders": "Orders", "sessions": "Sessions", "spend": "Spend", "roas": "ROAS", "cvr": "CVR"})


def delta_card(col, label: str, curr: float, delta: float, fmt):
    col.metric(label, fmt(curr), delta=f"{delta:.1%}")


# ---------- UI setup ----------
st.set_page_config(page_title="Burrito Shack – Marketing Performance", layout="wide")
inject_base_styles()
st.title("🌯 Burrito Shack – Marketing Performance Dashboard")

data_ctx = dd.load_dashboard_data()
if not data_ctx.get("files"):
    st.error(f"No data file found. Place a file matching {dd.DATA_FILE_GLOB} in {dd.DATA_DIR}.")
    st.stop()

records = data_ctx["records"]
min_date, max_date = data_ctx["date_range"]
if not records:
    st.error("The data file contains no usable rows.")
    st.stop()

# ----- Sidebar: global filters (apply to every tab) -----
with st.sidebar:
    st.markdown("### Filters")
    if st.button("Reset"):
        for key in ["f_dates", "f_market", "f_channel"]:
            st.session_state.pop(key, None)
    date_sel = st.date_input("Date range", value=(min_date, max_date), min_value=min_date, max_value=max_date, key="f_dates")
    market = st.selectbox("Market", options=data_ctx["markets"], key="f_market")
    channel = st.selectbox("Channel", options=channel_options(), key="f_channel")

if isinstance(date_sel, (list, tuple)):
    start_date = date_sel[0] if len(date_sel) > 0 else None
    end_date = date_sel[1] if len(date_sel) > 1 else None
else:
    start_date, end_date = date_sel, None

filters = DashboardFilters(start_date=start_date, end_date=end_date, market=market or ALL, channel=channel or ALL)
ctx = dd.prepare_context(filters, data_ctx)


# ----- Page renderers -----
def render_overview_page():
    payload = compute_overview(filters, ctx)
    render_page_header("Overview", filters, export_df=pd.DataFrame(payload["by_date"]), export_name="overview.csv")
    render_kpis(payload["kpis"])
    left, right = st.columns([3, 2])
    with left:
        with card("Revenue & ROAS Over Time"):
            render_chart(payload["charts"].get("revenue_roas"))
    with right:
        with card("ROAS by Channel"):
            render_chart(payload["charts"].get("roas_by_channel"))
    with card("Top Markets"):
        st.dataframe(markets_frame(payload["top_markets"]), use_container_width=True, hide_index=True)


def render_markets_page():
    payload = compute_markets(filters, ctx)
    render_page_header("Markets", filters, export_df=pd.DataFrame(payload["markets"]), export_name="markets.csv")
    with card("Markets"):
        st.dataframe(markets_frame(payload["markets"]), use_container_width=True, hide_index=True)
    with card("Revenue by Market"):
        render_chart(payload["charts"].get("revenue_by_market"))


def render_channels_page():
    payload = compute_channels(filters, ctx)
    render_page_header("Channels", filters, export_df=pd.DataFrame(payload["channels"]), export_name="channels.csv")
    with card("ROAS by Channel"):
        render_chart(payload["charts"].get("roas_by_channel"))
        st.caption("Channel ROAS = total revenue ÷ channel spend (no per-channel revenue attribution in the data).")
    with card("Channel Table"):
        df = pd.DataFrame(payload["channels"])[["channel", "spend", "clicks", "impressions", "cpc", "ctr", "roas"]]
        df = format_table(df, money=["spend"], pct=["ctr"], ratio=["roas"])
        df["cpc"] = df["cpc"].apply(lambda v: f"${v:,.2f}")
        st.dataframe(df, use_container_width=True, hide_index=True)


def render_details_page():
    payload = compute_details(filters, ctx)
    render_page_header(
        "Details",
        filters,
        export_df=pd.DataFrame(record_rows(ctx["filtered_records"], limit=None)),
        export_name="details.csv",
    )
    with card("Details – KPIs"):
        render_kpis(payload["kpis"])
    with card("Details – Row-level Data"):
        if payload["truncated"]:
            st.caption(f"Showing the first {len(payload['rows'])} of {payload['row_counts']['filtered_rows']} rows.")
        st.dataframe(pd.DataFrame(payload["rows"]), use_container_width=True, hide_index=True)
    with st.expander("Data quality"):
        st.json(payload["cleaning_checks"])


def render_insights_page():
    payload = compute_insights(filters, ctx)
    render_page_header("Insights", filters)
    if not payload["available"]:
        st.info(payload["message"])
        return
    labels = payload["labels"]
    money = dd.format_currency_0
    for title, delta_key, note in [
        (f"MoM ({labels['curr_label']} vs {labels['prev_label']})", "mom", None),
        (
            f"YoY ({labels['curr_label']} vs {labels['yoy_label']})",
            "yoy_delta",
            "No data for the year-ago month; YoY compares against zero." if payload["yoy_approximate"] else None,
        ),
    ]:
        with card(title):
            cols = st.columns(4)
            deltas = payload[delta_key]
            delta_card(cols[0], "Revenue", payload["curr"]["revenue"], deltas["revenue"], money)
            delta_card(cols[1], "Orders", payload["curr"]["orders"], deltas["orders"], lambda v: f"{v:,}")
            delta_card(cols[2], "ROAS", payload["curr"]["roas"], deltas["roas"], dd.format_ratio)
            delta_card(cols[3], "CVR", payload["curr"]["cvr"], deltas["cvr"], dd.format_percent)
            if note:
                st.caption(note)
    with card("Auto Insights (last month)"):
        narratives = payload["narratives"]
        st.markdown("\n".join(f"- {narratives[k]}" for k in ["top_channel", "best_market", "watch_metric"]))
    with card("Monthly Revenue"):
        render_chart(payload["charts"].get("monthly_revenue"))


tabs = st.tabs(["Overview", "Markets", "Channels", "Details", "Insights"])
with tabs[0]:
    render_overview_page()
with tabs[1]:
    render_markets_page()
with tabs[2]:
    render_channels_page()
with tabs[3]:
    render_details_page()
with tabs[4]:
    render_insights_page()

st.caption(f"Data source: {', '.join(data_ctx['files'])}")
