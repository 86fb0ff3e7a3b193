from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from pathlib import Path
from typing import IO, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from analytics.filters import (
    DashboardFilters,
    date_extent,
    filter_records,
    market_options,
    normalize_filters,
)
from analytics.records import RECORD_FIELDS, Record

logger = logging.getLogger(__name__)

DATA_DIR = Path(os.environ.get("BURRITO_DATA_DIR") or Path(__file__).resolve().parents[1])
DATA_FILE_GLOB = "*digital_performance*.csv"

TEXT_COLUMNS = ["location_id", "city", "state", "region"]
INT_COLUMNS = [
    "sessions",
    "page_views",
    "online_orders",
    "impressions_social",
    "impressions_search",
    "impressions_display",
    "clicks_social",
    "clicks_search",
    "clicks_display",
]
FLOAT_COLUMNS = [
    "bounce_rate",
    "conversion_rate",
    "avg_order_value",
    "revenue",
    "ad_spend_social",
    "ad_spend_search",
    "ad_spend_display",
]
NUMERIC_COLUMNS = INT_COLUMNS + FLOAT_COLUMNS
# Gaps in these columns take the column median; every other numeric gap is 0.
MEDIAN_IMPUTED_COLUMNS = ["bounce_rate", "avg_order_value"]
REQUIRED_COLUMNS = ["date"] + TEXT_COLUMNS + NUMERIC_COLUMNS


class DataSchemaError(ValueError):
    """The input file is missing one or more required columns."""


@dataclass(frozen=True)
class DataQuality:
    rows_read: int = 0
    rows_loaded: int = 0
    dropped_invalid_date: int = 0
    dropped_missing_market: int = 0
    imputed: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class LoadResult:
    records: Tuple[Record, ...]
    quality: DataQuality


def get_source_files() -> List[Path]:
    return sorted(DATA_DIR.glob(DATA_FILE_GLOB))


def file_signature(files: List[Path]) -> Tuple[Tuple[str, float], ...]:
    return tuple((str(f), f.stat().st_mtime) for f in files)


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            series = df[col].astype("string").str.strip()
            series = series.replace({"nan": pd.NA, "None": pd.NA, "": pd.NA})
            df[col] = series
    return df


def impute_numeric(df: pd.DataFrame) -> Tuple[pd.DataFrame, Dict[str, int]]:
    imputed: Dict[str, int] = {}
    for col in NUMERIC_COLUMNS:
        missing = int(df[col].isna().sum())
        if not missing:
            continue
        fill = 0.0
        if col in MEDIAN_IMPUTED_COLUMNS:
            median = df[col].median(skipna=True)
            fill = float(median) if pd.notna(median) else 0.0
        df[col] = df[col].fillna(fill)
        imputed[col] = missing
    return df, imputed


def clean_frame(raw: pd.DataFrame) -> Tuple[pd.DataFrame, DataQuality]:
    df = raw.copy()
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DataSchemaError(f"Missing required columns: {', '.join(missing)}")

    rows_read = int(len(df))
    df = df[REQUIRED_COLUMNS].copy()
    df["date"] = pd.to_datetime(df["date"], errors="coerce", format="mixed")
    bad_dates = df["date"].isna()
    df = df[~bad_dates]

    df = coerce_str_safe(df, TEXT_COLUMNS)
    no_market = df["city"].isna() | df["state"].isna()
    df = df[~no_market].copy()
    df["location_id"] = df["location_id"].fillna("")
    df["region"] = df["region"].fillna("")

    df = numericize(df, NUMERIC_COLUMNS)
    df[NUMERIC_COLUMNS] = df[NUMERIC_COLUMNS].replace([np.inf, -np.inf], np.nan)
    df, imputed = impute_numeric(df)
    for col in INT_COLUMNS:
        df[col] = df[col].round().astype("int64")

    quality = DataQuality(
        rows_read=rows_read,
        rows_loaded=int(len(df)),
        dropped_invalid_date=int(bad_dates.sum()),
        dropped_missing_market=int(no_market.sum()),
        imputed=imputed,
    )
    return df, quality


def frame_to_records(df: pd.DataFrame) -> Tuple[Record, ...]:
    out: List[Record] = []
    for row in df[RECORD_FIELDS].itertuples(index=False):
        values = row._asdict()
        values["date"] = values["date"].date()
        for col in TEXT_COLUMNS:
            values[col] = str(values[col])
        for col in INT_COLUMNS:
            values[col] = int(values[col])
        for col in FLOAT_COLUMNS:
            values[col] = float(values[col])
        out.append(Record(**values))
    return tuple(out)


def load_records_csv(source: Union[str, Path, IO[str]]) -> LoadResult:
    """Parse a performance CSV into records.

    Rows without a parseable date or without city/state are dropped; numeric
    gaps are imputed (median for bounce rate and AOV, 0 otherwise).
    """
    raw = pd.read_csv(source, dtype=str, keep_default_na=True)
    df, quality = clean_frame(raw)
    if quality.dropped_invalid_date:
        logger.warning("Dropped %d rows with unparseable dates", quality.dropped_invalid_date)
    if quality.dropped_missing_market:
        logger.warning("Dropped %d rows without city/state", quality.dropped_missing_market)
    for col, count in quality.imputed.items():
        logger.warning("Imputed %d missing values in %s", count, col)
    records = frame_to_records(df)
    logger.info("Loaded %d of %d rows", quality.rows_loaded, quality.rows_read)
    return LoadResult(records=records, quality=quality)


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def format_currency_0(value: object) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    return f"${float(value):,.0f}"


def format_ratio(value: object, decimals: int = 2) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    return f"{float(value):.{decimals}f}"


def format_percent(value: object, decimals: int = 1) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    return f"{float(value):.{decimals}%}"


# ---------------- Public API (Streamlit + FastAPI use) ----------------
def build_data_context(files: List[str], result: LoadResult) -> Dict[str, object]:
    records = result.records
    return {
        "files": files,
        "records": records,
        "markets": market_options(records),
        "date_range": date_extent(records),
        "quality": asdict(result.quality),
    }


@lru_cache(maxsize=4)
def _load_dashboard_data_cached(files_sig: Tuple[Tuple[str, float], ...]) -> Dict[str, object]:
    # The first matching file is the dataset; later files are ignored.
    path = Path(files_sig[0][0])
    result = load_records_csv(path)
    return build_data_context([Path(name).name for name, _ in files_sig], result)


def load_dashboard_data() -> Dict[str, object]:
    files = get_source_files()
    if not files:
        logger.warning("No data file matching %s in %s", DATA_FILE_GLOB, DATA_DIR)
        return {"files": [], "records": (), "markets": market_options([]), "date_range": (None, None), "quality": asdict(DataQuality())}
    return _load_dashboard_data_cached(file_signature(files))


def prepare_context(filters: dict | DashboardFilters, data_ctx: Dict[str, object]) -> Dict[str, object]:
    records: Tuple[Record, ...] = tuple(data_ctx.get("records") or ())
    filt = (
        filters
        if isinstance(filters, DashboardFilters)
        else normalize_filters(
            filters,
            available_dates=data_ctx.get("date_range"),
        )
    )
    filtered = filter_records(records, filt)
    return {
        "filters": filt,
        "records": records,
        "filtered_records": filtered,
        "channel_focus": filt.channel_focus,
        "markets": data_ctx.get("markets", market_options(records)),
        "date_range": data_ctx.get("date_range", date_extent(records)),
        "quality": data_ctx.get("quality", asdict(DataQuality())),
    }
