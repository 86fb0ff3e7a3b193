from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel


class DashboardFiltersModel(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    market: str = "All"
    channel: str = "All"


class MetaListResponse(BaseModel):
    values: List[str]


class DateRangeResponse(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
