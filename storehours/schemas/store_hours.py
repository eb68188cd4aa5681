"""
Pydantic schemas for weekly base hours and templates.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BaseHoursRow(BaseModel):
    store_hours_id: Optional[str] = None
    day_of_week: Optional[str] = None
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    is_closed: bool = False


class BaseHoursBatchUpdate(BaseModel):
    site_id: Optional[str] = None
    org_id: Optional[str] = None
    rows: list[BaseHoursRow] = Field(default_factory=list)


class BaseHoursInit(BaseModel):
    site_id: Optional[str] = None
    org_id: Optional[str] = None


class StoreHoursOut(BaseModel):
    id: str
    site_id: str
    org_id: Optional[str] = None
    day_of_week: str
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    is_closed: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DayHours(BaseModel):
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    is_closed: bool = False


class TemplateCreate(BaseModel):
    org_id: Optional[str] = None
    template_name: Optional[str] = None
    is_global: bool = False
    days: dict[str, DayHours] = Field(default_factory=dict)


class TemplateOut(BaseModel):
    id: str
    org_id: str
    template_name: str
    is_global: bool
    days: dict
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TemplateApply(BaseModel):
    site_id: Optional[str] = None
    org_id: Optional[str] = None
